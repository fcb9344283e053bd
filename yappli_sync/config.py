"""Configuration loader for the Yappli sync job (Pydantic edition)."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated, Iterable, Literal, Mapping

from dotenv import load_dotenv
from pydantic import AliasChoices, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from .errors import YappliSyncError
from .integrations import EndpointSpec

LOGGER = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = "https://yapp.li:443/api"
DEFAULT_MANIFEST_URL_PREFIX = "https://n.yapp.li/"

# (key, tab id, skip_video_detail)
DEFAULT_TABS: tuple[tuple[str, str, bool], ...] = (
    ("normalVideos", "a608b295", False),
    ("wanokokoroVideos", "b6ce08d3", True),
    ("specialVideos", "a1e886ec", False),
)


class ConfigError(YappliSyncError, RuntimeError):
    """Raised when configuration cannot be loaded safely or is missing a required value."""


class AppConfig(BaseSettings):
    """Strongly typed runtime configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
        validate_default=True,
    )

    environment: Literal["development", "staging", "production"] = Field(
        default="production",
        validation_alias=AliasChoices("APP_ENVIRONMENT", "APP_ENV"),
    )
    log_path: Path = Field(
        default=Path("logs/yappli-sync.log"),
        validation_alias=AliasChoices("APP_LOG_PATH", "LOG_PATH"),
    )

    # Yappli feed API
    api_base_url: str = Field(DEFAULT_API_BASE_URL, validation_alias="APP_API_BASE_URL")
    yappli_api_version: str = Field(validation_alias=AliasChoices("APP_YAPPLI_API_VERSION", "YAPPLI_API_VERSION"))
    user_agent: str = Field(validation_alias=AliasChoices("APP_USER_AGENT", "USER_AGENT"))
    x_udid: str = Field(validation_alias=AliasChoices("APP_X_UDID", "X_UDID"))
    x_adid: str = Field(validation_alias=AliasChoices("APP_X_ADID", "X_ADID"))
    manifest_url_prefix: str = Field(DEFAULT_MANIFEST_URL_PREFIX, validation_alias="APP_MANIFEST_URL_PREFIX")
    title_prefixes: Annotated[dict[str, str], NoDecode] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("APP_TITLE_PREFIXES", "TITLE_PREFIXES"),
    )

    # Filesystem layout
    video_dest: Path = Field(default=Path("videos"), validation_alias=AliasChoices("APP_VIDEO_DEST", "VIDEO_DEST"))
    thumbnail_dest: Path | None = Field(
        default=None,
        validation_alias=AliasChoices("APP_THUMBNAIL_DEST", "THUMBNAIL_DEST"),
    )
    ffmpeg_path: str = Field("ffmpeg", validation_alias=AliasChoices("APP_FFMPEG_PATH", "FFMPEG_PATH"))

    # YouTube upload
    upload_enabled: bool = Field(False, validation_alias="APP_UPLOAD_ENABLED")
    playlist_enabled: bool = Field(False, validation_alias="APP_PLAYLIST_ENABLED")
    playlist_id: str | None = Field(default=None, validation_alias=AliasChoices("APP_PLAYLIST_ID", "PLAYLIST_ID"))
    client_secret_path: Path = Field(default=Path("client_secret.json"), validation_alias="APP_CLIENT_SECRET_PATH")
    token_dir: Path = Field(default=Path(".credentials"), validation_alias="APP_TOKEN_DIR")
    token_file_name: str = Field("youtube-uploader.json", validation_alias="APP_TOKEN_FILE_NAME")
    upload_chunk_size: int = Field(8 * 1024 * 1024, ge=256 * 1024, validation_alias="APP_UPLOAD_CHUNK_SIZE")
    thumbnail_max_dimension: int = Field(1500, ge=1, validation_alias="APP_THUMBNAIL_MAX_DIMENSION")

    # Scheduling cadence; unset means a single run
    schedule_interval_minutes: int | None = Field(None, ge=1, validation_alias="APP_SCHEDULE_INTERVAL_MINUTES")

    @field_validator("log_path", "video_dest", "thumbnail_dest", mode="after")
    @classmethod
    def _expand_path(cls, value: Path | None) -> Path | None:
        if value is None:
            return None
        expanded = value.expanduser()
        return expanded if expanded.is_absolute() else (Path.cwd() / expanded).resolve()

    @field_validator("thumbnail_dest", "playlist_id", mode="before")
    @classmethod
    def _blank_as_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("title_prefixes", mode="before")
    @classmethod
    def _parse_title_prefixes(cls, value: str | Mapping[str, str] | None) -> dict[str, str]:
        if value is None:
            return {}
        if isinstance(value, str):
            prefixes: dict[str, str] = {}
            for part in value.replace("\n", ",").split(","):
                if "=" not in part:
                    continue
                key, prefix = part.split("=", 1)
                if key.strip():
                    prefixes[key.strip()] = prefix.lstrip()
            return prefixes
        return dict(value)

    @field_validator("api_base_url", mode="after")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @model_validator(mode="after")
    def _validate_prefix_keys(self) -> "AppConfig":
        known = {key for key, _, _ in DEFAULT_TABS}
        unknown = set(self.title_prefixes) - known
        if unknown:
            raise ConfigError(f"Unknown endpoint keys in title prefixes: {', '.join(sorted(unknown))}")
        return self

    def endpoints(self) -> tuple[EndpointSpec, ...]:
        """Return the endpoint categories processed on every run, in order."""
        return tuple(
            EndpointSpec(
                key=key,
                url=f"{self.api_base_url}/tab/bio/{tab_id}",
                title_prefix=self.title_prefixes.get(key, ""),
                skip_video_detail=skip_video_detail,
            )
            for key, tab_id, skip_video_detail in DEFAULT_TABS
        )

    @property
    def ledger_path(self) -> Path:
        return self.video_dest / "uploaded_video_list.json"

    @property
    def token_path(self) -> Path:
        return self.token_dir / self.token_file_name

    def ensure_runtime_directories(self) -> None:
        """Create directories required for runtime operation."""
        directories = [self.video_dest, self.log_path.parent]
        if self.thumbnail_dest is not None:
            directories.append(self.thumbnail_dest)
        _ensure_directories(directories)


def _ensure_directories(paths: Iterable[Path]) -> None:
    for directory in paths:
        directory.mkdir(parents=True, exist_ok=True)


def load_config(env_path: Path | None = None) -> AppConfig:
    """Load configuration from .env/environment with validation."""
    load_kwargs: dict[str, str] = {}
    if env_path is not None:
        load_dotenv(env_path, override=False)
        load_kwargs["_env_file"] = str(env_path)
    else:
        load_dotenv(override=False)
    try:
        config = AppConfig(**load_kwargs)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc

    config.ensure_runtime_directories()

    LOGGER.info(
        "AppConfig loaded",
        extra={
            "event": "config.loaded",
            "environment": config.environment,
            "paths": {
                "videos": str(config.video_dest),
                "thumbnails": str(config.thumbnail_dest),
                "log": str(config.log_path),
            },
        },
    )
    return config
