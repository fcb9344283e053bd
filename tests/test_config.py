from pathlib import Path

import pytest
from pydantic import ValidationError

from yappli_sync.config import AppConfig, ConfigError, load_config


def test_endpoints_follow_fixed_order_and_depth(config):
    endpoints = config.endpoints()

    assert [endpoint.key for endpoint in endpoints] == ["normalVideos", "wanokokoroVideos", "specialVideos"]
    assert endpoints[0].url == "https://yapp.li/api/tab/bio/a608b295"
    assert [endpoint.skip_video_detail for endpoint in endpoints] == [False, True, False]
    assert all(endpoint.title_prefix == "" for endpoint in endpoints)


def test_title_prefixes_are_parsed_from_pairs(env):
    env.setenv("TITLE_PREFIXES", "normalVideos=[Normal] ,specialVideos=[SP] ")

    config = AppConfig(_env_file=None)

    prefixes = {endpoint.key: endpoint.title_prefix for endpoint in config.endpoints()}
    assert prefixes == {"normalVideos": "[Normal] ", "wanokokoroVideos": "", "specialVideos": "[SP] "}


def test_unknown_title_prefix_key_is_rejected(env):
    env.setenv("TITLE_PREFIXES", "bonusVideos=[Bonus]")

    with pytest.raises(ConfigError, match="bonusVideos"):
        AppConfig(_env_file=None)


def test_missing_identity_headers_fail_validation(env):
    env.delenv("X_UDID")

    with pytest.raises(ValidationError):
        AppConfig(_env_file=None)


def test_load_config_wraps_validation_errors(env, tmp_path):
    env.delenv("USER_AGENT")
    env_file = tmp_path / "empty.env"
    env_file.write_text("", encoding="utf-8")

    with pytest.raises(ConfigError, match="Invalid configuration"):
        load_config(env_file)


def test_load_config_creates_runtime_directories(env, tmp_path):
    env.setattr("yappli_sync.config.load_dotenv", lambda *args, **kwargs: False)
    env.setenv("THUMBNAIL_DEST", str(tmp_path / "thumbs"))
    env_file = tmp_path / "sync.env"
    env_file.write_text("APP_UPLOAD_ENABLED=true\n", encoding="utf-8")

    config = load_config(env_file)

    assert config.upload_enabled is True
    assert (tmp_path / "videos").is_dir()
    assert (tmp_path / "thumbs").is_dir()
    assert (tmp_path / "logs").is_dir()


def test_relative_paths_resolve_against_working_directory(env, tmp_path):
    env.setenv("APP_VIDEO_DEST", "media/videos")

    config = AppConfig(_env_file=None)

    assert config.video_dest == (tmp_path / "media" / "videos").resolve()
    assert config.ledger_path == config.video_dest / "uploaded_video_list.json"


def test_blank_optional_values_are_treated_as_unset(env):
    env.setenv("THUMBNAIL_DEST", "  ")
    env.setenv("PLAYLIST_ID", "")

    config = AppConfig(_env_file=None)

    assert config.thumbnail_dest is None
    assert config.playlist_id is None


def test_token_path_combines_directory_and_name(config):
    assert config.token_path == Path(".credentials") / "youtube-uploader.json"


def test_upload_chunk_size_has_a_floor(env):
    env.setenv("APP_UPLOAD_CHUNK_SIZE", "1024")

    with pytest.raises(ValidationError):
        AppConfig(_env_file=None)
