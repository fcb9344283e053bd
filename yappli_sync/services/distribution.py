"""Distribution services: YouTube upload, thumbnail and playlist attachment."""

from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import httpx
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaFileUpload

from ..config import AppConfig, ConfigError
from ..errors import CredentialError, DownloadError
from ..ledger import UploadLedger
from ..utils.media import THUMBNAIL_MIMETYPE, resize_thumbnail
from .credentials import CredentialManager

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class VideoMetadata:
    """Describes the metadata applied during uploads."""

    title: str
    description: str
    privacy_status: str = "private"

    def request_body(self) -> dict[str, Any]:
        return {
            "snippet": {"title": self.title, "description": self.description},
            "status": {"privacyStatus": self.privacy_status},
        }


def _execute_with_progress(request, total_size: int, label: str) -> dict[str, Any]:
    """Drive a resumable upload chunk by chunk, logging the percentage sent."""
    response = None
    while response is None:
        status, response = request.next_chunk()
        if status is not None and total_size > 0:
            progress = status.resumable_progress / total_size * 100
            logger.info("Uploading a %s - %d%% complete", label, round(progress))
    logger.info("Uploading a %s - 100%% complete", label)
    return response


class YouTubeUploader:
    """Upload handler that wraps the YouTube Data API."""

    def __init__(
        self,
        config: AppConfig,
        ledger: UploadLedger,
        credentials: CredentialManager,
        http: httpx.Client | None = None,
    ) -> None:
        self.config = config
        self.ledger = ledger
        self.credentials = credentials
        self._http = http or httpx.Client(follow_redirects=True)

    def validate_config(self) -> None:
        """Raise ``ConfigError`` when a requested upload feature lacks configuration."""
        if self.config.playlist_enabled and not self.config.playlist_id:
            raise ConfigError("Invalid `PLAYLIST_ID`")
        if self.config.thumbnail_dest is None:
            raise ConfigError("Invalid `THUMBNAIL_DEST`")

    def upload(self, file_path: Path, title: str, description: str, thumbnail_url: str) -> str | None:
        """Upload ``file_path`` and its thumbnail; return the new video id or ``None`` when skipped."""
        if not self.config.upload_enabled:
            logger.debug("Upload disabled; skipping %s", title)
            return None
        try:
            self.validate_config()
        except ConfigError as exc:
            logger.error("Upload of %s aborted: %s", title, exc)
            return None

        if self.ledger.has_uploaded(title):
            logger.info("[CANCEL] %s is already uploaded.", title)
            return None

        try:
            service = self.credentials.build_service()
        except CredentialError as exc:
            logger.error("Upload of %s aborted: %s", title, exc)
            return None

        video_id = self._upload_video(service, Path(file_path), VideoMetadata(title=title, description=description))
        if not video_id:
            logger.warning("YouTube returned no id for %s; skipping thumbnail and playlist.", title)
            return None
        self.ledger.record_uploaded(title)
        logger.info("Uploaded %s to YouTube as %s.", title, video_id)

        self._upload_thumbnail(service, video_id, thumbnail_url)
        if self.config.playlist_enabled:
            self._add_to_playlist(service, video_id)
        return video_id

    def _upload_video(self, service, file_path: Path, metadata: VideoMetadata) -> str | None:
        file_size = file_path.stat().st_size
        media = MediaFileUpload(
            str(file_path),
            mimetype="video/mp4",
            chunksize=self.config.upload_chunk_size,
            resumable=True,
        )
        request = service.videos().insert(
            part="id,snippet,status",
            notifySubscribers=False,
            body=metadata.request_body(),
            media_body=media,
        )
        try:
            response = _execute_with_progress(request, file_size, "video")
        except HttpError as exc:
            logger.error("YouTube upload failed: %s", exc)
            raise
        return (response or {}).get("id")

    def fetch_thumbnail(self, thumbnail_url: str) -> Path:
        """Download the source thumbnail into the staging directory."""
        staging = self.config.thumbnail_dest
        if staging is None:
            raise ConfigError("Invalid `THUMBNAIL_DEST`")
        name = posixpath.basename(urlparse(thumbnail_url).path)
        if name in ("", ".", ".."):
            name = "thumbnail"
        output = staging / name
        staging.mkdir(parents=True, exist_ok=True)
        try:
            response = self._http.get(thumbnail_url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise DownloadError(f"Thumbnail download from {thumbnail_url} failed: {exc}") from exc
        output.write_bytes(response.content)
        return output

    def _upload_thumbnail(self, service, video_id: str, thumbnail_url: str) -> None:
        source = self.fetch_thumbnail(thumbnail_url)
        resized = resize_thumbnail(source, self.config.thumbnail_max_dimension)
        media = MediaFileUpload(str(resized), mimetype=THUMBNAIL_MIMETYPE, resumable=True)
        request = service.thumbnails().set(videoId=video_id, media_body=media)
        _execute_with_progress(request, resized.stat().st_size, "thumbnail")

    def _add_to_playlist(self, service, video_id: str) -> dict[str, Any]:
        body = {
            "snippet": {
                "playlistId": self.config.playlist_id,
                "resourceId": {"kind": "youtube#video", "videoId": video_id},
            },
            "status": {"privacyStatus": "private"},
        }
        response = service.playlistItems().insert(part="id,snippet,status", body=body).execute()
        logger.info("Added %s to playlist %s.", video_id, self.config.playlist_id)
        return response
