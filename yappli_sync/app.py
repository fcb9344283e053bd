"""Top-level pipeline controller for the Yappli sync job."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from .config import AppConfig
from .errors import FetchError, YappliSyncError
from .integrations import EndpointSpec
from .integrations.yappli import Entry, FeedClient
from .ledger import UploadLedger
from .services.content import EntryResolver, ManifestDownloader, find_or_create_directory
from .services.credentials import CredentialManager
from .services.distribution import YouTubeUploader
from .utils.media import Transcoder

logger = logging.getLogger(__name__)


def _log_event(level: int, event: str, **fields: Any) -> None:
    """Emit structured log events with consistent metadata."""
    payload = {"event": event, **fields}
    logger.log(level, json.dumps(payload, default=str, separators=(",", ":")))


@dataclass(slots=True)
class EndpointResult:
    """Per-endpoint counters for a single run."""

    key: str
    entries: int = 0
    completed: int = 0
    failed: int = 0
    uploaded: int = 0
    feed_error: str | None = None


@dataclass(slots=True)
class RunSummary:
    endpoints: list[EndpointResult] = field(default_factory=list)

    @property
    def completed(self) -> int:
        return sum(result.completed for result in self.endpoints)

    @property
    def failed(self) -> int:
        return sum(result.failed for result in self.endpoints)

    @property
    def uploaded(self) -> int:
        return sum(result.uploaded for result in self.endpoints)

    def as_dict(self) -> dict[str, Any]:
        return {
            "completed": self.completed,
            "failed": self.failed,
            "uploaded": self.uploaded,
            "endpoints": {
                result.key: {
                    "entries": result.entries,
                    "completed": result.completed,
                    "failed": result.failed,
                    "uploaded": result.uploaded,
                    "feed_error": result.feed_error,
                }
                for result in self.endpoints
            },
        }


class YappliSync:
    """Walk every configured tab, mirror its videos locally and optionally upload them."""

    def __init__(
        self,
        config: AppConfig,
        *,
        feed: Optional[FeedClient] = None,
        downloader: Optional[ManifestDownloader] = None,
        transcoder: Optional[Transcoder] = None,
        uploader: Optional[YouTubeUploader] = None,
    ) -> None:
        self.config = config
        self.feed = feed or FeedClient(config)
        self.resolver = EntryResolver(self.feed)
        self.downloader = downloader or ManifestDownloader(
            self.feed.http, config.manifest_url_prefix, self.feed.headers
        )
        self.transcoder = transcoder or Transcoder(config.ffmpeg_path)
        self.uploader = uploader or YouTubeUploader(
            config,
            UploadLedger(config.ledger_path),
            CredentialManager(config),
            http=self.feed.http,
        )

    def run(self, endpoints: Optional[tuple[EndpointSpec, ...]] = None) -> RunSummary:
        summary = RunSummary()
        for endpoint in endpoints or self.config.endpoints():
            summary.endpoints.append(self.process_endpoint(endpoint))
        _log_event(logging.INFO, "sync.run_summary", **summary.as_dict())
        return summary

    def process_endpoint(self, endpoint: EndpointSpec) -> EndpointResult:
        result = EndpointResult(key=endpoint.key)
        _log_event(logging.INFO, "sync.endpoint_start", endpoint=endpoint.key, url=endpoint.url)
        try:
            entries = self.feed.fetch_entries(endpoint.url)
        except FetchError as exc:
            logger.error("Skipping %s: %s", endpoint.key, exc, extra={"endpoint": endpoint.key})
            result.feed_error = str(exc)
            return result

        result.entries = len(entries)
        for entry in entries:
            context = {"endpoint": endpoint.key, "entry_id": entry.label}
            try:
                video_id = self.process_entry(entry, endpoint)
            except YappliSyncError as exc:
                result.failed += 1
                logger.warning("Entry %s of %s failed: %s", entry.label, endpoint.key, exc, extra=context)
                continue
            except Exception:
                result.failed += 1
                logger.exception("Unexpected failure on entry %s of %s", entry.label, endpoint.key, extra=context)
                continue
            result.completed += 1
            if video_id:
                result.uploaded += 1

        _log_event(
            logging.INFO,
            "sync.endpoint_complete",
            endpoint=endpoint.key,
            entries=result.entries,
            completed=result.completed,
            failed=result.failed,
        )
        return result

    def process_entry(self, entry: Entry, endpoint: EndpointSpec) -> str | None:
        """Resolve, download, convert and (when enabled) upload one entry."""
        video = self.resolver.resolve(entry, endpoint)
        directory = find_or_create_directory(self.config.video_dest, endpoint.key)
        manifest = self.downloader.download(video.video_url, video.title, directory)
        converted = self.transcoder.transcode(manifest, video.title, directory)
        return self.uploader.upload(converted, video.upload_title, video.description, video.thumbnail_url)

    def close(self) -> None:
        self.feed.close()
