"""Content acquisition: entry resolution and manifest download."""

from __future__ import annotations

import contextlib
import logging
import os
import re
import tempfile
from pathlib import Path

import httpx

from ..errors import DownloadError, ResolutionError, UntrustedSourceError
from ..integrations import EndpointSpec, ResolvedVideo
from ..integrations.yappli import Entry, FeedClient

logger = logging.getLogger(__name__)

_TITLE_STRIP_RE = re.compile(r"[\s/.]")
MANIFEST_SUFFIX = ".m3u8"


def sanitize_title(raw: str) -> str:
    """Strip whitespace, slashes and periods so the title can be used as a file stem.

    The transform is lossy: "Salmon Teriyaki" and "Salmon.Teriyaki" both become
    "SalmonTeriyaki" and therefore share one set of local artifacts.
    """
    return _TITLE_STRIP_RE.sub("", raw)


def collect_description(entries: list[Entry]) -> str:
    return "\n".join(entry.summary for entry in entries if entry.summary)


def find_or_create_directory(root: Path, endpoint_key: str) -> Path:
    directory = root / endpoint_key
    directory.mkdir(parents=True, exist_ok=True)
    return directory


class EntryResolver:
    """Follow a top-level tab entry down to the record that carries the video URL."""

    def __init__(self, feed: FeedClient) -> None:
        self.feed = feed

    def resolve(self, entry: Entry, endpoint: EndpointSpec) -> ResolvedVideo:
        details = self.feed.follow(entry)
        if not details:
            raise ResolutionError(f"Entry {entry.label} resolved to an empty feed")
        description = collect_description(details)

        if endpoint.skip_video_detail:
            videos = details
        else:
            videos = self.feed.follow(details[0])
        if not videos:
            raise ResolutionError(f"Entry {entry.label} has no video detail")

        terminal = videos[0]
        video_url = terminal.detail_href
        if video_url is None:
            raise ResolutionError(f"Entry {entry.label} has no video url")
        if not terminal.title:
            raise ResolutionError(f"Entry {entry.label} has no video title")
        title = sanitize_title(terminal.title)
        if not title:
            raise ResolutionError(f"Entry {entry.label} title {terminal.title!r} is empty once sanitized")
        thumbnail_url = terminal.content.src if terminal.content else None
        if not thumbnail_url:
            raise ResolutionError(f"Entry {entry.label} has no thumbnail")

        return ResolvedVideo(
            entry_id=terminal.id or entry.label,
            video_url=video_url,
            title=title,
            upload_title=f"{endpoint.title_prefix}{title}",
            description=description,
            thumbnail_url=thumbnail_url,
        )


class ManifestDownloader:
    """Stream HLS manifests from the allow-listed CDN onto local storage."""

    def __init__(self, client: httpx.Client, allowed_prefix: str, headers: dict[str, str] | None = None) -> None:
        self.client = client
        self.allowed_prefix = allowed_prefix
        self.headers = headers or {}

    def download(self, url: str, title: str, directory: Path) -> Path:
        if not url.startswith(self.allowed_prefix):
            raise UntrustedSourceError(f"Refusing manifest outside {self.allowed_prefix}: {url}")

        output = Path(directory) / f"{title}{MANIFEST_SUFFIX}"
        if output.exists():
            logger.info("Skip downloading because %s is already downloaded.", output)
            return output

        logger.info("Start downloading! -- %s", output)
        fd, temp_name = tempfile.mkstemp(prefix=f".{title}.", suffix=".part", dir=output.parent)
        try:
            with os.fdopen(fd, "wb") as handle:
                with self.client.stream("GET", url, headers=self.headers, follow_redirects=False) as response:
                    if not response.is_success:
                        raise DownloadError(f"Unexpected response {response.status_code} for {url}")
                    for chunk in response.iter_bytes():
                        handle.write(chunk)
            os.replace(temp_name, output)
        except httpx.HTTPError as exc:
            with contextlib.suppress(OSError):
                os.remove(temp_name)
            raise DownloadError(f"Manifest download from {url} failed: {exc}") from exc
        except BaseException:
            with contextlib.suppress(OSError):
                os.remove(temp_name)
            raise
        logger.info("Finished downloading! -- %s", output)
        return output
