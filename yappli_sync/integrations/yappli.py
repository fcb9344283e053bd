"""Yappli feed API client."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..config import AppConfig
from ..errors import FetchError, ResolutionError

logger = logging.getLogger(__name__)


class Link(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    href: str | None = Field(default=None, alias="_href")
    type: str | None = Field(default=None, alias="_type")


class Content(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    src: str | None = Field(default=None, alias="_src")
    type: str | None = Field(default=None, alias="_type")


class Entry(BaseModel):
    """A single feed item: a tab row, a video summary, or a terminal video record."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str | None = None
    title: str | None = None
    summary: str | None = None
    updated: str | None = None
    content: Content | None = None
    link: list[Link] = Field(default_factory=list)
    category: list[Any] = Field(default_factory=list)

    @property
    def detail_href(self) -> str | None:
        """Return the canonical detail URL (first link) when it is usable."""
        if not self.link:
            return None
        href = (self.link[0].href or "").strip()
        return href or None

    @property
    def label(self) -> str:
        return self.id or self.title or "<unknown>"


class Feed(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    title: str | None = None
    entry: list[Entry]


class FeedDocument(BaseModel):
    model_config = ConfigDict(extra="ignore")

    feed: Feed


def build_request_headers(config: AppConfig) -> dict[str, str]:
    """Return the fixed header set the Yappli app sends with every request."""
    return {
        "Accept": "*/*",
        "X-API-VERSION": config.yappli_api_version,
        "User-Agent": config.user_agent,
        "Accept-Language": "en-us",
        "X-UDID": config.x_udid,
        "X-ADID": config.x_adid,
    }


class FeedClient:
    """Fetch and parse Yappli feed documents."""

    def __init__(self, config: AppConfig, client: httpx.Client | None = None) -> None:
        self.headers = build_request_headers(config)
        self._owns_client = client is None
        self._client = client or httpx.Client(follow_redirects=True)
        self.requests_made = 0

    @property
    def http(self) -> httpx.Client:
        return self._client

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "FeedClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def fetch_entries(self, url: str) -> list[Entry]:
        """GET ``url`` and return the ``feed.entry`` sequence."""
        logger.debug("Fetching feed %s", url)
        self.requests_made += 1
        try:
            response = self._client.get(url, headers=self.headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise FetchError(f"Feed request to {url} returned HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise FetchError(f"Feed request to {url} failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise FetchError(f"Feed response from {url} is not JSON") from exc

        try:
            document = FeedDocument.model_validate(payload)
        except ValidationError as exc:
            raise FetchError(f"Feed response from {url} has no feed.entry list") from exc
        return document.feed.entry

    def follow(self, entry: Entry) -> list[Entry]:
        """Follow one hop from ``entry`` through its first link."""
        href = entry.detail_href
        if href is None:
            raise ResolutionError(f"Entry {entry.label} has no detail link")
        return self.fetch_entries(href)
