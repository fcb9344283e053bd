from __future__ import annotations

import io
from typing import Any, Callable

import httpx
import pytest
from PIL import Image

from yappli_sync.config import AppConfig

REQUIRED_ENV = {
    "YAPPLI_API_VERSION": "4.2.0",
    "USER_AGENT": "Yappli/1.0 (iPhone; iOS 17.0)",
    "X_UDID": "udid-1234",
    "X_ADID": "adid-5678",
}


@pytest.fixture
def env(monkeypatch: pytest.MonkeyPatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for name, value in REQUIRED_ENV.items():
        monkeypatch.setenv(name, value)
    monkeypatch.setenv("APP_VIDEO_DEST", str(tmp_path / "videos"))
    monkeypatch.setenv("APP_LOG_PATH", str(tmp_path / "logs" / "sync.log"))
    monkeypatch.setenv("APP_API_BASE_URL", "https://yapp.li/api")
    return monkeypatch


@pytest.fixture
def config(env) -> AppConfig:
    return AppConfig(_env_file=None)


def make_entry(
    entry_id: str | None = None,
    *,
    title: str | None = None,
    href: str | None = None,
    summary: str | None = None,
    src: str | None = None,
) -> dict[str, Any]:
    entry: dict[str, Any] = {}
    if entry_id is not None:
        entry["id"] = entry_id
    if title is not None:
        entry["title"] = title
    if summary is not None:
        entry["summary"] = summary
    if href is not None:
        entry["link"] = [{"_href": href, "_type": "application/json"}]
    if src is not None:
        entry["content"] = {"_src": src, "_type": "image/jpeg"}
    return entry


def make_feed(*entries: dict[str, Any]) -> dict[str, Any]:
    return {"feed": {"id": "feed", "title": "Feed", "entry": list(entries)}}


def png_bytes(size: tuple[int, int] = (64, 32)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color=(200, 40, 40)).save(buffer, format="PNG")
    return buffer.getvalue()


class FakeYappli:
    """Route requests to canned responses and remember which URLs were hit."""

    def __init__(self) -> None:
        self.routes: dict[str, Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: list[httpx.Request] = []

    def json(self, url: str, payload: Any, status_code: int = 200) -> None:
        self.routes[str(httpx.URL(url))] = lambda request: httpx.Response(status_code, json=payload)

    def content(self, url: str, body: bytes, status_code: int = 200) -> None:
        self.routes[str(httpx.URL(url))] = lambda request: httpx.Response(status_code, content=body)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(str(request.url))
        if route is None:
            return httpx.Response(404, text="not found")
        return route(request)

    def hits(self, url: str) -> int:
        target = str(httpx.URL(url))
        return sum(1 for request in self.requests if str(request.url) == target)

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def yappli() -> FakeYappli:
    return FakeYappli()
