"""Integration helpers for Yappli feed ingestion."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class EndpointSpec:
    """One Yappli tab to mirror and how deep its feed must be followed."""

    key: str
    url: str
    title_prefix: str = ""
    skip_video_detail: bool = False


@dataclass(slots=True)
class ResolvedVideo:
    """Normalized representation of a playable Yappli video entry."""

    entry_id: str
    video_url: str
    title: str
    upload_title: str
    description: str
    thumbnail_url: str


__all__ = ["EndpointSpec", "ResolvedVideo"]
