"""JSON-backed ledger of titles already uploaded to YouTube."""

from __future__ import annotations

import contextlib
import json
import logging
import os
from pathlib import Path

from .errors import LedgerError

logger = logging.getLogger(__name__)


class UploadLedger:
    """Persisted list of uploaded titles.

    Reads and writes are whole-file; callers must keep access sequential.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def _load(self) -> list[str]:
        if not self.path.exists():
            return []
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise LedgerError(f"Unable to read upload ledger {self.path}: {exc}") from exc
        if not isinstance(data, list):
            raise LedgerError(f"Upload ledger {self.path} must contain a JSON array")
        return [str(item) for item in data]

    def titles(self) -> list[str]:
        return self._load()

    def has_uploaded(self, title: str) -> bool:
        return title in self._load()

    def record_uploaded(self, title: str) -> None:
        titles = self._load()
        if title in titles:
            return
        titles.append(title)
        self._write(titles)
        logger.debug("Recorded %s in upload ledger %s", title, self.path)

    def _write(self, titles: list[str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self.path.with_name(f"{self.path.name}.tmp")
        try:
            temp_path.write_text(json.dumps(titles, ensure_ascii=False), encoding="utf-8")
            os.replace(temp_path, self.path)
        except OSError as exc:
            with contextlib.suppress(OSError):
                os.remove(temp_path)
            raise LedgerError(f"Unable to update upload ledger {self.path}: {exc}") from exc
