"""Entry point for the Yappli video sync job."""

from __future__ import annotations

import json
import logging
import os
import socket
import sys
import threading
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Final, Sequence

from yappli_sync.cli import parse_args, run

LOGGER = logging.getLogger(__name__)
_RUN_GUARD: Final[threading.Lock] = threading.Lock()
_IS_RUNNING = False


@dataclass(frozen=True, slots=True)
class RunContext:
    """Captures immutable metadata for a single sync invocation."""

    trace_id: str
    instance_id: str
    wall_clock_ns: int

    @property
    def started_at_iso(self) -> str:
        """Return the ISO8601 timestamp (UTC) for when the run began."""
        seconds = self.wall_clock_ns / 1_000_000_000
        return datetime.fromtimestamp(seconds, tz=timezone.utc).isoformat().replace("+00:00", "Z")


def _build_run_context() -> RunContext:
    trace_id = os.getenv("YAPPLI_SYNC_TRACE_ID") or uuid.uuid4().hex
    instance_id = os.getenv("YAPPLI_SYNC_INSTANCE_ID") or socket.gethostname()
    return RunContext(trace_id=trace_id, instance_id=instance_id, wall_clock_ns=time.time_ns())


def _log_event(level: int, event: str, context: RunContext, **fields: Any) -> None:
    """Emit structured JSON logs with consistent tracing metadata."""
    payload: dict[str, Any] = {
        "event": event,
        "trace_id": context.trace_id,
        "instance_id": context.instance_id,
        "started_at": context.started_at_iso,
        **fields,
    }
    LOGGER.log(level, json.dumps(payload, default=str, separators=(",", ":")))


def _acquire_run_guard() -> bool:
    """Refuse a second concurrent run inside the same process."""
    global _IS_RUNNING
    with _RUN_GUARD:
        if _IS_RUNNING:
            return False
        _IS_RUNNING = True
        return True


def _release_run_guard() -> None:
    global _IS_RUNNING
    with _RUN_GUARD:
        _IS_RUNNING = False


def main(argv: Sequence[str] | None = None) -> int:
    """Parse arguments, then run the sync once or on a schedule."""
    args = parse_args(argv)
    context = _build_run_context()
    if not _acquire_run_guard():
        _log_event(logging.INFO, "sync.already_running", context, detail="duplicate_main_invocation")
        return 0

    run_start_ns = time.perf_counter_ns()
    try:
        summary = run(args)
        runtime_ms = (time.perf_counter_ns() - run_start_ns) / 1_000_000
        fields: dict[str, Any] = {"duration_ms": round(runtime_ms, 2)}
        if summary is not None:
            fields.update(completed=summary.completed, failed=summary.failed, uploaded=summary.uploaded)
        _log_event(logging.INFO, "sync.run_completed", context, **fields)
    except KeyboardInterrupt:
        _log_event(logging.WARNING, "sync.interrupted", context, signal="SIGINT")
        return 130
    except Exception as exc:
        error_fields = {"error_type": type(exc).__name__, "error_message": str(exc)}
        _log_event(logging.CRITICAL, "sync.run_failed", context, **error_fields)
        raise
    finally:
        _release_run_guard()
    return 0


if __name__ == "__main__":
    sys.exit(main())
