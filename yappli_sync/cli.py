"""Command line interface for the Yappli sync job."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Sequence

from .app import RunSummary, YappliSync
from .config import AppConfig, load_config
from .logging_utils import configure_logging
from .scheduler import SchedulerManager

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        description="Mirror Yappli videos to local MP4 files and optionally upload them to YouTube."
    )
    p.add_argument("--env-file", type=Path, help="Path to a .env file (default: ./.env)")
    p.add_argument("--upload", action="store_true", help="Upload converted videos to YouTube")
    p.add_argument("--playlist", action="store_true", help="Add uploaded videos to PLAYLIST_ID")
    p.add_argument("--every", type=int, metavar="MINUTES", help="Keep running, syncing every MINUTES")
    p.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return p


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    args = build_parser().parse_args(argv)
    if args.every is not None and args.every < 1:
        build_parser().error("--every must be a positive number of minutes")
    return args


def apply_cli_overrides(config: AppConfig, args: argparse.Namespace) -> AppConfig:
    """Switches given on the command line win over environment configuration."""
    update: dict[str, object] = {}
    if args.upload:
        update["upload_enabled"] = True
    if args.playlist:
        update["playlist_enabled"] = True
    if args.every:
        update["schedule_interval_minutes"] = args.every
    return config.model_copy(update=update) if update else config


def run(args: argparse.Namespace) -> RunSummary | None:
    """Load configuration, then sync once or on the configured interval."""
    config = apply_cli_overrides(load_config(args.env_file), args)
    configure_logging(config, verbose=args.verbose)

    app = YappliSync(config)
    try:
        if config.schedule_interval_minutes:
            scheduler = SchedulerManager()
            scheduler.add_interval_job(app.run, minutes=config.schedule_interval_minutes)
            try:
                scheduler.start()
            except (KeyboardInterrupt, SystemExit):
                scheduler.shutdown()
            return None
        return app.run()
    finally:
        app.close()

def main(argv: Sequence[str] | None = None) -> int:
    run(parse_args(argv))
    return 0
