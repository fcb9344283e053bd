"""Media processing utilities built around ffmpeg and Pillow."""

from __future__ import annotations

import contextlib
import logging
import os
import subprocess
from pathlib import Path
from typing import Callable, Sequence

from PIL import Image

from ..errors import TranscodeError

logger = logging.getLogger(__name__)

VIDEO_SUFFIX = ".mp4"
THUMBNAIL_FORMAT = "JPEG"
THUMBNAIL_MIMETYPE = "image/jpeg"

Runner = Callable[..., subprocess.CompletedProcess]


def build_remux_command(ffmpeg: str, source: Path, destination: Path) -> list[str]:
    """Repackage an HLS manifest into MP4 without re-encoding."""
    return [
        ffmpeg,
        "-loglevel",
        "panic",
        "-protocol_whitelist",
        "file,http,https,tcp,tls,crypto",
        "-y",
        "-i",
        str(source),
        "-c",
        "copy",
        "-bsf:a",
        "aac_adtstoasc",
        "-f",
        "mp4",
        str(destination),
    ]


class Transcoder:
    """Invoke ffmpeg synchronously and publish its output only once it completed."""

    def __init__(self, ffmpeg: str = "ffmpeg", runner: Runner = subprocess.run) -> None:
        self.ffmpeg = ffmpeg
        self._run = runner

    def transcode(self, manifest: Path, title: str, directory: Path) -> Path:
        output = Path(directory) / f"{title}{VIDEO_SUFFIX}"
        if output.exists():
            logger.info("Skip converting because %s is already converted.", output)
            return output

        partial = output.with_name(f".{output.name}.part")
        cmd: Sequence[str] = build_remux_command(self.ffmpeg, Path(manifest), partial)
        logger.info("Start converting! -- %s", output)
        try:
            result = self._run(cmd, check=False, stdout=subprocess.DEVNULL, stderr=subprocess.PIPE)
        except OSError as exc:
            raise TranscodeError(f"Unable to run {self.ffmpeg}: {exc}") from exc

        if result.returncode != 0:
            with contextlib.suppress(OSError):
                os.remove(partial)
            message = f"ffmpeg exited with {result.returncode} for {manifest}"
            if result.stderr:
                message += f": {result.stderr.decode('utf-8', 'ignore').strip()}"
            raise TranscodeError(message)
        if not partial.exists():
            raise TranscodeError(f"ffmpeg reported success but produced no output for {manifest}")

        os.replace(partial, output)
        logger.info("Finished converting! -- %s", output)
        return output


def resize_thumbnail(source: Path, max_dimension: int) -> Path:
    """Shrink ``source`` to fit within ``max_dimension`` and re-encode it as JPEG.

    YouTube rejects thumbnails above 2MB; the Yappli originals regularly exceed it.
    """
    destination = source.with_name(f"{source.stem}_resized.jpg")
    logger.debug("Resizing thumbnail %s to %s", source, destination)
    with Image.open(source) as image:
        image.thumbnail((max_dimension, max_dimension))
        if image.mode not in ("RGB", "L"):
            image = image.convert("RGB")
        image.save(destination, format=THUMBNAIL_FORMAT, quality=90)
    return destination
