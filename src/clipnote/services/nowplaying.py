"""Now-playing probes.

A probe answers "what is playing right now?" with a NowPlayingSnapshot, or
None when nothing usable is playing. Probes never raise.
"""

from __future__ import annotations

import asyncio
import math
import re
import shutil
import subprocess
from typing import Protocol, runtime_checkable

from clipnote.core.models import NowPlayingSnapshot

PLAYERCTL_BINARY = "playerctl"
PLAYERCTL_TIMEOUT = 5.0
# playerctl reports the position in microseconds
PLAYERCTL_FORMAT = "{{title}}\t{{artist}}\t{{position}}"

_TIMESTAMP_PATTERN = re.compile(r"^(?:(\d+):)?(\d+):(\d{1,2}(?:\.\d+)?)$")


@runtime_checkable
class NowPlayingProbe(Protocol):
    async def get_currently_playing(self) -> NowPlayingSnapshot | None: ...


def parse_timestamp(value: str) -> float:
    """Parse ``H:MM:SS``, ``M:SS`` or plain seconds into seconds.

    Raises:
        ValueError: If the value is not a non-negative timestamp.
    """
    text = value.strip()
    match = _TIMESTAMP_PATTERN.match(text)
    if match:
        hours, minutes, seconds = match.groups()
        return int(hours or 0) * 3600 + int(minutes) * 60 + float(seconds)

    seconds = float(text)
    if not math.isfinite(seconds) or seconds < 0:
        raise ValueError(f"Timestamp must be a non-negative number: {value}")
    return seconds


class ManualNowPlayingProbe:
    """Probe fed by the user: title, podcast and position typed in by hand."""

    def __init__(
        self,
        title: str,
        podcast_name: str,
        elapsed_seconds: float = 0.0,
        artwork: bytes | None = None,
    ) -> None:
        self.title = title
        self.podcast_name = podcast_name
        self.elapsed_seconds = elapsed_seconds
        self.artwork = artwork

    async def get_currently_playing(self) -> NowPlayingSnapshot | None:
        if not self.title.strip() or not self.podcast_name.strip():
            return None
        return NowPlayingSnapshot(
            title=self.title.strip(),
            podcast_name=self.podcast_name.strip(),
            elapsed_seconds=self.elapsed_seconds,
            artwork=self.artwork,
        )


class PlayerctlNowPlayingProbe:
    """Reads the MPRIS now-playing metadata through ``playerctl``."""

    def __init__(self, player: str | None = None, binary: str = PLAYERCTL_BINARY) -> None:
        self.player = player
        self.binary = binary

    def _command(self) -> list[str]:
        command = [self.binary]
        if self.player:
            command.extend(["--player", self.player])
        command.extend(["metadata", "--format", PLAYERCTL_FORMAT])
        return command

    def read_sync(self) -> NowPlayingSnapshot | None:
        """Blocking variant of ``get_currently_playing``."""
        if shutil.which(self.binary) is None:
            return None

        try:
            result = subprocess.run(
                self._command(),
                capture_output=True,
                text=True,
                timeout=PLAYERCTL_TIMEOUT,
            )
        except (OSError, subprocess.TimeoutExpired):
            return None

        if result.returncode != 0:
            return None

        parts = result.stdout.rstrip("\n").split("\t")
        if len(parts) != 3:
            return None

        title, artist, position = (part.strip() for part in parts)
        if not title or not artist:
            return None

        try:
            elapsed = int(position) / 1_000_000 if position else 0.0
        except ValueError:
            elapsed = 0.0

        return NowPlayingSnapshot(title=title, podcast_name=artist, elapsed_seconds=elapsed)

    async def get_currently_playing(self) -> NowPlayingSnapshot | None:
        return await asyncio.to_thread(self.read_sync)
