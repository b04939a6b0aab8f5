"""Data models for clipnote."""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from enum import Enum
from pathlib import Path
from types import TracebackType

from clipnote.core.errors import ClipStateError

DEFAULT_CLIP_DURATION = 60.0


def _new_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class NowPlayingSnapshot:
    """Point-in-time read of externally playing media.

    Attributes:
        title: Title reported by the player (usually the episode title).
        podcast_name: Artist field reported by the player (the podcast name).
        elapsed_seconds: Play head position in seconds.
        artwork: Optional artwork image bytes.
    """

    title: str
    podcast_name: str
    elapsed_seconds: float = 0.0
    artwork: bytes | None = None

    def __post_init__(self) -> None:
        if self.elapsed_seconds < 0:
            object.__setattr__(self, "elapsed_seconds", 0.0)


class ClipStatus(str, Enum):
    """Processing status of a clip's metadata resolution."""

    PENDING = "pending"
    RESOLVED = "resolved"
    FAILED = "failed"


class NoteSource(str, Enum):
    """Identifies how a note was created."""

    MANUAL = "manual"
    PODCAST = "podcast"


@dataclass
class PodcastClip:
    """A captured reference to a moment in a podcast episode."""

    episode_title: str
    podcast_name: str
    playback_position: float
    clip_duration: float = DEFAULT_CLIP_DURATION
    id: str = field(default_factory=_new_id)
    captured_at: datetime = field(default_factory=_utcnow)
    feed_url: str | None = None
    episode_audio_url: str | None = None
    source_url: str | None = None
    transcript: str | None = None
    user_notes: str | None = None
    artwork: bytes | None = None
    processing_status: ClipStatus = ClipStatus.PENDING
    note_id: str | None = None

    def mark_resolved(self, episode: ResolvedEpisode) -> None:
        """Apply resolved episode metadata and move to ``resolved``."""
        self._transition(ClipStatus.RESOLVED)
        self.feed_url = episode.feed_url
        self.episode_audio_url = episode.audio_url
        self.source_url = episode.page_url

    def mark_failed(self) -> None:
        """Move to ``failed`` after an unsuccessful resolution."""
        self._transition(ClipStatus.FAILED)

    def _transition(self, status: ClipStatus) -> None:
        if self.processing_status is not ClipStatus.PENDING:
            raise ClipStateError(
                f"Clip {self.id} cannot move from "
                f"{self.processing_status.value} to {status.value}"
            )
        self.processing_status = status


@dataclass
class Note:
    """A note materialized from a clip."""

    title: str
    body: str
    source: NoteSource = NoteSource.MANUAL
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=_utcnow)
    clip_id: str | None = None


@dataclass(frozen=True)
class ResolvedEpisode:
    """Verified episode metadata produced by the resolver."""

    feed_url: str
    audio_url: str | None = None
    page_url: str | None = None


_DURATION_PATTERN = re.compile(r"^(?:(\d+):)?(\d{1,2}):(\d{1,2})$")


@dataclass(frozen=True)
class CatalogEntry:
    """One ``<item>`` from a podcast feed."""

    title: str
    audio_url: str | None = None
    duration_text: str | None = None
    page_url: str | None = None
    pub_date_text: str | None = None

    @property
    def published(self) -> datetime | None:
        """Publication date parsed from RFC 2822 or ISO text."""
        if not self.pub_date_text:
            return None
        try:
            return parsedate_to_datetime(self.pub_date_text)
        except (ValueError, TypeError):
            try:
                return datetime.fromisoformat(self.pub_date_text.replace("Z", "+00:00"))
            except ValueError:
                return None

    @property
    def duration_seconds(self) -> int | None:
        """Duration parsed from ``HH:MM:SS``, ``MM:SS`` or plain seconds."""
        if not self.duration_text:
            return None
        text = self.duration_text.strip()
        if text.isdigit():
            return int(text)
        match = _DURATION_PATTERN.match(text)
        if not match:
            return None
        hours, minutes, seconds = match.groups()
        return int(hours or 0) * 3600 + int(minutes) * 60 + int(seconds)


@dataclass(frozen=True)
class ClipWindow:
    """Time range, in seconds, of an audio segment."""

    start: float
    end: float

    @property
    def length(self) -> float:
        return max(0.0, self.end - self.start)


@dataclass
class ExtractedSegment:
    """Local, time-bounded copy of remote audio.

    The holder owns the file and is responsible for calling ``cleanup``.
    """

    path: Path
    window: ClipWindow

    def cleanup(self) -> bool:
        """Delete the segment file. Returns True if a file was removed."""
        try:
            if self.path.exists():
                self.path.unlink()
                return True
            return False
        except OSError:
            return False

    def __enter__(self) -> ExtractedSegment:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.cleanup()


class CaptureState(str, Enum):
    """Lifecycle of the capture orchestrator."""

    IDLE = "idle"
    CAPTURING = "capturing"


@dataclass
class StageWarning:
    """A non-fatal failure recorded during a capture."""

    stage: str
    message: str


@dataclass
class CaptureOutcome:
    """Result of one ``capture`` call.

    Attributes:
        clip: The clip created, or None when nothing was playing.
        note: The note materialized from the clip, if any.
        warnings: Per-stage failures in the order they happened.
        skipped: True when the call was dropped because a capture was running.
    """

    clip: PodcastClip | None = None
    note: Note | None = None
    warnings: list[StageWarning] = field(default_factory=list)
    skipped: bool = False

    @property
    def last_error(self) -> str | None:
        return self.warnings[-1].message if self.warnings else None
