"""Clip and note persistence.

``ClipStore`` is what the capture pipeline talks to. ``FileClipStore``
keeps clips as YAML documents and notes as Markdown files with YAML
frontmatter; ``InMemoryClipStore`` keeps everything in dicts.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import yaml

from clipnote.core.errors import StoreError
from clipnote.core.models import (
    DEFAULT_CLIP_DURATION,
    ClipStatus,
    Note,
    NoteSource,
    NowPlayingSnapshot,
    PodcastClip,
)
from clipnote.core.notes import render_note_markdown

CLIPS_DIRNAME = "clips"
NOTES_DIRNAME = "notes"
ARTWORK_SUFFIX = ".artwork"


@runtime_checkable
class ClipStore(Protocol):
    """Persistence operations used by the capture pipeline."""

    def create_clip(
        self,
        snapshot: NowPlayingSnapshot,
        clip_duration: float = DEFAULT_CLIP_DURATION,
    ) -> PodcastClip: ...

    def create_note(
        self,
        title: str,
        body: str,
        source: NoteSource = NoteSource.PODCAST,
    ) -> Note: ...

    def save(self) -> None: ...


def clip_from_snapshot(snapshot: NowPlayingSnapshot, clip_duration: float) -> PodcastClip:
    """Build a pending clip from a now-playing snapshot."""
    return PodcastClip(
        episode_title=snapshot.title,
        podcast_name=snapshot.podcast_name,
        playback_position=snapshot.elapsed_seconds,
        clip_duration=clip_duration,
        artwork=snapshot.artwork,
    )


class InMemoryClipStore:
    """Keeps clips and notes in memory."""

    def __init__(self) -> None:
        self.clips: dict[str, PodcastClip] = {}
        self.notes: dict[str, Note] = {}
        self.save_count = 0

    def create_clip(
        self,
        snapshot: NowPlayingSnapshot,
        clip_duration: float = DEFAULT_CLIP_DURATION,
    ) -> PodcastClip:
        clip = clip_from_snapshot(snapshot, clip_duration)
        self.clips[clip.id] = clip
        return clip

    def create_note(
        self,
        title: str,
        body: str,
        source: NoteSource = NoteSource.PODCAST,
    ) -> Note:
        note = Note(title=title, body=body, source=source)
        self.notes[note.id] = note
        return note

    def save(self) -> None:
        self.save_count += 1


def clip_to_dict(clip: PodcastClip) -> dict[str, Any]:
    """Serialize a clip to plain YAML-safe values. Artwork is stored separately."""
    return {
        "id": clip.id,
        "captured_at": clip.captured_at.isoformat(),
        "episode_title": clip.episode_title,
        "podcast_name": clip.podcast_name,
        "playback_position": clip.playback_position,
        "clip_duration": clip.clip_duration,
        "feed_url": clip.feed_url,
        "episode_audio_url": clip.episode_audio_url,
        "source_url": clip.source_url,
        "transcript": clip.transcript,
        "user_notes": clip.user_notes,
        "processing_status": clip.processing_status.value,
        "note_id": clip.note_id,
    }


def clip_from_dict(data: dict[str, Any]) -> PodcastClip:
    """Deserialize a clip written by ``clip_to_dict``.

    Raises:
        StoreError: If required fields are missing or malformed.
    """
    try:
        return PodcastClip(
            id=str(data["id"]),
            captured_at=datetime.fromisoformat(str(data["captured_at"])),
            episode_title=str(data["episode_title"]),
            podcast_name=str(data["podcast_name"]),
            playback_position=float(data["playback_position"]),
            clip_duration=float(data.get("clip_duration", DEFAULT_CLIP_DURATION)),
            feed_url=data.get("feed_url"),
            episode_audio_url=data.get("episode_audio_url"),
            source_url=data.get("source_url"),
            transcript=data.get("transcript"),
            user_notes=data.get("user_notes"),
            processing_status=ClipStatus(data.get("processing_status", "pending")),
            note_id=data.get("note_id"),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise StoreError(f"Malformed clip record: {e}") from e


class FileClipStore:
    """Stores clips as YAML and notes as Markdown under a data directory."""

    def __init__(self, data_dir: Path) -> None:
        self.data_dir = Path(data_dir)
        self._clips: dict[str, PodcastClip] = {}
        self._notes: dict[str, Note] = {}
        self.load_warnings: list[str] = []

    @property
    def clips_dir(self) -> Path:
        return self.data_dir / CLIPS_DIRNAME

    @property
    def notes_dir(self) -> Path:
        return self.data_dir / NOTES_DIRNAME

    def clip_path(self, clip_id: str) -> Path:
        return self.clips_dir / f"{clip_id}.yaml"

    def note_path(self, note_id: str) -> Path:
        return self.notes_dir / f"{note_id}.md"

    def create_clip(
        self,
        snapshot: NowPlayingSnapshot,
        clip_duration: float = DEFAULT_CLIP_DURATION,
    ) -> PodcastClip:
        clip = clip_from_snapshot(snapshot, clip_duration)
        self._clips[clip.id] = clip
        return clip

    def create_note(
        self,
        title: str,
        body: str,
        source: NoteSource = NoteSource.PODCAST,
    ) -> Note:
        note = Note(title=title, body=body, source=source)
        self._notes[note.id] = note
        return note

    def save(self) -> None:
        """Write every clip and note created through this store.

        Raises:
            StoreError: If a file cannot be written.
        """
        try:
            self.clips_dir.mkdir(parents=True, exist_ok=True)
            self.notes_dir.mkdir(parents=True, exist_ok=True)

            for clip in self._clips.values():
                self.clip_path(clip.id).write_text(
                    yaml.safe_dump(clip_to_dict(clip), allow_unicode=True, sort_keys=False),
                    encoding="utf-8",
                )
                if clip.artwork:
                    self.clip_path(clip.id).with_suffix(ARTWORK_SUFFIX).write_bytes(clip.artwork)

            for note in self._notes.values():
                self.note_path(note.id).write_text(render_note_markdown(note), encoding="utf-8")
        except OSError as e:
            raise StoreError(f"Failed to write to {self.data_dir}: {e}") from e

    def load_clip(self, path: Path) -> PodcastClip:
        """Read one stored clip record.

        Raises:
            StoreError: If the file cannot be read or is not a clip record.
        """
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as e:
            raise StoreError(f"Failed to read clip {path}: {e}") from e
        if not isinstance(data, dict):
            raise StoreError(f"Malformed clip record in {path}")

        try:
            clip = clip_from_dict(data)
        except StoreError as e:
            raise StoreError(f"{e} (in {path})") from e

        artwork_path = path.with_suffix(ARTWORK_SUFFIX)
        try:
            if artwork_path.exists():
                clip.artwork = artwork_path.read_bytes()
        except OSError as e:
            raise StoreError(f"Failed to read artwork {artwork_path}: {e}") from e
        return clip

    def load_clips(self) -> list[PodcastClip]:
        """Read all stored clips, most recent capture first.

        Records that cannot be read are skipped; their errors are left in
        ``load_warnings`` until the next call.
        """
        self.load_warnings = []
        if not self.clips_dir.exists():
            return []

        clips: list[PodcastClip] = []
        for path in sorted(self.clips_dir.glob("*.yaml")):
            try:
                clips.append(self.load_clip(path))
            except StoreError as e:
                self.load_warnings.append(str(e))

        clips.sort(key=lambda c: c.captured_at, reverse=True)
        return clips
