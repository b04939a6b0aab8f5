"""Note composition for podcast clips.

Builds the note title and Markdown body from whatever the capture pipeline
managed to collect, and renders notes as Markdown with YAML frontmatter.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import yaml

if TYPE_CHECKING:
    from clipnote.core.models import Note, PodcastClip

NOTE_TITLE_PREFIX = "\U0001f399\ufe0f"


def format_timestamp(seconds: float) -> str:
    """Format a playback position as ``H:MM:SS`` or ``M:SS``.

    Fractional seconds are truncated.

    Examples:
        >>> format_timestamp(930)
        '15:30'
        >>> format_timestamp(3723.9)
        '1:02:03'
    """
    total_seconds = int(max(0.0, seconds))
    hours, remainder = divmod(total_seconds, 3600)
    minutes, secs = divmod(remainder, 60)

    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def compose_note_title(clip: PodcastClip) -> str:
    """Compose a note title from the episode and podcast names."""
    parts = [part for part in (clip.episode_title.strip(), clip.podcast_name.strip()) if part]
    name = " - ".join(parts) or "Podcast clip"
    return f"{NOTE_TITLE_PREFIX} {name}"


def compose_note_body(clip: PodcastClip) -> str:
    """Compose the Markdown body of a clip note.

    The body always carries the raw episode, podcast and timestamp. The
    episode link, transcript and user notes are added when present.
    """
    lines = [
        "## Podcast Clip",
        "",
        f"**Episode:** {clip.episode_title}",
        f"**Podcast:** {clip.podcast_name}",
        f"**Timestamp:** {format_timestamp(clip.playback_position)}",
        "",
    ]

    if clip.source_url:
        lines.extend([f"[Open Episode]({clip.source_url})", ""])

    if clip.transcript and clip.transcript.strip():
        lines.extend(["### Transcript", "", clip.transcript.strip(), ""])

    if clip.user_notes and clip.user_notes.strip():
        lines.extend(["### Notes", "", clip.user_notes.strip()])

    return "\n".join(lines).rstrip() + "\n"


def _format_frontmatter(data: dict[str, Any]) -> str:
    yaml_content = yaml.safe_dump(
        data,
        default_flow_style=False,
        allow_unicode=True,
        sort_keys=False,
        width=80,
    )
    return f"---\n{yaml_content}---\n"


def render_note_markdown(note: Note) -> str:
    """Render a note as Markdown with YAML frontmatter."""
    frontmatter: dict[str, Any] = {
        "id": note.id,
        "title": note.title,
        "source": note.source.value,
        "created": note.created_at.isoformat(),
    }
    if note.clip_id:
        frontmatter["clip_id"] = note.clip_id

    return f"{_format_frontmatter(frontmatter)}\n{note.body}"
