"""CLI output formatting utilities."""

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from clipnote.core.models import CaptureOutcome, ClipStatus, PodcastClip, ResolvedEpisode
from clipnote.core.notes import format_timestamp

STATUS_STYLES = {
    ClipStatus.PENDING: "yellow",
    ClipStatus.RESOLVED: "green",
    ClipStatus.FAILED: "red",
}


def display_outcome(outcome: CaptureOutcome, console: Console, verbose: bool = False) -> None:
    """Display the result of a capture."""
    clip = outcome.clip
    if clip is None:
        return

    # Titles and URLs come from feeds and players, never treat them as markup
    style = STATUS_STYLES[clip.processing_status]
    console.print(
        f"Captured [bold]{escape(clip.episode_title)}[/bold] ({escape(clip.podcast_name)}) "
        f"at {format_timestamp(clip.playback_position)} "
        f"[{style}]{clip.processing_status.value}[/{style}]"
    )

    if clip.source_url:
        console.print(f"  Episode: [cyan]{escape(clip.source_url)}[/cyan]")
    if verbose and clip.episode_audio_url:
        console.print(f"  Audio:   [cyan]{escape(clip.episode_audio_url)}[/cyan]")
    if clip.transcript:
        console.print(f"  Transcript: {len(clip.transcript.split())} words")
    if outcome.note is not None:
        console.print(f"  Note: {escape(outcome.note.title)}")


def print_warning(message: str, console: Console) -> None:
    """Print a warning message."""
    console.print(f"[yellow]Warning:[/yellow] {escape(message)}")


def display_warnings(outcome: CaptureOutcome, console: Console) -> None:
    """Display the stage warnings of a capture."""
    for warning in outcome.warnings:
        console.print(f"[yellow]Warning ({warning.stage}):[/yellow] {escape(warning.message)}")


def display_resolved(episode: ResolvedEpisode, console: Console) -> None:
    """Display a resolved episode."""
    console.print(f"Feed:    [cyan]{escape(episode.feed_url)}[/cyan]")
    console.print(f"Audio:   [cyan]{escape(episode.audio_url or '-')}[/cyan]")
    console.print(f"Episode: [cyan]{escape(episode.page_url or '-')}[/cyan]")


def display_clips(clips: list[PodcastClip], console: Console) -> None:
    """Display stored clips in a table."""
    if not clips:
        console.print("[yellow]No clips captured yet.[/yellow]")
        return

    table = Table(title="Podcast Clips")
    table.add_column("Captured", style="dim")
    table.add_column("Episode", style="bold")
    table.add_column("Podcast")
    table.add_column("At", style="cyan")
    table.add_column("Status")

    for clip in clips:
        style = STATUS_STYLES[clip.processing_status]
        table.add_row(
            clip.captured_at.strftime("%Y-%m-%d %H:%M"),
            Text(clip.episode_title),
            Text(clip.podcast_name),
            format_timestamp(clip.playback_position),
            f"[{style}]{clip.processing_status.value}[/{style}]",
        )

    console.print(table)
