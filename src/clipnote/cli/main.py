"""Main CLI application for clipnote."""

import asyncio
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape

from clipnote.core.config import Config, Verbosity

app = typer.Typer(
    name="clipnote",
    help="Capture the podcast moment you are listening to as a linked note.",
    no_args_is_help=True,
)

console = Console()
error_console = Console(stderr=True)


class State:
    """Global CLI state."""

    def __init__(self) -> None:
        self.verbosity: Verbosity = Verbosity.NORMAL
        self.config: Config | None = None


state = State()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        from clipnote import __version__

        console.print(f"clipnote version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose output"),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Suppress all output except errors"),
    ] = False,
    config_path: Annotated[
        str | None,
        typer.Option("--config", help="Path to configuration file"),
    ] = None,
    version: Annotated[  # noqa: ARG001
        bool,
        typer.Option("--version", callback=version_callback, is_eager=True, help="Show version"),
    ] = False,
) -> None:
    """clipnote - podcast clip capture tool."""
    from clipnote.core.config import load_config
    from clipnote.core.errors import ConfigError

    if quiet:
        state.verbosity = Verbosity.QUIET
    elif verbose:
        state.verbosity = Verbosity.VERBOSE
    else:
        state.verbosity = Verbosity.NORMAL

    try:
        state.config = load_config(local_path=Path(config_path) if config_path else None)
    except ConfigError as e:
        error_console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1) from None


@app.command()
def capture(
    title: Annotated[
        str | None,
        typer.Option("--title", "-t", help="Episode title (skips the player probe)"),
    ] = None,
    podcast: Annotated[
        str | None,
        typer.Option("--podcast", "-p", help="Podcast name (skips the player probe)"),
    ] = None,
    position: Annotated[
        str,
        typer.Option("--position", help="Playback position as H:MM:SS, M:SS or seconds"),
    ] = "0",
    duration: Annotated[
        float | None,
        typer.Option("--duration", "-d", help="Clip length in seconds"),
    ] = None,
    notes: Annotated[
        str | None,
        typer.Option("--notes", "-n", help="Notes to attach to the clip"),
    ] = None,
    player: Annotated[
        str | None,
        typer.Option("--player", help="playerctl player name to read from"),
    ] = None,
) -> None:
    """Capture the currently playing podcast moment as a note."""
    from rich.progress import Progress, SpinnerColumn, TextColumn

    from clipnote.cli.output import display_outcome, display_warnings
    from clipnote.core.capture import CaptureOrchestrator
    from clipnote.services.nowplaying import (
        ManualNowPlayingProbe,
        NowPlayingProbe,
        PlayerctlNowPlayingProbe,
        parse_timestamp,
    )

    assert state.config is not None

    probe: NowPlayingProbe
    if title or podcast:
        if not (title and podcast):
            error_console.print("[red]Error:[/red] --title and --podcast must be given together")
            raise typer.Exit(2)
        try:
            elapsed = parse_timestamp(position)
        except ValueError:
            error_console.print(f"[red]Error:[/red] Invalid position: {escape(position)}")
            raise typer.Exit(2) from None
        probe = ManualNowPlayingProbe(title, podcast, elapsed)
    else:
        probe = PlayerctlNowPlayingProbe(player=player)

    orchestrator = CaptureOrchestrator.from_config(state.config, probe)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        disable=state.verbosity == Verbosity.QUIET,
        transient=True,
    ) as progress:
        progress.add_task("Capturing clip...", total=None)
        outcome = asyncio.run(orchestrator.capture(duration, user_notes=notes))

    if outcome.clip is None:
        error_console.print(f"[red]Error:[/red] {escape(outcome.last_error or '')}")
        raise typer.Exit(1)

    if state.verbosity != Verbosity.QUIET:
        display_warnings(outcome, error_console)
        display_outcome(outcome, console, verbose=state.verbosity == Verbosity.VERBOSE)


@app.command()
def resolve(
    podcast: Annotated[str, typer.Argument(help="Podcast name")],
    episode: Annotated[str, typer.Argument(help="Episode title")],
) -> None:
    """Resolve a podcast episode to its feed, audio and page URLs."""
    from clipnote.cli.output import display_resolved
    from clipnote.core.errors import ResolutionError
    from clipnote.services.directory import PodcastDirectoryClient
    from clipnote.services.resolver import EpisodeResolver

    assert state.config is not None

    directory = PodcastDirectoryClient(
        search_url=state.config.directory.search_url,
        result_limit=state.config.directory.result_limit,
        timeout=state.config.http.timeout,
    )
    resolver = EpisodeResolver(directory=directory, timeout=state.config.http.timeout)

    try:
        resolved = asyncio.run(resolver.resolve(podcast, episode))
    except ResolutionError as e:
        error_console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1) from None

    if state.verbosity != Verbosity.QUIET:
        display_resolved(resolved, console)


@app.command()
def clips() -> None:
    """List captured clips, most recent first."""
    from clipnote.cli.output import display_clips, print_warning
    from clipnote.core.store import FileClipStore

    assert state.config is not None

    store = FileClipStore(state.config.get_data_dir())
    stored = store.load_clips()

    if state.verbosity != Verbosity.QUIET:
        for message in store.load_warnings:
            print_warning(message, error_console)
        display_clips(stored, console)


if __name__ == "__main__":
    app()
