"""Tests for the CLI interface."""

from __future__ import annotations

import io
from datetime import UTC, datetime
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from rich.console import Console
from typer.testing import CliRunner

from clipnote import __version__
from clipnote.cli.main import app
from clipnote.cli.output import display_outcome, display_warnings
from clipnote.core.errors import PodcastNotFoundError
from clipnote.core.models import (
    CaptureOutcome,
    ClipStatus,
    Note,
    NowPlayingSnapshot,
    PodcastClip,
    ResolvedEpisode,
    StageWarning,
)
from clipnote.core.store import FileClipStore
from clipnote.services.nowplaying import ManualNowPlayingProbe, PlayerctlNowPlayingProbe

runner = CliRunner()


@pytest.fixture
def config_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolated config files and data directory for each CLI run."""
    monkeypatch.setattr("clipnote.core.config.GLOBAL_CONFIG_PATH", tmp_path / "global" / "config")
    monkeypatch.setenv("CLIPNOTE_DATA_DIR", str(tmp_path / "data"))
    return tmp_path / "local" / "config"


def _mock_orchestrator(outcome: CaptureOutcome) -> MagicMock:
    orchestrator = MagicMock()
    orchestrator.capture = AsyncMock(return_value=outcome)
    return orchestrator


def _resolved_outcome() -> CaptureOutcome:
    clip = PodcastClip(
        episode_title="Episode 42: Scaling",
        podcast_name="Tech Weekly",
        playback_position=930,
        source_url="https://example.com/episodes/42",
    )
    clip.processing_status = ClipStatus.RESOLVED
    note = Note(title="Episode 42: Scaling - Tech Weekly", body="", clip_id=clip.id)
    return CaptureOutcome(clip=clip, note=note)


class TestVersion:
    """Tests for --version."""

    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert f"clipnote version {__version__}" in result.output


class TestConfigLoading:
    """Tests for configuration handling in the CLI callback."""

    def test_creates_local_config(self, config_path: Path) -> None:
        result = runner.invoke(app, ["--config", str(config_path), "clips"])

        assert result.exit_code == 0
        assert config_path.exists()

    def test_invalid_config_exits(self, config_path: Path) -> None:
        config_path.parent.mkdir(parents=True)
        config_path.write_text('[whisper]\nmodel = "enormous"\n')

        result = runner.invoke(app, ["--config", str(config_path), "clips"])

        assert result.exit_code == 1
        assert "Invalid whisper model" in result.output


class TestCaptureCommand:
    """Tests for the capture command."""

    def test_manual_capture(self, config_path: Path) -> None:
        orchestrator = _mock_orchestrator(_resolved_outcome())

        with patch(
            "clipnote.core.capture.CaptureOrchestrator.from_config", return_value=orchestrator
        ) as from_config:
            result = runner.invoke(
                app,
                [
                    "--config",
                    str(config_path),
                    "capture",
                    "--title",
                    "Episode 42: Scaling",
                    "--podcast",
                    "Tech Weekly",
                    "--position",
                    "15:30",
                    "--duration",
                    "30",
                    "--notes",
                    "sharding",
                ],
            )

        assert result.exit_code == 0, result.output
        probe = from_config.call_args.args[1]
        assert isinstance(probe, ManualNowPlayingProbe)
        assert probe.elapsed_seconds == 930
        orchestrator.capture.assert_awaited_once_with(30.0, user_notes="sharding")
        assert "Episode 42: Scaling" in result.output
        assert "15:30" in result.output
        assert "resolved" in result.output

    def test_player_probe_by_default(self, config_path: Path) -> None:
        orchestrator = _mock_orchestrator(_resolved_outcome())

        with patch(
            "clipnote.core.capture.CaptureOrchestrator.from_config", return_value=orchestrator
        ) as from_config:
            result = runner.invoke(
                app, ["--config", str(config_path), "capture", "--player", "spotify"]
            )

        assert result.exit_code == 0, result.output
        probe = from_config.call_args.args[1]
        assert isinstance(probe, PlayerctlNowPlayingProbe)
        assert probe.player == "spotify"

    def test_nothing_playing_exits_with_error(self, config_path: Path) -> None:
        outcome = CaptureOutcome(
            warnings=[StageWarning("now_playing", "No media currently playing")]
        )

        with patch(
            "clipnote.core.capture.CaptureOrchestrator.from_config",
            return_value=_mock_orchestrator(outcome),
        ):
            result = runner.invoke(app, ["--config", str(config_path), "capture"])

        assert result.exit_code == 1
        assert "No media currently playing" in result.output

    def test_warnings_are_shown(self, config_path: Path) -> None:
        outcome = _resolved_outcome()
        outcome.warnings.append(StageWarning("extract", "Audio export failed"))

        with patch(
            "clipnote.core.capture.CaptureOrchestrator.from_config",
            return_value=_mock_orchestrator(outcome),
        ):
            result = runner.invoke(app, ["--config", str(config_path), "capture"])

        assert result.exit_code == 0
        assert "Warning (extract)" in result.output
        assert "Audio export failed" in result.output

    def test_quiet_suppresses_output(self, config_path: Path) -> None:
        with patch(
            "clipnote.core.capture.CaptureOrchestrator.from_config",
            return_value=_mock_orchestrator(_resolved_outcome()),
        ):
            result = runner.invoke(app, ["--quiet", "--config", str(config_path), "capture"])

        assert result.exit_code == 0
        assert result.output.strip() == ""

    def test_title_without_podcast(self, config_path: Path) -> None:
        result = runner.invoke(
            app, ["--config", str(config_path), "capture", "--title", "Episode 42"]
        )

        assert result.exit_code == 2
        assert "must be given together" in result.output

    def test_invalid_position(self, config_path: Path) -> None:
        result = runner.invoke(
            app,
            [
                "--config",
                str(config_path),
                "capture",
                "--title",
                "Episode 42",
                "--podcast",
                "Tech Weekly",
                "--position",
                "later",
            ],
        )

        assert result.exit_code == 2
        assert "Invalid position" in result.output


class TestResolveCommand:
    """Tests for the resolve command."""

    def test_resolve(self, config_path: Path) -> None:
        resolved = ResolvedEpisode(
            feed_url="https://example.com/feed.xml",
            audio_url="https://cdn.example.com/42.mp3",
            page_url=None,
        )

        with patch(
            "clipnote.services.resolver.EpisodeResolver.resolve",
            new=AsyncMock(return_value=resolved),
        ) as resolve:
            result = runner.invoke(
                app, ["--config", str(config_path), "resolve", "Tech Weekly", "Episode 42"]
            )

        assert result.exit_code == 0, result.output
        resolve.assert_awaited_once_with("Tech Weekly", "Episode 42")
        assert "https://example.com/feed.xml" in result.output
        assert "https://cdn.example.com/42.mp3" in result.output

    def test_resolution_failure(self, config_path: Path) -> None:
        with patch(
            "clipnote.services.resolver.EpisodeResolver.resolve",
            new=AsyncMock(side_effect=PodcastNotFoundError("Podcast 'Nope' not found")),
        ):
            result = runner.invoke(
                app, ["--config", str(config_path), "resolve", "Nope", "Episode 42"]
            )

        assert result.exit_code == 1
        assert "Podcast 'Nope' not found" in result.output


class TestClipsCommand:
    """Tests for the clips command."""

    def test_no_clips(self, config_path: Path) -> None:
        result = runner.invoke(app, ["--config", str(config_path), "clips"])

        assert result.exit_code == 0
        assert "No clips captured yet." in result.output

    def test_lists_stored_clips(self, config_path: Path, tmp_path: Path) -> None:
        store = FileClipStore(tmp_path / "data")
        clip = store.create_clip(NowPlayingSnapshot("Ep 42", "Tech Weekly", 930))
        clip.captured_at = datetime(2024, 1, 2, 10, 0, tzinfo=UTC)
        clip.mark_failed()
        store.save()

        result = runner.invoke(app, ["--config", str(config_path), "clips"])

        assert result.exit_code == 0, result.output
        assert "Ep 42" in result.output
        assert "Tech Weekly" in result.output
        assert "15:30" in result.output
        assert "failed" in result.output

    def test_malformed_record_does_not_hide_others(
        self, config_path: Path, tmp_path: Path
    ) -> None:
        store = FileClipStore(tmp_path / "data")
        store.create_clip(NowPlayingSnapshot("Ep 42", "Tech Weekly", 930))
        store.save()
        (store.clips_dir / "bad.yaml").write_text("just a string\n")

        result = runner.invoke(app, ["--config", str(config_path), "clips"])

        assert result.exit_code == 0, result.output
        assert "Warning:" in result.output
        assert "Malformed clip record" in result.output
        assert "Ep 42" in result.output

    def test_titles_are_not_parsed_as_markup(self, config_path: Path, tmp_path: Path) -> None:
        store = FileClipStore(tmp_path / "data")
        store.create_clip(NowPlayingSnapshot("Ep 1 [/Replay]", "[bold]Show", 5))
        store.save()

        result = runner.invoke(app, ["--config", str(config_path), "clips"])

        assert result.exit_code == 0, result.output
        assert "[/Replay]" in result.output
        assert "[bold]Show" in result.output


class TestDisplayOutcome:
    """Tests for capture outcome rendering."""

    def test_bracketed_titles_are_printed_literally(self) -> None:
        clip = PodcastClip(
            episode_title="Ep 1 [/Replay]",
            podcast_name="[red]Show",
            playback_position=930,
        )
        clip.mark_failed()
        outcome = CaptureOutcome(
            clip=clip,
            note=Note(title="Ep 1 [/Replay] - [red]Show", body=""),
            warnings=[StageWarning("resolve", "Podcast '[/x]' not found")],
        )
        buffer = io.StringIO()
        console = Console(file=buffer, width=120)

        display_warnings(outcome, console)
        display_outcome(outcome, console)

        output = buffer.getvalue()
        assert "Captured Ep 1 [/Replay] ([red]Show) at 15:30 failed" in output
        assert "Note: Ep 1 [/Replay] - [red]Show" in output
        assert "Podcast '[/x]' not found" in output
