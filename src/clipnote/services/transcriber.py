"""Transcription port and the MLX-Whisper implementation.

Converts an extracted audio segment to text. The capture pipeline only
depends on ``TranscriptionPort``; ``WhisperTranscriber`` is the default
engine on Apple Silicon.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from clipnote.core.errors import TranscriptionError, TranscriptionUnavailableError

# Try to import mlx_whisper, it is an optional Apple Silicon extra
try:
    import mlx_whisper

    MLX_WHISPER_AVAILABLE = True
except ImportError:
    mlx_whisper = None  # type: ignore[assignment]
    MLX_WHISPER_AVAILABLE = False

# Default Whisper model
DEFAULT_MODEL = "base"

# Valid Whisper model names
VALID_MODELS = {"tiny", "base", "small", "medium", "large"}

# Mapping from simple model names to Hugging Face repo paths
MODEL_REPO_MAP = {
    "tiny": "mlx-community/whisper-tiny-mlx",
    "base": "mlx-community/whisper-base-mlx",
    "small": "mlx-community/whisper-small-mlx",
    "medium": "mlx-community/whisper-medium-mlx",
    "large": "mlx-community/whisper-large-v3-mlx",
}


@runtime_checkable
class TranscriptionPort(Protocol):
    """Anything that can turn a local audio file into text."""

    async def transcribe(self, audio_path: Path) -> str:
        """Transcribe the audio file.

        Raises:
            TranscriptionUnavailableError: If the engine cannot be used.
            TranscriptionError: If recognition fails.
        """
        ...


def _join_segments(result: dict[str, Any]) -> str:
    """Prefer the segment texts, falling back to the flat text field."""
    segments = result.get("segments") or []
    texts = [segment.get("text", "").strip() for segment in segments]
    joined = " ".join(text for text in texts if text)
    return joined or str(result.get("text", "")).strip()


class WhisperTranscriber:
    """Transcribes audio with MLX-Whisper."""

    def __init__(self, model: str = DEFAULT_MODEL, language: str | None = None) -> None:
        if model not in VALID_MODELS:
            raise TranscriptionError(
                f"Invalid Whisper model '{model}'. "
                f"Valid options: {', '.join(sorted(VALID_MODELS))}"
            )
        self.model = model
        self.language = language

    def transcribe_sync(self, audio_path: Path) -> str:
        """Blocking variant of ``transcribe``."""
        if not MLX_WHISPER_AVAILABLE:
            raise TranscriptionUnavailableError(
                "mlx-whisper is not installed. "
                "Install it with: pip install 'clipnote[mlx]'"
            )
        if not audio_path.exists():
            raise TranscriptionError(f"Audio file not found: {audio_path}")

        options: dict[str, Any] = {"path_or_hf_repo": MODEL_REPO_MAP[self.model]}
        if self.language:
            options["language"] = self.language

        try:
            result = mlx_whisper.transcribe(str(audio_path), **options)
        except Exception as e:
            raise TranscriptionError(f"Speech recognition failed: {e}") from e

        text = _join_segments(result)
        if not text:
            raise TranscriptionError("Speech recognition returned no text")
        return text

    async def transcribe(self, audio_path: Path) -> str:
        """Transcribe the audio file in a worker thread."""
        return await asyncio.to_thread(self.transcribe_sync, audio_path)
