"""Audio segment extraction.

Cuts a time window out of a (usually remote) episode with ffmpeg and
encodes it to a compact AAC ``.m4a`` file in a temp directory. The caller
owns the resulting file.
"""

from __future__ import annotations

import asyncio
import math
import tempfile
import uuid
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import ffmpeg

from clipnote.core.errors import ExportFailedError, InvalidSourceError, NoAudioTrackError
from clipnote.core.models import ClipWindow, ExtractedSegment

REMOTE_SCHEMES = {"http", "https", "file"}

OUTPUT_CODEC = "aac"
OUTPUT_BITRATE = "64k"
# ffmpeg's muxer name for .m4a files
OUTPUT_FORMAT = "ipod"


def compute_window(
    center: float,
    duration: float,
    total: float | None = None,
) -> ClipWindow:
    """Compute the clip window centred on the play head.

    The start is ``max(0, center - duration / 2)``. The end is
    ``center + duration / 2`` clamped to the total media length when known.
    A start past the end of media leaves ``end < start`` and the window
    length is zero.
    """
    half = max(0.0, duration) / 2.0
    start = max(0.0, center - half)
    end = center + half
    if total is not None:
        end = min(end, total)
    return ClipWindow(start=start, end=end)


def _validate_source(source: str) -> str:
    """Return the ffmpeg input for a source URL or path.

    Raises:
        InvalidSourceError: If the source is neither a supported URL nor an existing file.
    """
    if not source or not source.strip():
        raise InvalidSourceError("Audio source is empty")

    source = source.strip()
    scheme = urlparse(source).scheme.lower()
    if scheme in REMOTE_SCHEMES:
        if scheme == "file":
            return urlparse(source).path
        return source

    if Path(source).is_file():
        return source

    raise InvalidSourceError(f"Unsupported audio source: {source}")


def _probe(source: str) -> dict[str, Any]:
    try:
        return ffmpeg.probe(source)
    except ffmpeg.Error as e:
        stderr = e.stderr.decode(errors="replace").strip() if e.stderr else str(e)
        raise InvalidSourceError(f"Could not read audio source {source}: {stderr}") from e
    except OSError as e:
        # ffprobe binary missing
        raise InvalidSourceError(f"Could not run ffprobe: {e}") from e


def _parse_float(value: Any) -> float | None:
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    return result if math.isfinite(result) and result >= 0 else None


def get_total_duration(probe: dict[str, Any]) -> float | None:
    """Total media duration in seconds, or None if the container doesn't say.

    Raises:
        NoAudioTrackError: If the probe reports no audio stream.
    """
    audio_streams = [
        stream for stream in probe.get("streams", []) if stream.get("codec_type") == "audio"
    ]
    if not audio_streams:
        raise NoAudioTrackError("No audio track found")

    duration = _parse_float(probe.get("format", {}).get("duration"))
    if duration is None:
        duration = _parse_float(audio_streams[0].get("duration"))
    return duration


def _export(source: str, window: ClipWindow, dest_path: Path) -> None:
    stream = ffmpeg.input(source, ss=window.start, t=window.length)
    try:
        (
            ffmpeg.output(
                stream.audio,
                str(dest_path),
                acodec=OUTPUT_CODEC,
                audio_bitrate=OUTPUT_BITRATE,
                format=OUTPUT_FORMAT,
            )
            .overwrite_output()
            .run(capture_stdout=True, capture_stderr=True)
        )
    except ffmpeg.Error as e:
        stderr = e.stderr.decode(errors="replace").strip() if e.stderr else str(e)
        raise ExportFailedError(f"Audio export failed: {stderr}") from e
    except OSError as e:
        raise ExportFailedError(f"Could not run ffmpeg: {e}") from e


class AudioSegmentExtractor:
    """Extracts time-bounded audio segments with ffmpeg."""

    def __init__(self, temp_dir: Path | None = None) -> None:
        """Initialize the extractor.

        Args:
            temp_dir: Directory for extracted files. Defaults to the system temp dir.
        """
        self.temp_dir = temp_dir

    def _new_output_path(self) -> Path:
        directory = self.temp_dir or Path(tempfile.gettempdir())
        directory.mkdir(parents=True, exist_ok=True)
        return directory / f"podcast-clip-{uuid.uuid4()}.m4a"

    def extract_segment_sync(
        self,
        source: str,
        center: float,
        duration: float,
    ) -> ExtractedSegment:
        """Blocking variant of ``extract_segment``."""
        ffmpeg_input = _validate_source(source)
        total = get_total_duration(_probe(ffmpeg_input))

        window = compute_window(center, duration, total)
        if window.length <= 0:
            raise ExportFailedError(
                f"Clip window starts at {window.start:.1f}s, "
                f"past the end of the audio ({total or 0:.1f}s)"
            )

        try:
            dest_path = self._new_output_path()
        except OSError as e:
            raise ExportFailedError(f"Cannot create output directory: {e}") from e

        try:
            _export(ffmpeg_input, window, dest_path)
            size = dest_path.stat().st_size if dest_path.exists() else 0
        except ExportFailedError:
            dest_path.unlink(missing_ok=True)
            raise
        except OSError as e:
            dest_path.unlink(missing_ok=True)
            raise ExportFailedError(f"Failed to write audio segment: {e}") from e

        if size == 0:
            dest_path.unlink(missing_ok=True)
            raise ExportFailedError("Audio export produced an empty file")

        return ExtractedSegment(path=dest_path, window=window)

    async def extract_segment(
        self,
        source: str,
        center: float,
        duration: float,
    ) -> ExtractedSegment:
        """Extract an audio segment centred on ``center``.

        Args:
            source: Remote audio URL (or local path).
            center: Play head position in seconds.
            duration: Segment length in seconds before clamping.

        Returns:
            ExtractedSegment pointing at a fresh ``.m4a`` file.

        Raises:
            InvalidSourceError: If the source is unusable.
            NoAudioTrackError: If the source has no audio stream.
            ExportFailedError: If the window is empty or ffmpeg fails.
        """
        return await asyncio.to_thread(self.extract_segment_sync, source, center, duration)
