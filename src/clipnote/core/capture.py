"""Podcast clip capture pipeline.

Orchestrates the full capture flow:
now playing → clip → resolve → extract → transcribe → note.

Only a missing now-playing source stops the pipeline before a clip exists.
Every later stage degrades gracefully: its failure is recorded as a
StageWarning and the remaining stages still run where they have input, so
each capture that found something playing ends with a note.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

from clipnote.core.errors import (
    ExtractionError,
    ResolutionError,
    StoreError,
    TranscriptionError,
)
from clipnote.core.models import (
    DEFAULT_CLIP_DURATION,
    CaptureOutcome,
    CaptureState,
    ExtractedSegment,
    NoteSource,
    PodcastClip,
    StageWarning,
)
from clipnote.core.notes import compose_note_body, compose_note_title
from clipnote.core.store import ClipStore, FileClipStore
from clipnote.services.directory import PodcastDirectoryClient
from clipnote.services.extractor import AudioSegmentExtractor
from clipnote.services.resolver import EpisodeResolver
from clipnote.services.transcriber import TranscriptionPort, WhisperTranscriber

if TYPE_CHECKING:
    from clipnote.core.config import Config
    from clipnote.services.nowplaying import NowPlayingProbe

STAGE_NOW_PLAYING = "now_playing"
STAGE_RESOLVE = "resolve"
STAGE_EXTRACT = "extract"
STAGE_TRANSCRIBE = "transcribe"
STAGE_PERSIST = "persist"
STAGE_CAPTURE = "capture"

NO_MEDIA_MESSAGE = "No media currently playing"

# Called with the new state and the outcome of the capture in progress
CaptureListener = Callable[[CaptureState, CaptureOutcome], None]


class CaptureOrchestrator:
    """Runs one capture at a time from a now-playing probe to a stored note.

    Example:
        >>> orchestrator = CaptureOrchestrator.from_config(config, probe)
        >>> outcome = await orchestrator.capture(60)
        >>> print(outcome.note.title if outcome.note else outcome.last_error)
    """

    def __init__(
        self,
        probe: NowPlayingProbe,
        store: ClipStore,
        resolver: EpisodeResolver,
        extractor: AudioSegmentExtractor,
        transcriber: TranscriptionPort,
        default_duration: float = DEFAULT_CLIP_DURATION,
        keep_segments: bool = False,
    ) -> None:
        self.probe = probe
        self.store = store
        self.resolver = resolver
        self.extractor = extractor
        self.transcriber = transcriber
        self.default_duration = default_duration
        self.keep_segments = keep_segments
        self._state = CaptureState.IDLE
        self._last_error: str | None = None
        self._listeners: list[CaptureListener] = []

    @classmethod
    def from_config(
        cls,
        config: Config,
        probe: NowPlayingProbe,
        store: ClipStore | None = None,
        transcriber: TranscriptionPort | None = None,
    ) -> CaptureOrchestrator:
        """Build an orchestrator with the default services for a configuration."""
        directory = PodcastDirectoryClient(
            search_url=config.directory.search_url,
            result_limit=config.directory.result_limit,
            timeout=config.http.timeout,
        )
        return cls(
            probe=probe,
            store=store or FileClipStore(config.get_data_dir()),
            resolver=EpisodeResolver(directory=directory, timeout=config.http.timeout),
            extractor=AudioSegmentExtractor(temp_dir=config.get_temp_dir()),
            transcriber=transcriber or WhisperTranscriber(model=config.whisper.model),
            default_duration=config.capture.clip_duration,
            keep_segments=config.capture.keep_segments,
        )

    @property
    def state(self) -> CaptureState:
        return self._state

    @property
    def is_capturing(self) -> bool:
        return self._state is CaptureState.CAPTURING

    @property
    def last_error(self) -> str | None:
        """Message of the most recent stage failure of the last capture."""
        return self._last_error

    def add_listener(self, listener: CaptureListener) -> None:
        """Register a callback notified each time the capture state changes.

        Listeners run synchronously on the event loop. An exception raised by
        a listener is recorded as a ``capture`` warning on the outcome.
        """
        self._listeners.append(listener)

    def remove_listener(self, listener: CaptureListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def capture(
        self,
        duration: float | None = None,
        user_notes: str | None = None,
    ) -> CaptureOutcome:
        """Capture whatever is playing and turn it into a note.

        A call made while another capture is running is dropped and returns
        an outcome with ``skipped`` set. This method never raises; failures
        are reported in the outcome's warnings and ``last_error``.

        Args:
            duration: Clip length in seconds, centred on the play head.
                Defaults to the configured clip duration.
            user_notes: Optional notes to attach to the clip and note.

        Returns:
            CaptureOutcome with the clip, note and stage warnings.
        """
        # The flag is checked and set before the first await
        if self._state is CaptureState.CAPTURING:
            return CaptureOutcome(skipped=True)

        self._state = CaptureState.CAPTURING
        self._last_error = None
        outcome = CaptureOutcome()

        try:
            self._notify(outcome)
            await self._run(outcome, duration, user_notes)
        except Exception as e:
            self._record(outcome, STAGE_CAPTURE, f"Unexpected error: {e}")
        finally:
            self._state = CaptureState.IDLE

        self._notify(outcome)
        return outcome

    async def _run(
        self,
        outcome: CaptureOutcome,
        duration: float | None,
        user_notes: str | None,
    ) -> None:
        # Stage 1: now playing
        snapshot = await self.probe.get_currently_playing()
        if snapshot is None:
            self._record(outcome, STAGE_NOW_PLAYING, NO_MEDIA_MESSAGE)
            return

        # Stage 2: durable pending clip
        clip_duration = duration if duration and duration > 0 else self.default_duration
        clip = self.store.create_clip(snapshot, clip_duration)
        if user_notes and user_notes.strip():
            clip.user_notes = user_notes.strip()
        outcome.clip = clip
        self._persist(outcome)

        try:
            # Stage 3: resolve episode metadata
            await self._resolve(clip, outcome)

            # Stages 4-5: extract and transcribe, only with an audio URL
            if clip.episode_audio_url:
                segment = await self._extract(clip, clip.episode_audio_url, outcome)
                if segment is not None:
                    try:
                        await self._transcribe(clip, segment, outcome)
                    finally:
                        if not self.keep_segments:
                            segment.cleanup()
        finally:
            # Stage 6: every clip gets a note
            self._create_note(clip, outcome)

    def _create_note(self, clip: PodcastClip, outcome: CaptureOutcome) -> None:
        note = self.store.create_note(
            title=compose_note_title(clip),
            body=compose_note_body(clip),
            source=NoteSource.PODCAST,
        )
        note.clip_id = clip.id
        clip.note_id = note.id
        outcome.note = note
        self._persist(outcome)

    async def _resolve(self, clip: PodcastClip, outcome: CaptureOutcome) -> None:
        try:
            resolved = await self.resolver.resolve(clip.podcast_name, clip.episode_title)
        except ResolutionError as e:
            clip.mark_failed()
            self._record(outcome, STAGE_RESOLVE, str(e))
            return
        except Exception as e:
            clip.mark_failed()
            self._record(outcome, STAGE_RESOLVE, f"Unexpected error: {e}")
            return

        clip.mark_resolved(resolved)
        self._persist(outcome)

    async def _extract(
        self,
        clip: PodcastClip,
        audio_url: str,
        outcome: CaptureOutcome,
    ) -> ExtractedSegment | None:
        try:
            return await self.extractor.extract_segment(
                audio_url,
                clip.playback_position,
                clip.clip_duration,
            )
        except ExtractionError as e:
            self._record(outcome, STAGE_EXTRACT, str(e))
            return None
        except Exception as e:
            self._record(outcome, STAGE_EXTRACT, f"Unexpected error: {e}")
            return None

    async def _transcribe(
        self,
        clip: PodcastClip,
        segment: ExtractedSegment,
        outcome: CaptureOutcome,
    ) -> None:
        try:
            transcript = await self.transcriber.transcribe(segment.path)
        except TranscriptionError as e:
            self._record(outcome, STAGE_TRANSCRIBE, str(e))
            return
        except Exception as e:
            self._record(outcome, STAGE_TRANSCRIBE, f"Unexpected error: {e}")
            return

        if transcript and transcript.strip():
            clip.transcript = transcript.strip()

    def _persist(self, outcome: CaptureOutcome) -> None:
        try:
            self.store.save()
        except StoreError as e:
            self._record(outcome, STAGE_PERSIST, str(e))

    def _notify(self, outcome: CaptureOutcome) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._state, outcome)
            except Exception as e:
                self._record(outcome, STAGE_CAPTURE, f"Listener failed: {e}")

    def _record(self, outcome: CaptureOutcome, stage: str, message: str) -> None:
        outcome.warnings.append(StageWarning(stage=stage, message=message))
        self._last_error = message
