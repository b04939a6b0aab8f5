"""Custom exceptions for clipnote."""


class ClipnoteError(Exception):
    """Base exception for all clipnote errors."""

    pass


class ConfigError(ClipnoteError):
    """Configuration-related errors."""

    pass


class ClipStateError(ClipnoteError):
    """Illegal processing status transition on a clip."""

    pass


class StoreError(ClipnoteError):
    """Clip or note persistence errors."""

    pass


class ResolutionError(ClipnoteError):
    """Episode resolution errors."""

    pass


class PodcastNotFoundError(ResolutionError):
    """The podcast directory has no match for the podcast name."""

    pass


class FeedFetchFailedError(ResolutionError):
    """The podcast feed could not be fetched."""

    pass


class EpisodeNotFoundError(ResolutionError):
    """No feed entry matches the episode title."""

    pass


class NetworkError(ResolutionError):
    """Transport failure or non-2xx response from the podcast directory."""

    pass


class ExtractionError(ClipnoteError):
    """Audio segment extraction errors."""

    pass


class InvalidSourceError(ExtractionError):
    """The audio source address is unusable or cannot be probed."""

    pass


class NoAudioTrackError(ExtractionError):
    """The audio source has no audio stream."""

    pass


class ExportFailedError(ExtractionError):
    """The audio segment could not be exported."""

    pass


class TranscriptionError(ClipnoteError):
    """Speech recognition errors."""

    pass


class TranscriptionUnavailableError(TranscriptionError):
    """The transcription engine is not installed or not authorized."""

    pass
