"""Core modules for clipnote."""

from clipnote.core.config import (
    CaptureConfig,
    Config,
    DirectoryConfig,
    HttpConfig,
    StorageConfig,
    Verbosity,
    WhisperConfig,
    load_config,
)
from clipnote.core.errors import ClipnoteError, ConfigError
from clipnote.core.models import (
    CaptureOutcome,
    CaptureState,
    CatalogEntry,
    ClipStatus,
    Note,
    NoteSource,
    NowPlayingSnapshot,
    PodcastClip,
    ResolvedEpisode,
    StageWarning,
)

__all__ = [
    "CaptureConfig",
    "CaptureOutcome",
    "CaptureState",
    "CatalogEntry",
    "ClipStatus",
    "ClipnoteError",
    "Config",
    "ConfigError",
    "DirectoryConfig",
    "HttpConfig",
    "Note",
    "NoteSource",
    "NowPlayingSnapshot",
    "PodcastClip",
    "ResolvedEpisode",
    "StageWarning",
    "StorageConfig",
    "Verbosity",
    "WhisperConfig",
    "load_config",
]
