"""Service modules for clipnote."""

from clipnote.services.catalog import CatalogSession, FeedCatalogParser
from clipnote.services.directory import DirectoryResult, PodcastDirectoryClient
from clipnote.services.extractor import AudioSegmentExtractor, compute_window
from clipnote.services.nowplaying import (
    ManualNowPlayingProbe,
    NowPlayingProbe,
    PlayerctlNowPlayingProbe,
    parse_timestamp,
)
from clipnote.services.resolver import EpisodeResolver, match_episode
from clipnote.services.transcriber import TranscriptionPort, WhisperTranscriber

__all__ = [
    "AudioSegmentExtractor",
    "CatalogSession",
    "DirectoryResult",
    "EpisodeResolver",
    "FeedCatalogParser",
    "ManualNowPlayingProbe",
    "NowPlayingProbe",
    "PlayerctlNowPlayingProbe",
    "PodcastDirectoryClient",
    "TranscriptionPort",
    "WhisperTranscriber",
    "compute_window",
    "match_episode",
    "parse_timestamp",
]
