"""Pytest fixtures for clipnote tests."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from pathlib import Path
from xml.sax.saxutils import escape, quoteattr

import pytest

from clipnote.core.models import ClipWindow, ExtractedSegment, NowPlayingSnapshot
from clipnote.core.store import InMemoryClipStore

RSS_TEMPLATE = """\
<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:itunes="http://www.itunes.com/dtds/podcast-1.0.dtd">
  <channel>
    <title>Tech Weekly</title>
    <link>https://example.com/</link>
    <description>A test podcast</description>
    {items}
  </channel>
</rss>
"""


def build_item(
    title: str = "Episode",
    audio_url: str | None = "https://example.com/episode.mp3",
    audio_type: str = "audio/mpeg",
    link: str | None = None,
    pub_date: str = "Mon, 01 Jan 2024 00:00:00 +0000",
    duration: str | None = None,
) -> str:
    """Create one ``<item>`` element."""
    parts = [f"<title>{escape(title)}</title>", f"<pubDate>{pub_date}</pubDate>"]
    if link:
        parts.append(f"<link>{escape(link)}</link>")
    if duration:
        parts.append(f"<itunes:duration>{duration}</itunes:duration>")
    if audio_url:
        parts.append(
            f"<enclosure url={quoteattr(audio_url)} type={quoteattr(audio_type)} length=\"12345\"/>"
        )
    return "<item>" + "".join(parts) + "</item>"


def build_feed(items: list[str]) -> bytes:
    """Create an RSS document from item elements."""
    return RSS_TEMPLATE.format(items="\n".join(items)).encode("utf-8")


class FakeProbe:
    """Now-playing probe returning a fixed snapshot after an optional delay."""

    def __init__(self, snapshot: NowPlayingSnapshot | None, delay: float = 0.0) -> None:
        self.snapshot = snapshot
        self.delay = delay
        self.calls = 0

    async def get_currently_playing(self) -> NowPlayingSnapshot | None:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.snapshot


class FakeExtractor:
    """Extractor writing a small file instead of running ffmpeg."""

    def __init__(self, directory: Path, error: Exception | None = None) -> None:
        self.directory = directory
        self.error = error
        self.calls: list[tuple[str, float, float]] = []
        self.segments: list[ExtractedSegment] = []

    async def extract_segment(
        self, source: str, center: float, duration: float
    ) -> ExtractedSegment:
        self.calls.append((source, center, duration))
        if self.error is not None:
            raise self.error
        path = self.directory / f"segment-{len(self.calls)}.m4a"
        path.write_bytes(b"fake audio")
        segment = ExtractedSegment(
            path=path,
            window=ClipWindow(start=max(0.0, center - duration / 2), end=center + duration / 2),
        )
        self.segments.append(segment)
        return segment


class FakeTranscriber:
    """Transcriber returning canned text or raising."""

    def __init__(self, text: str = "", error: Exception | None = None) -> None:
        self.text = text
        self.error = error
        self.paths: list[Path] = []

    async def transcribe(self, audio_path: Path) -> str:
        self.paths.append(audio_path)
        if self.error is not None:
            raise self.error
        return self.text


@pytest.fixture(scope="session")
def feed_builder() -> Callable[[list[str]], bytes]:
    return build_feed


@pytest.fixture(scope="session")
def item_builder() -> Callable[..., str]:
    return build_item


@pytest.fixture
def snapshot() -> NowPlayingSnapshot:
    """The now-playing snapshot used by the end-to-end scenarios."""
    return NowPlayingSnapshot(
        title="Episode 42: Scaling",
        podcast_name="Tech Weekly",
        elapsed_seconds=930,
    )


@pytest.fixture
def store() -> InMemoryClipStore:
    return InMemoryClipStore()


@pytest.fixture
def make_probe() -> type[FakeProbe]:
    return FakeProbe


@pytest.fixture
def make_extractor(tmp_path: Path) -> Callable[..., FakeExtractor]:
    def factory(error: Exception | None = None) -> FakeExtractor:
        return FakeExtractor(tmp_path, error=error)

    return factory


@pytest.fixture
def make_transcriber() -> type[FakeTranscriber]:
    return FakeTranscriber
