"""Streaming RSS catalog parser.

Reads podcast feed bytes forward-only with an incremental SAX reader and
emits one CatalogEntry each time an ``<item>`` element closes. Malformed
input never aborts the caller: parsing stops at the first well-formedness
error and whatever items were completed before it are kept.
"""

from __future__ import annotations

import xml.sax
from collections.abc import Iterator
from enum import Enum
from urllib.parse import urlparse
from xml.sax.handler import ContentHandler, feature_external_ges, feature_namespaces
from xml.sax.xmlreader import AttributesImpl

from clipnote.core.models import CatalogEntry

# Chunk size used when feeding an in-memory document (64KB)
CHUNK_SIZE = 65536

AUDIO_TYPE_PREFIX = "audio/"
AUDIO_EXTENSIONS = (".mp3", ".m4a")

# Element name -> scratch field. Names are qualified since namespaces are off.
TEXT_FIELDS = {
    "title": "title",
    "link": "link",
    "pubDate": "pub_date",
    "itunes:duration": "duration",
    "duration": "duration",
}


class ItemState(Enum):
    OUTSIDE_ITEM = "outside_item"
    INSIDE_ITEM = "inside_item"


def is_audio_enclosure(url: str, media_type: str = "") -> bool:
    """Accept an enclosure as audio by media type, or by file extension."""
    if media_type.strip().lower().startswith(AUDIO_TYPE_PREFIX):
        return True
    return urlparse(url.strip()).path.lower().endswith(AUDIO_EXTENSIONS)


def _text_or_none(parts: list[str]) -> str | None:
    text = "".join(parts).strip()
    return text or None


class _CatalogHandler(ContentHandler):
    """SAX content handler implementing the item state machine."""

    def __init__(self) -> None:
        super().__init__()
        self.state = ItemState.OUTSIDE_ITEM
        self._completed: list[CatalogEntry] = []
        self._open_elements: list[str] = []
        self._scratch: dict[str, list[str]] = {}
        self._audio_url: str | None = None
        self._reset_scratch()

    def _reset_scratch(self) -> None:
        self._scratch = {name: [] for name in set(TEXT_FIELDS.values())}
        self._audio_url = None

    def drain(self) -> list[CatalogEntry]:
        completed, self._completed = self._completed, []
        return completed

    def startElement(self, name: str, attrs: AttributesImpl) -> None:  # noqa: N802
        self._open_elements.append(name)

        if name == "item":
            self.state = ItemState.INSIDE_ITEM
            self._reset_scratch()
            return

        if self.state is ItemState.INSIDE_ITEM and name == "enclosure":
            url = attrs.get("url")
            if url and is_audio_enclosure(url, attrs.get("type", "")):
                self._audio_url = url.strip()

    def characters(self, content: str) -> None:
        if self.state is not ItemState.INSIDE_ITEM or not self._open_elements:
            return
        field_name = TEXT_FIELDS.get(self._open_elements[-1])
        if field_name:
            self._scratch[field_name].append(content)

    def endElement(self, name: str) -> None:  # noqa: N802
        if self._open_elements:
            self._open_elements.pop()

        if name == "item" and self.state is ItemState.INSIDE_ITEM:
            self._completed.append(
                CatalogEntry(
                    title="".join(self._scratch["title"]).strip(),
                    audio_url=self._audio_url,
                    duration_text=_text_or_none(self._scratch["duration"]),
                    page_url=_text_or_none(self._scratch["link"]),
                    pub_date_text=_text_or_none(self._scratch["pub_date"]),
                )
            )
            self.state = ItemState.OUTSIDE_ITEM


class CatalogSession:
    """One incremental parse of a feed document.

    Feed byte chunks as they arrive; each call returns the entries completed
    by that chunk. Once a chunk is malformed the session stops consuming
    input and ``error`` holds the parse failure.
    """

    def __init__(self) -> None:
        self._handler = _CatalogHandler()
        self._reader = xml.sax.make_parser()
        self._reader.setFeature(feature_namespaces, False)
        self._reader.setFeature(feature_external_ges, False)
        self._reader.setContentHandler(self._handler)
        self._closed = False
        self.error: Exception | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    def feed(self, chunk: bytes) -> list[CatalogEntry]:
        """Consume a chunk of the document and return newly completed entries."""
        if chunk and not self._closed and not self.failed:
            try:
                self._reader.feed(chunk)
            except (xml.sax.SAXException, ValueError, LookupError) as e:
                self.error = e
        return self._handler.drain()

    def close(self) -> list[CatalogEntry]:
        """Finish the document and return any remaining entries."""
        if not self._closed and not self.failed:
            try:
                self._reader.close()
            except (xml.sax.SAXException, ValueError, LookupError) as e:
                self.error = e
        self._closed = True
        return self._handler.drain()


class FeedCatalogParser:
    """Parses podcast RSS documents into CatalogEntry sequences."""

    def __init__(self, chunk_size: int = CHUNK_SIZE) -> None:
        self.chunk_size = max(1, chunk_size)

    def session(self) -> CatalogSession:
        """Start an incremental parse for streamed input."""
        return CatalogSession()

    def iter_entries(self, data: bytes) -> Iterator[CatalogEntry]:
        """Lazily yield entries from an in-memory document.

        Each call starts a fresh parse, so iterating twice over the same
        bytes yields the same entries.
        """
        session = self.session()
        for offset in range(0, len(data), self.chunk_size):
            yield from session.feed(data[offset : offset + self.chunk_size])
            if session.failed:
                break
        yield from session.close()

    def parse(self, data: bytes) -> list[CatalogEntry]:
        """Parse a complete feed document. Never raises on malformed XML."""
        return list(self.iter_entries(data))
