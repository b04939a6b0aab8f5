"""Episode resolver.

Turns a (podcast name, episode title) pair taken from a now-playing snapshot
into verified episode metadata:

1. Directory lookup for the podcast feed.
2. Streamed fetch and parse of the feed.
3. Loose title match against the feed entries.
"""

from __future__ import annotations

from collections.abc import Iterable

import httpx

from clipnote.core.errors import EpisodeNotFoundError, FeedFetchFailedError
from clipnote.core.models import CatalogEntry, ResolvedEpisode
from clipnote.services.catalog import FeedCatalogParser
from clipnote.services.directory import PodcastDirectoryClient

# Default timeout for feed requests (in seconds)
DEFAULT_TIMEOUT = 30.0


def titles_match(entry_title: str, target_title: str) -> bool:
    """Case-insensitive containment in either direction.

    Now-playing titles are often abbreviated or annotated (for example a
    trailing "(Audio)"), so exact equality is not used. Empty titles never
    match.
    """
    entry = entry_title.strip().casefold()
    target = target_title.strip().casefold()
    if not entry or not target:
        return False
    return target in entry or entry in target


def match_episode(entries: Iterable[CatalogEntry], episode_title: str) -> CatalogEntry | None:
    """Return the first entry whose title matches the episode title."""
    for entry in entries:
        if titles_match(entry.title, episode_title):
            return entry
    return None


class EpisodeResolver:
    """Resolves now-playing metadata to a feed entry."""

    def __init__(
        self,
        directory: PodcastDirectoryClient | None = None,
        parser: FeedCatalogParser | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the resolver.

        Args:
            directory: Directory client used to find the feed.
            parser: Feed parser; a default one is created if omitted.
            timeout: Feed request timeout in seconds.
            client: Optional httpx client for testing.
        """
        self.directory = directory or PodcastDirectoryClient(timeout=timeout, client=client)
        self.parser = parser or FeedCatalogParser()
        self.timeout = timeout
        self._client = client

    async def fetch_catalog(self, feed_url: str) -> list[CatalogEntry]:
        """Stream a feed and parse it as it arrives.

        Raises:
            FeedFetchFailedError: On transport failure or a non-2xx response.
        """
        session = self.parser.session()
        entries: list[CatalogEntry] = []

        should_close_client = self._client is None
        client = self._client or httpx.AsyncClient(timeout=self.timeout, follow_redirects=True)

        try:
            async with client.stream("GET", feed_url) as response:
                if not response.is_success:
                    raise FeedFetchFailedError(
                        f"Feed {feed_url} returned status {response.status_code}"
                    )
                async for chunk in response.aiter_bytes():
                    entries.extend(session.feed(chunk))
                    if session.failed:
                        break
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise FeedFetchFailedError(f"Failed to fetch feed {feed_url}: {e}") from e
        finally:
            if should_close_client:
                await client.aclose()

        entries.extend(session.close())
        return entries

    async def resolve(self, podcast_name: str, episode_title: str) -> ResolvedEpisode:
        """Resolve a podcast episode.

        Args:
            podcast_name: Podcast name as reported by the player.
            episode_title: Episode title as reported by the player.

        Returns:
            ResolvedEpisode with the feed URL used and the matched entry's
            audio and page URLs.

        Raises:
            PodcastNotFoundError: If the directory has no match.
            NetworkError: If the directory request fails.
            FeedFetchFailedError: If the feed cannot be fetched.
            EpisodeNotFoundError: If the feed is empty or no entry matches.
        """
        feed_url = await self.directory.resolve_feed(podcast_name)

        entries = await self.fetch_catalog(feed_url)
        if not entries:
            raise EpisodeNotFoundError(f"Feed {feed_url} contains no episodes")

        matched = match_episode(entries, episode_title)
        if matched is None:
            raise EpisodeNotFoundError(f"Episode '{episode_title}' not found in feed {feed_url}")

        return ResolvedEpisode(
            feed_url=feed_url,
            audio_url=matched.audio_url,
            page_url=matched.page_url,
        )
