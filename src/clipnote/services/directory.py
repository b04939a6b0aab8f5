"""Podcast directory client.

Resolves a podcast name to its RSS feed address using the iTunes Search API.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx

from clipnote.core.config import ITUNES_SEARCH_URL
from clipnote.core.errors import NetworkError, PodcastNotFoundError

# Default timeout for API requests (in seconds)
DEFAULT_TIMEOUT = 30.0

# Number of candidates requested per lookup
DEFAULT_RESULT_LIMIT = 5


@dataclass
class DirectoryResult:
    """A podcast returned by the directory search.

    Attributes:
        name: The show (collection) name.
        feed_url: The RSS feed URL, if the directory knows it.
    """

    name: str
    feed_url: str | None = None


def _parse_results(data: Any) -> list[DirectoryResult]:
    """Parse the search response into DirectoryResult objects.

    Raises:
        PodcastNotFoundError: If the payload has no ``results`` array.
    """
    if not isinstance(data, dict) or not isinstance(data.get("results"), list):
        raise PodcastNotFoundError("Podcast directory returned no results")

    results: list[DirectoryResult] = []
    for item in data["results"]:
        if not isinstance(item, dict):
            continue
        name = item.get("collectionName") or item.get("trackName") or ""
        feed_url = item.get("feedUrl")
        results.append(
            DirectoryResult(
                name=str(name),
                feed_url=str(feed_url) if feed_url else None,
            )
        )
    return results


def select_feed(results: list[DirectoryResult], podcast_name: str) -> str | None:
    """Pick the feed URL that best matches the podcast name.

    The first result whose name contains the query (case-insensitive) wins.
    Otherwise the first result that has any feed URL is used.
    """
    query = podcast_name.strip().casefold()
    for result in results:
        if result.feed_url and query and query in result.name.casefold():
            return result.feed_url

    for result in results:
        if result.feed_url:
            return result.feed_url

    return None


class PodcastDirectoryClient:
    """Looks up podcast feeds in the iTunes directory."""

    def __init__(
        self,
        search_url: str = ITUNES_SEARCH_URL,
        result_limit: int = DEFAULT_RESULT_LIMIT,
        timeout: float = DEFAULT_TIMEOUT,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the directory client.

        Args:
            search_url: Search endpoint.
            result_limit: Maximum number of candidates to request.
            timeout: Request timeout in seconds.
            client: Optional httpx client for testing.
        """
        self.search_url = search_url
        self.result_limit = max(1, result_limit)
        self.timeout = timeout
        self._client = client

    async def search(self, term: str, limit: int | None = None) -> list[DirectoryResult]:
        """Search the directory for podcasts.

        Raises:
            NetworkError: On transport failure or a non-2xx response.
            PodcastNotFoundError: If the response body is not a result list.
        """
        params = {
            "term": term,
            "media": "podcast",
            "entity": "podcast",
            "limit": limit or self.result_limit,
        }

        should_close_client = self._client is None
        client = self._client or httpx.AsyncClient(timeout=self.timeout)

        try:
            response = await client.get(self.search_url, params=params)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise NetworkError(
                f"Podcast directory returned error status {e.response.status_code}"
            ) from e
        except (httpx.RequestError, httpx.InvalidURL) as e:
            raise NetworkError(f"Failed to connect to podcast directory: {e}") from e
        except ValueError as e:
            raise PodcastNotFoundError(
                f"Podcast directory returned invalid JSON: {e}"
            ) from e
        finally:
            if should_close_client:
                await client.aclose()

        return _parse_results(data)

    async def resolve_feed(self, podcast_name: str) -> str:
        """Resolve a podcast name to its feed URL.

        Args:
            podcast_name: Name of the show as reported by the player.

        Returns:
            The feed URL of the best matching podcast.

        Raises:
            PodcastNotFoundError: If no candidate has a feed URL.
            NetworkError: On transport failure or a non-2xx response.
        """
        if not podcast_name or not podcast_name.strip():
            raise PodcastNotFoundError("Podcast name is empty")

        results = await self.search(podcast_name.strip())
        feed_url = select_feed(results, podcast_name)
        if feed_url is None:
            raise PodcastNotFoundError(f"Podcast '{podcast_name}' not found in directory")
        return feed_url
