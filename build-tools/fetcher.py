import logging
from collections.abc import Iterator
from typing import Protocol

import httpx

from errors import DownloadFailure

logger = logging.getLogger(__name__)


class Fetcher(Protocol):
    def fetch(self, url: str) -> Iterator[bytes]: ...


class HttpFetcher:
    """Streams a single GET; redirects are followed (release assets live behind one)."""

    def __init__(
        self,
        client: httpx.Client | None = None,
        *,
        timeout: float | None = None,
    ) -> None:
        if client is None:
            client = httpx.Client(
                follow_redirects=True,
                timeout=timeout if timeout is not None else httpx.Timeout(5.0),
            )
        self._client = client

    def fetch(self, url: str) -> Iterator[bytes]:
        logger.debug("GET %s", url)
        try:
            with self._client.stream("GET", url) as resp:
                resp.raise_for_status()
                yield from resp.iter_bytes()
        except httpx.HTTPStatusError as exc:
            raise DownloadFailure(url, f"HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise DownloadFailure(url, str(exc) or type(exc).__name__) from exc

    def close(self) -> None:
        self._client.close()
