"""
Source byte fetchers for the ingestion pipeline.

The pipeline only needs "give me the bytes at this location". HTTP(S)
locations go through httpx with tenacity retries on transient transport
errors; everything else is read from the local filesystem.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional, Protocol
from urllib.parse import urlparse

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from docvault.config import settings
from docvault.core.errors import FetchFailure

logger = logging.getLogger(__name__)


class DocumentFetcher(Protocol):
    async def fetch(self, location: str) -> bytes: ...


def resolve_location(base_prefix: str, document_id: str) -> str:
    """Join a base URL or directory with a document identifier."""
    if not base_prefix:
        return document_id
    return f"{base_prefix.rstrip('/')}/{document_id.lstrip('/')}"


class HttpFetcher:
    """
    Download documents over HTTP(S).

    Transport errors (connection resets, timeouts) are retried with
    exponential backoff; HTTP error statuses fail immediately.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout_seconds: Optional[float] = None,
        max_retries: Optional[int] = None,
        backoff_seconds: float = 1.0,
    ):
        self._client = client
        self.timeout_seconds = timeout_seconds or settings.fetch_timeout_seconds
        self.max_retries = max_retries or settings.fetch_max_retries
        self.backoff_seconds = backoff_seconds

    async def _get(self, client: httpx.AsyncClient, location: str) -> bytes:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=self.backoff_seconds, max=10),
            retry=retry_if_exception_type(httpx.TransportError),
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.warning(
                        f"Retry {attempt.retry_state.attempt_number}/{self.max_retries} for {location}"
                    )
                response = await client.get(location)
                response.raise_for_status()
                return response.content
        raise FetchFailure(location, "no attempts made")

    async def fetch(self, location: str) -> bytes:
        try:
            if self._client is not None:
                return await self._get(self._client, location)
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds, follow_redirects=True
            ) as client:
                return await self._get(client, location)
        except httpx.HTTPStatusError as e:
            raise FetchFailure(location, f"HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise FetchFailure(location, str(e) or type(e).__name__) from e


class LocalFileFetcher:
    """Read documents from the local filesystem."""

    async def fetch(self, location: str) -> bytes:
        parsed = urlparse(location)
        path = Path(parsed.path if parsed.scheme == "file" else location)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            raise FetchFailure(location, e.strerror or str(e)) from e


class DefaultFetcher:
    """Route a location to the HTTP or filesystem fetcher by its scheme."""

    def __init__(
        self,
        http: Optional[HttpFetcher] = None,
        local: Optional[LocalFileFetcher] = None,
    ):
        self.http = http or HttpFetcher()
        self.local = local or LocalFileFetcher()

    async def fetch(self, location: str) -> bytes:
        if urlparse(location).scheme in ("http", "https"):
            return await self.http.fetch(location)
        return await self.local.fetch(location)
