"""
Upstream values document client for the Schema Service.
"""

from __future__ import annotations

import asyncio
from typing import Optional

import httpx

from shared.logging import get_logger
from shared.errors import FetchFailedError


DEFAULT_ORIGIN = "https://raw.githubusercontent.com"
DEFAULT_USER_AGENT = "helm-values-schema-generator/1.0"
DEFAULT_ACCEPT = "text/plain, application/x-yaml, */*"
DEFAULT_TIMEOUT = 30.0


class ValuesFetcher:
    """Downloads raw values documents from a fixed, trusted origin.

    Callers only ever supply the path; scheme and host come from ``origin``.
    Failures are not retried.
    """

    def __init__(
        self,
        origin: str = DEFAULT_ORIGIN,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str = DEFAULT_USER_AGENT,
        accept: str = DEFAULT_ACCEPT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.origin = origin.rstrip("/")
        self.timeout = timeout
        self.logger = get_logger("schema.values_fetcher")
        self._origin_url = httpx.URL(self.origin)
        self._client = httpx.AsyncClient(
            timeout=timeout,
            headers={"User-Agent": user_agent, "Accept": accept},
            transport=transport,
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    def build_url(self, path: str) -> httpx.URL:
        """Resolve ``path`` against the origin, refusing anything that leaves it."""
        if not path.startswith("/"):
            raise FetchFailedError(
                f"invalid values path: {path!r}",
                details={"path": path},
            )
        try:
            url = httpx.URL(f"{self.origin}{path}")
        except httpx.InvalidURL as exc:
            raise FetchFailedError(f"invalid values path: {exc}", details={"path": path}) from exc

        if url.scheme != self._origin_url.scheme or url.netloc != self._origin_url.netloc:
            raise FetchFailedError(
                f"invalid values path: {path!r}",
                details={"path": path},
            )
        return url

    async def fetch(self, path: str) -> bytes:
        """Download the values document at ``path`` and return its bytes."""
        url = self.build_url(path)
        self.logger.info("Downloading values file", url=str(url))

        try:
            # Bound the whole exchange, not just each connect/read phase
            return await asyncio.wait_for(self._download(url), timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            self.logger.warning("Values download timed out", url=str(url), timeout=self.timeout)
            raise FetchFailedError(
                f"failed to download file: timed out after {self.timeout:g}s",
                details={"url": str(url)},
            ) from exc

    async def _download(self, url: httpx.URL) -> bytes:
        try:
            async with self._client.stream("GET", url) as response:
                if response.status_code != 200:
                    raise FetchFailedError(
                        f"failed to download file: HTTP {response.status_code}",
                        details={"url": str(url), "status_code": response.status_code},
                    )
                try:
                    body = await response.aread()
                except httpx.HTTPError as exc:
                    raise FetchFailedError(
                        f"failed to read response body: {exc}",
                        details={"url": str(url)},
                    ) from exc
        except FetchFailedError:
            raise
        except httpx.TimeoutException as exc:
            raise FetchFailedError(
                f"failed to download file: timed out ({exc.__class__.__name__})",
                details={"url": str(url)},
            ) from exc
        except httpx.HTTPError as exc:
            raise FetchFailedError(
                f"failed to download file: {exc}",
                details={"url": str(url)},
            ) from exc

        self.logger.info("Successfully downloaded values file", bytes=len(body), url=str(url))
        return body
