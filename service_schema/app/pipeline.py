"""
Request pipeline for the Schema Service.

Each request walks validate -> cache lookup -> fetch -> transform -> store ->
respond. Any failing step ends the request with a typed error and leaves the
cache untouched.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Dict, Optional, Protocol, TYPE_CHECKING

from shared.logging import get_logger
from shared.errors import FetchFailedError, MethodNotAllowedError, TransformFailedError
from .cache import ResultCache

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


GREETING = b"Hello World"
GREETING_MEDIA_TYPE = "text/plain; charset=utf-8"
SCHEMA_MEDIA_TYPE = "application/schema+json"


class Fetcher(Protocol):
    async def fetch(self, path: str) -> bytes: ...


class Transformer(Protocol):
    def generate(self, raw: bytes, label: str) -> bytes: ...


@dataclass(frozen=True)
class PipelineResult:
    """Successful outcome handed back to the HTTP layer."""

    body: bytes
    media_type: str
    source: str  # "static", "cache" or "generated"


class SchemaPipeline:
    """Resolves schema requests against the cache, fetching on a miss.

    Concurrent misses for the same key share a single in-flight computation;
    the marker is dropped as soon as that computation settles, so failures are
    never remembered.
    """

    def __init__(
        self,
        cache: ResultCache,
        fetcher: Fetcher,
        transformer: Transformer,
        *,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.cache = cache
        self.fetcher = fetcher
        self.transformer = transformer
        self.metrics = metrics
        self.logger = get_logger("schema.pipeline")
        self._inflight: Dict[str, "asyncio.Task[bytes]"] = {}

    async def resolve(self, method: str, path: str) -> PipelineResult:
        """Run one request through the pipeline."""
        if method.upper() != "GET":
            raise MethodNotAllowedError(details={"method": method, "path": path})

        if path in ("", "/"):
            return PipelineResult(GREETING, GREETING_MEDIA_TYPE, "static")

        key = path
        artifact, found = self.cache.get(key)
        if found:
            self._count("schema_cache_events_total", result="hit")
            self.logger.debug("Schema cache hit", key=key)
            return PipelineResult(artifact, SCHEMA_MEDIA_TYPE, "cache")

        self._count("schema_cache_events_total", result="miss")
        artifact = await self._shared_compute(key)
        return PipelineResult(artifact, SCHEMA_MEDIA_TYPE, "generated")

    def inflight_count(self) -> int:
        return len(self._inflight)

    async def _shared_compute(self, key: str) -> bytes:
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._compute(key))
            self._inflight[key] = task
            task.add_done_callback(lambda done: self._forget(key, done))
        else:
            self.logger.debug("Joining in-flight schema generation", key=key)
        # A caller going away must not cancel work other callers are waiting on
        return await asyncio.shield(task)

    def _forget(self, key: str, task: "asyncio.Task[bytes]") -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        if not task.cancelled():
            # mark the exception retrieved even if every waiter was cancelled
            task.exception()

    async def _compute(self, key: str) -> bytes:
        raw = await self._fetch(key)

        loop = asyncio.get_running_loop()
        try:
            artifact = await loop.run_in_executor(None, self.transformer.generate, raw, key)
        except TransformFailedError as exc:
            self._count("schema_generation_total", status="error")
            raise TransformFailedError(
                f"Failed to generate schema: {exc.message}",
                details={"key": key, **exc.details},
            ) from exc
        except Exception as exc:
            self._count("schema_generation_total", status="error")
            self.logger.error("Schema generator raised unexpectedly", key=key, error=str(exc), exc_info=True)
            raise TransformFailedError(
                f"Failed to generate schema: {exc}",
                details={"key": key},
            ) from exc

        self._count("schema_generation_total", status="ok")
        self.cache.set(key, artifact)
        self.logger.info("Schema generated", key=key, bytes=len(artifact))
        return artifact

    async def _fetch(self, key: str) -> bytes:
        start = time.perf_counter()
        status = "error"
        try:
            raw = await self.fetcher.fetch(key)
            status = "ok"
            return raw
        except FetchFailedError as exc:
            self.logger.warning("Error downloading values file", key=key, error=exc.message)
            raise FetchFailedError(
                f"Failed to download values file: {exc.message}",
                details={"key": key, **exc.details},
            ) from exc
        finally:
            if self.metrics:
                self.metrics.observe_histogram(
                    "schema_fetch_duration_seconds", time.perf_counter() - start, status=status
                )

    def _count(self, metric_name: str, **labels) -> None:
        if self.metrics:
            self.metrics.increment_counter(metric_name, **labels)
