"""
Schema service: serves JSON Schemas derived from Helm values documents.
"""

from typing import Any, Dict, Optional

from fastapi import Request, Response

from shared.base_service import BaseService
from shared.config import SchemaServiceConfig

from .adapters import ValuesFetcher
from .cache import ResultCache
from .pipeline import SchemaPipeline
from .schema import SchemaGenerator, SchemaRoot


ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


class SchemaService(BaseService):
    """Schema service implementation."""

    def __init__(
        self,
        config: Optional[SchemaServiceConfig] = None,
        *,
        cache: Optional[ResultCache] = None,
        fetcher: Optional[ValuesFetcher] = None,
        generator: Optional[SchemaGenerator] = None,
    ):
        super().__init__("schema", config)

        self.cache = cache if cache is not None else ResultCache()
        self.fetcher = fetcher or ValuesFetcher(
            self.config.upstream_origin,
            timeout=self.config.fetch_timeout_seconds,
            user_agent=self.config.user_agent,
            accept=self.config.accept,
        )
        self.generator = generator or SchemaGenerator(
            draft=self.config.schema_draft,
            indent=self.config.schema_indent,
            root=SchemaRoot(
                id=self.config.schema_id,
                title=self.config.schema_title,
                additional_properties=self.config.schema_additional_properties,
            ),
        )
        self.pipeline = SchemaPipeline(
            self.cache,
            self.fetcher,
            self.generator,
            metrics=self.metrics,
        )

        self._setup_schema_routes()

    def _setup_schema_routes(self):
        """Set up schema routes. Registered last so /health and /metrics win."""

        @self.app.api_route("/{values_path:path}", methods=ALL_METHODS, include_in_schema=False)
        async def serve_schema(request: Request, values_path: str):
            """Serve the schema for the values document at the request path."""
            result = await self.pipeline.resolve(request.method, request.url.path)
            return Response(content=result.body, media_type=result.media_type)

    async def _check_dependencies(self) -> Dict[str, Any]:
        """Report cache state; the upstream origin is not probed."""
        return {
            "cached_schemas": len(self.cache),
            "inflight_generations": self.pipeline.inflight_count(),
            "upstream_origin": self.config.upstream_origin,
        }

    async def start(self):
        self.logger.info(
            "Schema service starting",
            port=self.config.port,
            upstream_origin=self.config.upstream_origin,
        )

    async def stop(self):
        await self.fetcher.close()
        self.logger.info("Schema service stopped")


def create_app(config: Optional[SchemaServiceConfig] = None):
    """Create schema service application."""
    service = SchemaService(config)
    return service.app


if __name__ == "__main__":
    service = SchemaService()
    service.run()
