"""
Schema service package.

Fetches Helm values documents from a fixed upstream origin, derives a JSON
Schema for each one, and serves it from an in-memory cache.

Structure:
- app.main: FastAPI service, routes, and lifecycle wiring.
- app.pipeline: per-request validate/cache/fetch/transform/store flow.
- app.adapters: HTTP client for the upstream values origin.
- app.cache: in-memory result cache.
- app.schema: values document to JSON Schema derivation.
"""
