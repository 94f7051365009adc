"""
Shared utilities for the Helm values schema service.

This package aggregates common building blocks:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- base_service: FastAPI application scaffolding

Do not import from service packages into shared/.
"""
