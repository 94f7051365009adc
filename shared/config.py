"""
Shared configuration management for the Helm values schema service.
"""

from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="SCHEMA_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Environment
    env: str = "local"
    log_level: str = "info"

    # Listener
    host: str = "0.0.0.0"
    port: int = Field(default=8080, validation_alias=AliasChoices("PORT", "SCHEMA_PORT"))


class SchemaServiceConfig(BaseConfig):
    """Schema service configuration."""

    service_name: str = "schema"

    # Upstream values documents
    upstream_origin: str = "https://raw.githubusercontent.com"
    fetch_timeout_seconds: float = 30.0
    user_agent: str = "helm-values-schema-generator/1.0"
    accept: str = "text/plain, application/x-yaml, */*"

    # Generated schema root
    schema_draft: int = 2020
    schema_indent: int = 4
    schema_id: str = "https://example.com/schema"
    schema_title: str = "Helm Values Schema"
    schema_additional_properties: bool = True


def get_config(service_name: Optional[str] = None, **overrides) -> SchemaServiceConfig:
    """Get configuration for the schema service."""
    if service_name is not None:
        overrides["service_name"] = service_name
    return SchemaServiceConfig(**overrides)
