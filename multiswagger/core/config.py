"""
Multi-Swagger Configuration

Single source of truth for all configuration.
Uses Pydantic Settings for environment variable parsing. Variable names are
the ones used by the Kubernetes manifests (NAMESPACE, CONFIGMAP_NAME, ...).
"""
from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Multi-Swagger configuration from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # ConfigMap source
    namespace: str = Field(default="default", alias="NAMESPACE")
    configmap_name: str = Field(default="openapi-specs", alias="CONFIGMAP_NAME")
    watch_interval_seconds: int = Field(default=10, ge=1, alias="WATCH_INTERVAL_SECONDS")
    watch_enabled: bool = Field(default=True, alias="WATCH_ENABLED")
    kubeconfig: Optional[str] = Field(default=None, alias="KUBECONFIG")

    # HTTP server
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=9090, ge=1, le=65535, alias="PORT")
    base_path: str = Field(
        default="",
        alias="SWAGGER_BASE_PATH",
        description="Sub-path the portal is mounted under (Ingress/Route), e.g. /swagger",
    )

    # Logging
    log_level: str = Field(default="info", alias="LOG_LEVEL")
    dev_mode: bool = Field(default=False, alias="DEV_MODE")

    # Outbound calls
    spec_fetch_timeout_seconds: float = Field(default=30.0, gt=0, alias="SPEC_FETCH_TIMEOUT_SECONDS")
    proxy_timeout_seconds: float = Field(default=60.0, gt=0, alias="PROXY_TIMEOUT_SECONDS")
    proxy_allowed_hosts: str = Field(
        default="*",
        alias="PROXY_ALLOWED_HOSTS",
        description="Comma separated host allow-list for /proxy targets, * for any",
    )

    @field_validator("base_path", mode="before")
    @classmethod
    def normalize_base_path(cls, v):
        if v is None:
            return ""
        v = str(v).strip().rstrip("/")
        if v and not v.startswith("/"):
            v = "/" + v
        return v

    @property
    def allowed_proxy_hosts(self) -> List[str]:
        """Parsed allow-list; ["*"] means any host."""
        if self.proxy_allowed_hosts.strip() == "*":
            return ["*"]
        return [h.strip().lower() for h in self.proxy_allowed_hosts.split(",") if h.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
