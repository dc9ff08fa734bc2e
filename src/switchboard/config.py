from __future__ import annotations

import logging
import os
import socket
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

SERVICE_ACCOUNT_DIR = "/var/run/secrets/kubernetes.io/serviceaccount"

# Renewals must land well inside the lease window.
RECOMMENDED_LEASE_TO_INTERVAL_RATIO = 5


def _default_identity() -> str:
    """Identity of this replica: the pod's host name."""
    return os.environ.get("HOSTNAME") or socket.gethostname()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SWITCHBOARD_", env_file=".env", extra="ignore"
    )

    # Identity written into the lease
    identity: str = Field(default_factory=_default_identity, validate_default=True)

    # Lease timing (seconds)
    lease_duration: int = 30
    probe_interval: float = 5.0
    grace_delay: float = 1.0

    # Local listener probed before claiming
    health_host: str | None = None
    health_port: int = 1936
    health_timeout: float = 2.0

    # Lease store
    store_backend: Literal["kubernetes", "redis", "memory"] = "kubernetes"
    store_timeout: float = 10.0

    # Kubernetes Service annotation store
    kube_api_url: str = "https://kubernetes.default.svc"
    kube_namespace: str | None = None
    kube_service: str = "switchboard"
    annotation_key: str = "skiff-leader"
    kube_token_path: str = f"{SERVICE_ACCOUNT_DIR}/token"
    kube_ca_path: str = f"{SERVICE_ACCOUNT_DIR}/ca.crt"
    kube_namespace_path: str = f"{SERVICE_ACCOUNT_DIR}/namespace"

    # Redis store
    redis_url: str = Field(default="redis://localhost:6379/0", validation_alias="REDIS_URL")
    redis_key: str = "switchboard:leader"

    # Logging
    log_file: str | None = "/tmp/log-ready-switchboard"  # nosec B108 - probe log sink
    log_level: str = "INFO"
    log_json: bool = False

    @field_validator("identity")
    @classmethod
    def _validate_identity(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("identity must not be empty")
        if ":" in value:
            raise ValueError(f"identity must not contain ':': {value!r}")
        return value

    @model_validator(mode="after")
    def _validate_timing(self) -> Settings:
        """Check the lease duration, probe interval and grace delay relationship."""
        if self.lease_duration <= 0:
            raise ValueError("lease_duration must be positive")
        if self.grace_delay < 0:
            raise ValueError("grace_delay must not be negative")
        if self.grace_delay >= self.lease_duration:
            raise ValueError(
                f"grace_delay ({self.grace_delay}s) must be shorter than "
                f"lease_duration ({self.lease_duration}s)"
            )
        if self.lease_duration < RECOMMENDED_LEASE_TO_INTERVAL_RATIO * self.probe_interval:
            logger.warning(
                f"lease_duration {self.lease_duration}s is less than "
                f"{RECOMMENDED_LEASE_TO_INTERVAL_RATIO}x probe_interval {self.probe_interval}s; "
                "renewals may miss the lease window"
            )
        if self.grace_delay >= self.probe_interval:
            logger.warning(
                f"grace_delay {self.grace_delay}s is not shorter than "
                f"probe_interval {self.probe_interval}s"
            )
        return self

    @property
    def effective_health_host(self) -> str:
        """Host probed by the local health check."""
        return self.health_host or self.identity

    def resolve_namespace(self) -> str:
        """Namespace of the lease Service, falling back to the service account's."""
        if self.kube_namespace:
            return self.kube_namespace
        with open(self.kube_namespace_path, encoding="utf-8") as f:
            return f.read().strip()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from the environment once per process."""
    return Settings()
