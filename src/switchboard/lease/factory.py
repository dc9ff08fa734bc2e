"""Lease store factory."""

from __future__ import annotations

from switchboard.config import Settings
from switchboard.lease.kubernetes import KubernetesAnnotationStore
from switchboard.lease.redis import RedisLeaseStore
from switchboard.lease.store import InMemoryLeaseStore, LeaseStore


def create_lease_store(settings: Settings) -> LeaseStore:
    """Build the LeaseStore selected by ``settings.store_backend``.

    Raises:
        LeaseStoreError: If the backend cannot be initialized
        ValueError: For an unknown backend
    """
    backend = settings.store_backend.lower()
    if backend == "kubernetes":
        return KubernetesAnnotationStore.from_settings(settings)
    if backend == "redis":
        return RedisLeaseStore.from_settings(settings)
    if backend == "memory":
        return InMemoryLeaseStore()
    raise ValueError(
        f"Unsupported store_backend {settings.store_backend!r}. "
        "Supported values: kubernetes, redis, memory."
    )
