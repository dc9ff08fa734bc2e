"""Lease value model and lease stores.

The lease is a single ``"<claimant>:<epoch-seconds>"`` string stored under one
key of a last-write-wins store:
- KubernetesAnnotationStore: annotation on a Kubernetes Service
- RedisLeaseStore: a single Redis key
- InMemoryLeaseStore: process-local, for development and tests
"""

from switchboard.lease.factory import create_lease_store
from switchboard.lease.kubernetes import KubernetesAnnotationStore, make_http_client_with_ca
from switchboard.lease.model import DELIMITER, Lease, decode_lease, encode_lease
from switchboard.lease.redis import RedisLeaseStore
from switchboard.lease.store import InMemoryLeaseStore, LeaseStore, LeaseStoreError

__all__ = [
    "DELIMITER",
    "InMemoryLeaseStore",
    "KubernetesAnnotationStore",
    "Lease",
    "LeaseStore",
    "LeaseStoreError",
    "RedisLeaseStore",
    "create_lease_store",
    "decode_lease",
    "encode_lease",
    "make_http_client_with_ca",
]
