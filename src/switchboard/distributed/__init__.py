"""Distributed coordination for switchboard replicas.

Provides:
- ClaimProtocol: best-effort lease claim over a last-write-wins store
- ReadinessGate: maps listener health and lease claim to a readiness verdict

Example:
    from switchboard.distributed import ClaimProtocol, ReadinessGate

    protocol = ClaimProtocol(store, lease_duration=30)
    gate = ReadinessGate(protocol, TcpHealthCheck("pod-1"), identity="pod-1")
    decision = await gate.decide()
"""

from switchboard.distributed.leader import (
    ClaimDecision,
    ClaimProtocol,
    ClaimResult,
    LeaseState,
    classify_lease,
)
from switchboard.distributed.readiness import (
    Readiness,
    ReadinessDecision,
    ReadinessGate,
    ReadinessReason,
)

__all__ = [
    "ClaimDecision",
    "ClaimProtocol",
    "ClaimResult",
    "LeaseState",
    "Readiness",
    "ReadinessDecision",
    "ReadinessGate",
    "ReadinessReason",
    "classify_lease",
]
