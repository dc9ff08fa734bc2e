"""Readiness decision for the switchboard leader probe.

Combines the local listener check with the lease claim into a tagged
verdict. Only the replica that holds the lease and has a live listener is
ready; every failure resolves to not-ready and recovery is left to the
next scheduled probe.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from switchboard.distributed.leader import ClaimDecision, ClaimProtocol, ClaimResult
from switchboard.health import HealthCheck
from switchboard.lease.store import LeaseStoreError

logger = logging.getLogger(__name__)


class Readiness(str, Enum):
    READY = "ready"
    NOT_READY = "not-ready"


class ReadinessReason(str, Enum):
    """Why a verdict was reached."""

    LEADER = "leader"
    STANDBY = "standby"
    LISTENER_DOWN = "listener-down"
    CLAIM_LOST = "claim-lost"
    STORE_UNAVAILABLE = "store-unavailable"
    PROBE_ERROR = "probe-error"


_CLAIM_REASONS = {
    ClaimResult.STANDBY: ReadinessReason.STANDBY,
    ClaimResult.LOST: ReadinessReason.CLAIM_LOST,
    ClaimResult.STORE_ERROR: ReadinessReason.STORE_UNAVAILABLE,
}


@dataclass(frozen=True)
class ReadinessDecision:
    """Verdict of one probe cycle."""

    readiness: Readiness
    reason: ReadinessReason
    claim: ClaimDecision | None = None
    released: bool = False

    @classmethod
    def not_ready(
        cls,
        reason: ReadinessReason,
        claim: ClaimDecision | None = None,
        released: bool = False,
    ) -> ReadinessDecision:
        return cls(Readiness.NOT_READY, reason, claim=claim, released=released)

    @property
    def ready(self) -> bool:
        return self.readiness == Readiness.READY

    @property
    def exit_code(self) -> int:
        """Process exit status for the probe: 0 ready, 1 not ready."""
        return 0 if self.ready else 1


def epoch_now() -> int:
    return int(time.time())


class ReadinessGate:
    """Per-invocation readiness logic.

    Args:
        protocol: Claim protocol bound to the shared lease store
        health_check: Local listener check
        identity: This replica's claimant identity
        clock: Returns the current time in epoch seconds
    """

    def __init__(
        self,
        protocol: ClaimProtocol,
        health_check: HealthCheck,
        identity: str,
        clock: Callable[[], int] = epoch_now,
    ):
        self.protocol = protocol
        self.health_check = health_check
        self.identity = identity
        self._clock = clock

    async def decide(self) -> ReadinessDecision:
        """Run the health check and, if healthy, one claim round."""
        if not await self.health_check.is_healthy():
            logger.info("Listener dead")
            released = await self._release_if_held()
            return ReadinessDecision.not_ready(ReadinessReason.LISTENER_DOWN, released=released)

        logger.info("Listener present")
        claim = await self.protocol.evaluate(self.identity, self._clock())
        if claim.claimed:
            return ReadinessDecision(Readiness.READY, ReadinessReason.LEADER, claim=claim)

        # Losing a claim never releases anything: we do not hold the lease.
        return ReadinessDecision.not_ready(_CLAIM_REASONS[claim.result], claim=claim)

    async def _release_if_held(self) -> bool:
        """Best-effort release so another replica can claim sooner."""
        try:
            return await self.protocol.release(self.identity)
        except LeaseStoreError as e:
            logger.warning(f"Could not release lease: {e}")
            return False
