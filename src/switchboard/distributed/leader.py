"""Lease-based leader claim over a last-write-wins store.

Replicas coordinate through one shared lease value of the form
``"<claimant>:<epoch-seconds>"``. The store only offers unconditional
overwrite, so the protocol is a best-effort lease, not a lock:

1. No lease (or an unreadable one): write our claim.
2. Our own fresh lease: overwrite it with a fresh timestamp (renewal).
3. Someone else's fresh lease: stand by, write nothing.
4. An expired lease: clear it, write our claim, wait the grace delay and
   re-read. We only hold the lease if the re-read still names us.
   This includes an expired lease naming us: it is taken over, not renewed.

Known race: the previous holder may have read its still-valid lease just
before expiry and issue its renewal after our step-4 write. Its overwrite
then silently restores it as claimant. The grace-delay re-read narrows this
window but cannot close it; closing it needs a conditional write the store
does not offer.

Example:
    protocol = ClaimProtocol(store, lease_duration=30, grace_delay=1.0)
    decision = await protocol.evaluate("pod-1", now=int(time.time()))
    if decision.claimed:
        ...
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum

from switchboard.lease.model import Lease, decode_lease, encode_lease
from switchboard.lease.store import LeaseStore, LeaseStoreError

logger = logging.getLogger(__name__)

DEFAULT_LEASE_DURATION = 30  # Seconds
DEFAULT_GRACE_DELAY = 1.0  # Seconds, shorter than the probe interval

Sleeper = Callable[[float], Awaitable[None]]


class LeaseState(str, Enum):
    """State of the lease as observed by one replica."""

    NO_LEASE = "no-lease"
    HELD_BY_SELF = "held-by-self"
    HELD_BY_SELF_EXPIRED = "held-by-self-expired"
    HELD_BY_OTHER_FRESH = "held-by-other-fresh"
    HELD_BY_OTHER_EXPIRED = "held-by-other-expired"

    @property
    def is_expired(self) -> bool:
        return self in (LeaseState.HELD_BY_SELF_EXPIRED, LeaseState.HELD_BY_OTHER_EXPIRED)


class ClaimResult(str, Enum):
    """How a claim evaluation ended."""

    CLAIMED = "claimed"
    RENEWED = "renewed"
    TAKEN_OVER = "taken-over"
    STANDBY = "standby"
    LOST = "lost"
    STORE_ERROR = "store-error"


@dataclass(frozen=True)
class ClaimDecision:
    """Outcome of one claim evaluation."""

    claimed: bool
    result: ClaimResult
    state: LeaseState | None = None
    lease: Lease | None = None
    error: str | None = None


def classify_lease(lease: Lease | None, identity: str, now: int, duration: int) -> LeaseState:
    """Classify an observed lease relative to ``identity`` at time ``now``."""
    if lease is None:
        return LeaseState.NO_LEASE
    expired = lease.is_expired(now, duration)
    if lease.is_held_by(identity):
        return LeaseState.HELD_BY_SELF_EXPIRED if expired else LeaseState.HELD_BY_SELF
    return LeaseState.HELD_BY_OTHER_EXPIRED if expired else LeaseState.HELD_BY_OTHER_FRESH


class ClaimProtocol:
    """Decides whether this replica may consider itself leader.

    Stateless between calls: everything it knows comes from the store. Store
    failures never propagate out of ``evaluate``; they end the evaluation
    with ``claimed=False`` and no retry.

    Args:
        store: Shared lease store
        lease_duration: Seconds after which an unrenewed lease is expired
        grace_delay: Seconds to wait before re-reading a taken-over lease
        sleep: Async sleep used for the grace delay
    """

    def __init__(
        self,
        store: LeaseStore,
        lease_duration: int = DEFAULT_LEASE_DURATION,
        grace_delay: float = DEFAULT_GRACE_DELAY,
        sleep: Sleeper = asyncio.sleep,
    ):
        self.store = store
        self.lease_duration = lease_duration
        self.grace_delay = grace_delay
        self._sleep = sleep

    async def current_lease(self) -> Lease | None:
        """Read and decode the lease.

        Raises:
            LeaseStoreError: If the store cannot be read
        """
        raw = await self.store.get()
        lease = decode_lease(raw)
        if raw and lease is None:
            logger.warning(f"Ignoring malformed lease value {raw!r}")
        return lease

    async def evaluate(self, identity: str, now: int) -> ClaimDecision:
        """Run one claim round for ``identity`` at epoch second ``now``."""
        try:
            lease = await self.current_lease()
        except LeaseStoreError as e:
            logger.warning(f"Could not read lease: {e}")
            return ClaimDecision(claimed=False, result=ClaimResult.STORE_ERROR, error=str(e))

        state = classify_lease(lease, identity, now, self.lease_duration)
        logger.info(f"Observed lease {lease.encode() if lease else None} as {state.value}")

        if state == LeaseState.NO_LEASE:
            logger.info("No claims, making first claim")
            return await self._write_claim(identity, now, state, ClaimResult.CLAIMED)

        if state == LeaseState.HELD_BY_SELF:
            logger.info("Extending own claim")
            return await self._write_claim(identity, now, state, ClaimResult.RENEWED)

        if state == LeaseState.HELD_BY_OTHER_FRESH:
            logger.info(f"Standby, lease held by {lease.claimant if lease else None}")
            return ClaimDecision(
                claimed=False, result=ClaimResult.STANDBY, state=state, lease=lease
            )

        return await self._take_over(identity, now, state, lease)

    async def release(self, identity: str) -> bool:
        """Clear the lease if it currently names ``identity``.

        Returns:
            True if the lease was held by ``identity`` and cleared

        Raises:
            LeaseStoreError: If the store cannot be read or cleared
        """
        lease = await self.current_lease()
        if lease is None or not lease.is_held_by(identity):
            return False
        await self.store.clear()
        logger.info(f"Released lease held by {identity}")
        return True

    async def _write_claim(
        self, identity: str, now: int, state: LeaseState, result: ClaimResult
    ) -> ClaimDecision:
        value = encode_lease(identity, now)
        try:
            await self.store.set(value)
        except LeaseStoreError as e:
            logger.warning(f"Could not write claim {value}: {e}")
            return ClaimDecision(
                claimed=False, result=ClaimResult.STORE_ERROR, state=state, error=str(e)
            )
        return ClaimDecision(
            claimed=True, result=result, state=state, lease=Lease(identity, now)
        )

    async def _take_over(
        self, identity: str, now: int, state: LeaseState, expired: Lease | None
    ) -> ClaimDecision:
        logger.info(f"Clearing expired claim {expired.encode() if expired else None}")
        value = encode_lease(identity, now)
        try:
            await self.store.clear()
            # Another replica may claim between the clear and our write.
            await self.store.set(value)
        except LeaseStoreError as e:
            logger.warning(f"Could not take over expired lease: {e}")
            return ClaimDecision(
                claimed=False, result=ClaimResult.STORE_ERROR, state=state, error=str(e)
            )

        # Let an in-flight renewal from the previous holder land before checking.
        await self._sleep(self.grace_delay)

        try:
            confirmed = await self.current_lease()
        except LeaseStoreError as e:
            logger.warning(f"Could not verify claim: {e}")
            return ClaimDecision(
                claimed=False, result=ClaimResult.STORE_ERROR, state=state, error=str(e)
            )

        if confirmed is not None and confirmed.is_held_by(identity):
            logger.info(f"Took over lease as {identity}")
            return ClaimDecision(
                claimed=True, result=ClaimResult.TAKEN_OVER, state=state, lease=confirmed
            )

        logger.warning(
            f"Claim did not stick, lease now {confirmed.encode() if confirmed else None}"
        )
        return ClaimDecision(claimed=False, result=ClaimResult.LOST, state=state, lease=confirmed)
