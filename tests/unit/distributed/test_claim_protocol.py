"""Tests for the lease claim protocol."""

from unittest.mock import AsyncMock

import pytest

from switchboard.distributed.leader import (
    ClaimProtocol,
    ClaimResult,
    LeaseState,
    classify_lease,
)
from switchboard.lease.model import Lease
from switchboard.lease.store import InMemoryLeaseStore, LeaseStoreError

DURATION = 30
GRACE = 1.0


@pytest.fixture
def protocol(store: InMemoryLeaseStore, no_sleep) -> ClaimProtocol:
    """Create a claim protocol over the in-memory store."""
    return ClaimProtocol(store, lease_duration=DURATION, grace_delay=GRACE, sleep=no_sleep)


class TestClassifyLease:
    """Tests for lease state classification."""

    def test_no_lease(self) -> None:
        """Absent lease is NO_LEASE."""
        assert classify_lease(None, "pod-1", 1000, DURATION) == LeaseState.NO_LEASE

    def test_held_by_self(self) -> None:
        """Own fresh lease is HELD_BY_SELF."""
        state = classify_lease(Lease("pod-1", 1000), "pod-1", 1005, DURATION)
        assert state == LeaseState.HELD_BY_SELF

    def test_held_by_self_expired(self) -> None:
        """Own stale lease is HELD_BY_SELF_EXPIRED."""
        state = classify_lease(Lease("pod-1", 900), "pod-1", 1005, DURATION)
        assert state == LeaseState.HELD_BY_SELF_EXPIRED
        assert state.is_expired

    def test_held_by_other_fresh(self) -> None:
        """Other fresh lease is HELD_BY_OTHER_FRESH."""
        state = classify_lease(Lease("pod-2", 1000), "pod-1", 1005, DURATION)
        assert state == LeaseState.HELD_BY_OTHER_FRESH
        assert not state.is_expired

    def test_held_by_other_expired(self) -> None:
        """Other stale lease is HELD_BY_OTHER_EXPIRED."""
        state = classify_lease(Lease("pod-2", 900), "pod-1", 1005, DURATION)
        assert state == LeaseState.HELD_BY_OTHER_EXPIRED


class TestEvaluateScenarios:
    """End-to-end claim scenarios against an in-memory store."""

    @pytest.mark.asyncio
    async def test_no_lease_claims(
        self, store: InMemoryLeaseStore, protocol: ClaimProtocol
    ) -> None:
        """Scenario A: first claim when no lease exists."""
        decision = await protocol.evaluate("pod-1", 1000)

        assert decision.claimed is True
        assert decision.result == ClaimResult.CLAIMED
        assert decision.state == LeaseState.NO_LEASE
        assert store.value == "pod-1:1000"

    @pytest.mark.asyncio
    async def test_renews_own_lease(self, protocol: ClaimProtocol) -> None:
        """Scenario B: own fresh lease is renewed with the new timestamp."""
        store = protocol.store
        assert isinstance(store, InMemoryLeaseStore)
        store.value = "pod-1:1000"

        decision = await protocol.evaluate("pod-1", 1005)

        assert decision.claimed is True
        assert decision.result == ClaimResult.RENEWED
        assert store.value == "pod-1:1005"
        assert store.writes == [("set", "pod-1:1005")]

    @pytest.mark.asyncio
    async def test_standby_on_other_fresh_lease(
        self, store: InMemoryLeaseStore, protocol: ClaimProtocol
    ) -> None:
        """Scenario C: another replica's fresh lease means standby, no write."""
        store.value = "pod-2:1000"

        decision = await protocol.evaluate("pod-1", 1005)

        assert decision.claimed is False
        assert decision.result == ClaimResult.STANDBY
        assert decision.lease == Lease("pod-2", 1000)
        assert store.writes == []
        assert store.value == "pod-2:1000"

    @pytest.mark.asyncio
    async def test_takes_over_expired_lease(
        self, store: InMemoryLeaseStore, protocol: ClaimProtocol, no_sleep
    ) -> None:
        """Scenario D: expired lease is cleared, claimed and re-verified."""
        store.value = "pod-2:900"

        decision = await protocol.evaluate("pod-1", 1005)

        assert decision.claimed is True
        assert decision.result == ClaimResult.TAKEN_OVER
        assert decision.state == LeaseState.HELD_BY_OTHER_EXPIRED
        assert store.value == "pod-1:1005"
        assert [op for op, _ in store.operations] == ["get", "clear", "set", "get"]
        assert no_sleep.calls == [GRACE]

    @pytest.mark.asyncio
    async def test_malformed_lease_is_overwritten(
        self, store: InMemoryLeaseStore, protocol: ClaimProtocol
    ) -> None:
        """Malformed lease is treated as no lease."""
        store.value = "garbage"

        decision = await protocol.evaluate("pod-1", 1000)

        assert decision.claimed is True
        assert decision.state == LeaseState.NO_LEASE
        assert store.value == "pod-1:1000"


class TestEvaluateProperties:
    """Invariants of the claim protocol over a range of lease ages."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("age", [0, 1, 15, DURATION])
    async def test_own_fresh_lease_single_renewal(self, no_sleep, age: int) -> None:
        """Own lease within duration: claimed with exactly one write."""
        store = InMemoryLeaseStore(f"pod-1:{1000 - age}")
        protocol = ClaimProtocol(store, lease_duration=DURATION, sleep=no_sleep)

        decision = await protocol.evaluate("pod-1", 1000)

        assert decision.claimed is True
        assert store.writes == [("set", "pod-1:1000")]
        assert no_sleep.calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("age", [0, 1, 15, DURATION])
    async def test_other_fresh_lease_no_write(self, no_sleep, age: int) -> None:
        """Other's lease within duration: not claimed, no write."""
        store = InMemoryLeaseStore(f"pod-2:{1000 - age}")
        protocol = ClaimProtocol(store, lease_duration=DURATION, sleep=no_sleep)

        decision = await protocol.evaluate("pod-1", 1000)

        assert decision.claimed is False
        assert store.writes == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("claimant", ["pod-1", "pod-2"])
    @pytest.mark.parametrize("age", [DURATION + 1, 500])
    async def test_expired_lease_clear_set_verify(
        self, no_sleep, claimant: str, age: int
    ) -> None:
        """Expired lease, any claimant: clear, set, grace, re-read."""
        store = InMemoryLeaseStore(f"{claimant}:{1000 - age}")
        protocol = ClaimProtocol(store, lease_duration=DURATION, sleep=no_sleep)

        decision = await protocol.evaluate("pod-1", 1000)

        assert decision.claimed is True
        assert store.operations == [
            ("get", f"{claimant}:{1000 - age}"),
            ("clear", None),
            ("set", "pod-1:1000"),
            ("get", "pod-1:1000"),
        ]
        assert len(no_sleep.calls) == 1

    @pytest.mark.asyncio
    async def test_repeated_renewals_keep_claimant(self, protocol: ClaimProtocol) -> None:
        """Uncontested renewals only move the timestamp forward."""
        store = protocol.store
        assert isinstance(store, InMemoryLeaseStore)

        for now in (1000, 1005, 1010, 1015):
            decision = await protocol.evaluate("pod-1", now)
            assert decision.claimed is True
            assert store.value == f"pod-1:{now}"


class TestTakeoverRace:
    """The previous holder's late renewal can overwrite a takeover."""

    @pytest.mark.asyncio
    async def test_renewal_during_grace_loses_claim(self, store: InMemoryLeaseStore) -> None:
        """A renewal landing inside the grace delay is detected by the re-read."""
        store.value = "pod-2:900"

        async def late_renewal(delay: float) -> None:
            await store.set("pod-2:1004")

        protocol = ClaimProtocol(store, lease_duration=DURATION, sleep=late_renewal)

        decision = await protocol.evaluate("pod-1", 1005)

        assert decision.claimed is False
        assert decision.result == ClaimResult.LOST
        assert decision.lease == Lease("pod-2", 1004)
        # Losing the claim never clears the winner's lease.
        assert store.value == "pod-2:1004"

    @pytest.mark.asyncio
    async def test_lease_cleared_during_grace_loses_claim(
        self, store: InMemoryLeaseStore
    ) -> None:
        """A lease that vanished before the re-read is not claimed."""
        store.value = "pod-2:900"

        async def concurrent_clear(delay: float) -> None:
            await store.clear()

        protocol = ClaimProtocol(store, lease_duration=DURATION, sleep=concurrent_clear)

        decision = await protocol.evaluate("pod-1", 1005)

        assert decision.claimed is False
        assert decision.lease is None


class TestStoreFailures:
    """Store failures end the evaluation as not claimed."""

    @pytest.fixture
    def failing_store(self) -> AsyncMock:
        """Create a store mock whose operations succeed by default."""
        mock = AsyncMock()
        mock.get = AsyncMock(return_value=None)
        mock.set = AsyncMock()
        mock.clear = AsyncMock()
        return mock

    @pytest.mark.asyncio
    async def test_get_failure(self, failing_store: AsyncMock, no_sleep) -> None:
        """Unreadable store: not claimed, no write."""
        failing_store.get.side_effect = LeaseStoreError("get", "connection refused")
        protocol = ClaimProtocol(failing_store, sleep=no_sleep)

        decision = await protocol.evaluate("pod-1", 1000)

        assert decision.claimed is False
        assert decision.result == ClaimResult.STORE_ERROR
        assert decision.state is None
        assert "connection refused" in (decision.error or "")
        failing_store.set.assert_not_called()

    @pytest.mark.asyncio
    async def test_first_claim_write_failure(self, failing_store: AsyncMock, no_sleep) -> None:
        """Failed first claim: not claimed, single attempt."""
        failing_store.set.side_effect = LeaseStoreError("set", "forbidden")
        protocol = ClaimProtocol(failing_store, sleep=no_sleep)

        decision = await protocol.evaluate("pod-1", 1000)

        assert decision.claimed is False
        assert decision.result == ClaimResult.STORE_ERROR
        assert failing_store.set.await_count == 1

    @pytest.mark.asyncio
    async def test_renewal_write_failure(self, failing_store: AsyncMock, no_sleep) -> None:
        """Failed renewal: not claimed, no takeover fallback."""
        failing_store.get.return_value = "pod-1:1000"
        failing_store.set.side_effect = LeaseStoreError("set", "timeout")
        protocol = ClaimProtocol(failing_store, lease_duration=DURATION, sleep=no_sleep)

        decision = await protocol.evaluate("pod-1", 1005)

        assert decision.claimed is False
        assert decision.state == LeaseState.HELD_BY_SELF
        failing_store.clear.assert_not_called()

    @pytest.mark.asyncio
    async def test_takeover_clear_failure(self, failing_store: AsyncMock, no_sleep) -> None:
        """Failed clear of an expired lease: not claimed, no write, no wait."""
        failing_store.get.return_value = "pod-2:900"
        failing_store.clear.side_effect = LeaseStoreError("clear", "timeout")
        protocol = ClaimProtocol(failing_store, lease_duration=DURATION, sleep=no_sleep)

        decision = await protocol.evaluate("pod-1", 1005)

        assert decision.claimed is False
        failing_store.set.assert_not_called()
        assert no_sleep.calls == []

    @pytest.mark.asyncio
    async def test_takeover_verify_failure(self, failing_store: AsyncMock, no_sleep) -> None:
        """Unreadable store during re-verification: not claimed."""
        failing_store.get.side_effect = [
            "pod-2:900",
            LeaseStoreError("get", "connection reset"),
        ]
        protocol = ClaimProtocol(failing_store, lease_duration=DURATION, sleep=no_sleep)

        decision = await protocol.evaluate("pod-1", 1005)

        assert decision.claimed is False
        assert decision.result == ClaimResult.STORE_ERROR
        failing_store.set.assert_awaited_once_with("pod-1:1005")


class TestRelease:
    """Tests for releasing the lease."""

    @pytest.mark.asyncio
    async def test_releases_own_lease(
        self, store: InMemoryLeaseStore, protocol: ClaimProtocol
    ) -> None:
        """Own lease is cleared."""
        store.value = "pod-1:1005"

        assert await protocol.release("pod-1") is True
        assert store.value is None

    @pytest.mark.asyncio
    async def test_keeps_other_lease(
        self, store: InMemoryLeaseStore, protocol: ClaimProtocol
    ) -> None:
        """Another replica's lease is left alone."""
        store.value = "pod-2:1005"

        assert await protocol.release("pod-1") is False
        assert store.value == "pod-2:1005"
        assert store.writes == []

    @pytest.mark.asyncio
    async def test_nothing_to_release(self, protocol: ClaimProtocol) -> None:
        """Absent lease needs no release."""
        assert await protocol.release("pod-1") is False
