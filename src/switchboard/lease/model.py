"""Lease value model and wire encoding.

A lease is stored as the single string ``"<claimant>:<epoch-seconds>"``.
Anything that does not decode cleanly is treated as "no lease" so that a
corrupted value can always be overwritten by the next claimant.
"""

from __future__ import annotations

from dataclasses import dataclass

DELIMITER = ":"


@dataclass(frozen=True)
class Lease:
    """A time-bounded claim recorded as (claimant, claimed_at)."""

    claimant: str
    claimed_at: int

    def encode(self) -> str:
        """Encode to the wire representation."""
        return encode_lease(self.claimant, self.claimed_at)

    def age(self, now: int) -> int:
        """Seconds since the claim was written (negative under clock skew)."""
        return now - self.claimed_at

    def is_expired(self, now: int, duration: int) -> bool:
        """Whether the claim is older than the lease duration."""
        return self.age(now) > duration

    def is_held_by(self, identity: str) -> bool:
        return self.claimant == identity


def encode_lease(claimant: str, claimed_at: int) -> str:
    """Encode a claim for storage.

    Raises:
        ValueError: If the claimant is empty or contains the delimiter, or the
            timestamp is negative; such a value could not be decoded again.
    """
    if not claimant:
        raise ValueError("claimant must not be empty")
    if DELIMITER in claimant:
        raise ValueError(f"claimant must not contain {DELIMITER!r}: {claimant!r}")
    if claimed_at < 0:
        raise ValueError(f"claimed_at must not be negative: {claimed_at}")
    return f"{claimant}{DELIMITER}{claimed_at}"


def decode_lease(value: str | None) -> Lease | None:
    """Decode a stored lease value.

    Returns None for absent or malformed values.
    """
    if not value:
        return None

    parts = value.split(DELIMITER)
    if len(parts) != 2:
        return None

    claimant, claimed_at = parts
    if not claimant or not claimed_at.isdigit() or not claimed_at.isascii():
        return None

    return Lease(claimant=claimant, claimed_at=int(claimed_at))
