"""Lease store interface and the in-memory implementation.

A lease store holds one string value under one fixed key. Writes are
unconditional overwrites: the store offers no compare-and-swap, so
concurrent writers race and the last write wins.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


class LeaseStoreError(Exception):
    """Raised when the lease store cannot complete an operation."""

    def __init__(self, operation: str, message: str) -> None:
        self.operation = operation
        super().__init__(f"lease store {operation} failed: {message}")


@runtime_checkable
class LeaseStore(Protocol):
    """Narrow key-value view over the shared lease resource."""

    async def get(self) -> str | None:
        """Return the stored value, or None when absent."""
        ...

    async def set(self, value: str) -> None:
        """Overwrite the stored value unconditionally."""
        ...

    async def clear(self) -> None:
        """Remove the stored value. Clearing an absent value succeeds."""
        ...

    async def close(self) -> None:
        """Release resources held by the store."""
        ...


class InMemoryLeaseStore:
    """Process-local lease store.

    Useful for local development and tests. Every operation is appended to
    ``operations`` as ``(name, value)`` so callers can inspect the exact
    write sequence.
    """

    def __init__(self, value: str | None = None) -> None:
        self.value = value
        self.operations: list[tuple[str, str | None]] = []

    async def get(self) -> str | None:
        self.operations.append(("get", self.value))
        return self.value

    async def set(self, value: str) -> None:
        self.operations.append(("set", value))
        self.value = value

    async def clear(self) -> None:
        self.operations.append(("clear", None))
        self.value = None

    async def close(self) -> None:
        return None

    @property
    def writes(self) -> list[tuple[str, str | None]]:
        """Operations that modified the store, in order."""
        return [op for op in self.operations if op[0] != "get"]
