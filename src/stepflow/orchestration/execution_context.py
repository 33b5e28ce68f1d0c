"""Shared context for orchestration runs.

Stores step outputs under typed keys for the duration of a run.

Thread Safety:
    This module is thread-safe. All mutable shared state is protected by RLock.
    Steps of a parallel group can read and write the context concurrently.
    Concurrent writes to the same key are last-write-wins; steps of one
    parallel group should write disjoint keys.
"""

import threading
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, TypeVar, overload

from ..orchestration_exceptions import MissingContextValueError
from .keys import Key

T = TypeVar("T")


class OrchestrationContext:
    """Mapping from :class:`Key` to value shared by every step of a run.

    Thread Safety:
        All methods are thread-safe. Concurrent access is protected by an RLock.
    """

    def __init__(self, initial_values: Mapping[Key[Any], Any] | None = None) -> None:
        """Initialize orchestration context.

        Args:
            initial_values: Optional values to seed the context with
        """
        self._lock = threading.RLock()
        self._store: dict[Key[Any], Any] = dict(initial_values or {})

    @classmethod
    def empty(cls) -> "OrchestrationContext":
        """Create a context with no values."""
        return cls()

    def put(self, key: Key[T], value: T) -> None:
        """Store a value under a key, replacing any previous value.

        Args:
            key: Slot to write
            value: Value to store
        """
        with self._lock:
            self._store[key] = value

    @overload
    def get(self, key: Key[T]) -> T | None: ...

    @overload
    def get(self, key: Key[T], default: T) -> T: ...

    def get(self, key: Key[T], default: T | None = None) -> T | None:
        """Get the value stored under a key.

        Args:
            key: Slot to read
            default: Value returned when the slot is empty

        Returns:
            Stored value or default
        """
        with self._lock:
            return self._store.get(key, default)

    def require(self, key: Key[T]) -> T:
        """Get the value stored under a key, raising when there is none.

        Raises:
            MissingContextValueError: If nothing is stored under ``key``
        """
        with self._lock:
            if key not in self._store:
                raise MissingContextValueError(key)
            return self._store[key]

    def contains(self, key: Key[Any]) -> bool:
        """Check if a value is stored under a key."""
        with self._lock:
            return key in self._store

    def remove(self, key: Key[Any]) -> None:
        """Delete the value stored under a key, if any."""
        with self._lock:
            self._store.pop(key, None)

    def snapshot(self) -> Mapping[Key[Any], Any]:
        """Return a read-only copy of the current values.

        Later writes to the context are not visible through the snapshot.
        """
        with self._lock:
            return MappingProxyType(dict(self._store))

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._store

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def __str__(self) -> str:
        with self._lock:
            names = ", ".join(key.name for key in self._store)
            return f"OrchestrationContext({names})"
