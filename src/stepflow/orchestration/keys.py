"""Typed keys addressing slots of the shared orchestration context."""

from typing import Generic, TypeVar

from ..config_exceptions import require_not_none

T = TypeVar("T")


class Key(Generic[T]):
    """Opaque token naming one slot of an :class:`OrchestrationContext`.

    Keys compare and hash by identity: two keys created with the same name
    address two different slots. The name is only used for diagnostics and
    as the default step name of value-producing steps.

    Example::

        GREETING: Key[str] = Key.of("greeting")
    """

    __slots__ = ("_name",)

    def __init__(self, name: str) -> None:
        self._name = require_not_none(name, "key.name")

    @classmethod
    def of(cls, name: str) -> "Key[T]":
        """Create a new key with the given display name."""
        return cls(name)

    @property
    def name(self) -> str:
        """Human-readable name of the key."""
        return self._name

    def __repr__(self) -> str:
        return f"Key[{self._name}]"
