"""
Key Interning Registry
======================

Canonicalizes raw key bytes into one long-lived key object per value.

Two parses of identical bytes yield the same object, so every memoized
derivation hanging off a key (public key, encrypter, sub-keys, derived
password keys) is computed at most once per process.

Lifetime:
    Entries are never evicted. Memory grows with the number of distinct
    keys a registry has seen. A long-running process that parses
    attacker-supplied key bytes should inject its own ``KeyRegistry``
    and drop it when appropriate instead of using ``default_registry()``.

Thread Safety:
    The table lock only guards lookup and insertion of a per-entry
    ``OnceCell``. Factories run under that cell's lock, so an expensive
    factory (Argon2 for password keys) runs once per entry while callers
    for other entries proceed. A factory that raises leaves the entry
    empty and the next caller retries.
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Final, Generic, Optional, TypeVar

T = TypeVar("T")

_UNSET: Final[object] = object()


class OnceCell(Generic[T]):
    """
    Write-once cell for lazily derived values.

    ``get_or_init`` runs the factory at most once; concurrent callers
    block until the first value is published and then all see it. If the
    factory raises, nothing is stored and the next caller retries.
    """

    __slots__ = ("_lock", "_value")

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value: Any = _UNSET

    @property
    def is_set(self) -> bool:
        return self._value is not _UNSET

    def get(self) -> Optional[T]:
        """Return the published value, or None while unset."""
        value = self._value
        return None if value is _UNSET else value

    def get_or_init(self, factory: Callable[[], T]) -> T:
        value = self._value
        if value is not _UNSET:
            return value
        with self._lock:
            if self._value is _UNSET:
                self._value = factory()
            return self._value


class KeyRegistry:
    """
    Canonicalization table mapping ``(kind, raw bytes)`` to a key object.

    Usage:
        registry = KeyRegistry("session")
        key = registry.intern("ecc-private", raw, lambda: PrivateKey(raw, registry))
    """

    __slots__ = ("_name", "_lock", "_entries")

    def __init__(self, name: str = "xipher") -> None:
        self._name = name
        self._lock = threading.Lock()
        self._entries: dict[tuple[str, bytes], OnceCell[Any]] = {}

    @property
    def name(self) -> str:
        return self._name

    def intern(self, kind: str, raw: bytes, factory: Callable[[], T]) -> T:
        """
        Return the canonical object for ``(kind, raw)``.

        Args:
            kind: Key family, e.g. ``"ecc-public"``
            raw: Raw key bytes identifying the object
            factory: Builds a new object when none is registered yet; runs
                at most once per entry, concurrent callers wait for it

        Returns:
            The registered object (identical on every call for equal input)
        """
        entry_key = (kind, bytes(raw))
        with self._lock:
            cell = self._entries.get(entry_key)
            if cell is None:
                cell = self._entries[entry_key] = OnceCell()
        return cell.get_or_init(factory)

    def lookup(self, kind: str, raw: bytes) -> Optional[Any]:
        with self._lock:
            cell = self._entries.get((kind, bytes(raw)))
        return cell.get() if cell is not None else None

    def clear(self) -> None:
        """Drop every entry. Use only for testing or on teardown."""
        with self._lock:
            self._entries.clear()

    def __contains__(self, item: tuple[str, bytes]) -> bool:
        kind, raw = item
        return self.lookup(kind, raw) is not None

    def __len__(self) -> int:
        with self._lock:
            return sum(1 for cell in self._entries.values() if cell.is_set)

    def __repr__(self) -> str:
        return f"KeyRegistry(name={self._name!r}, entries={len(self)})"


_default_registry: Optional[KeyRegistry] = None
_default_lock = threading.Lock()


def default_registry() -> KeyRegistry:
    """
    Get the process-scoped registry used when no registry is injected.

    It is created on first use and never evicted.
    """
    global _default_registry
    if _default_registry is None:
        with _default_lock:
            if _default_registry is None:
                _default_registry = KeyRegistry("process")
    return _default_registry


def resolve_registry(registry: Optional[KeyRegistry]) -> KeyRegistry:
    return registry if registry is not None else default_registry()
