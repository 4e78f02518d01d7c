"""
CSRF Guard - Token storage abstraction.

Defines the TokenStorage protocol and concrete implementations:
- MappingStorage: Wraps any mutable mapping by reference
- MemoryStorage: In-process storage owned by the guard or caller
- SessionStorage: The ``session[prefix]`` bucket of a request session

Stores are responsible ONLY for holding ``name -> value`` pairs in insertion
order - they do NOT validate or evict. Policy lives in the guard and in
``csrfguard.eviction``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, MutableMapping
from typing import Any, Optional, Protocol, runtime_checkable

from .faults import CSRFConfigFault

logger = logging.getLogger("csrfguard.storage")


# ============================================================================
# TokenStorage Protocol
# ============================================================================

@runtime_checkable
class TokenStorage(Protocol):
    """
    Ordered ``name -> value`` token storage.

    Insertion order is significant: overwriting an existing name keeps its
    original position, and eviction removes the oldest surviving name first.
    """

    def get(self, name: str) -> Optional[str]:
        """
        Look up the value stored for a token name.

        Returns:
            Stored value, or None if the name is unknown
        """
        ...

    def set(self, name: str, value: str) -> None:
        """Insert or overwrite a token."""
        ...

    def remove(self, name: str) -> None:
        """Delete a token. Removing an unknown name is not an error."""
        ...

    def count(self) -> int:
        """Number of stored tokens."""
        ...

    def oldest_key(self) -> Optional[str]:
        """Earliest-inserted surviving name, or None when empty."""
        ...

    def newest_key(self) -> Optional[str]:
        """Latest-inserted surviving name, or None when empty."""
        ...


# ============================================================================
# MappingStorage - Mapping-backed storage
# ============================================================================

class MappingStorage:
    """
    Token storage over an externally owned mutable mapping.

    Holds a reference, never a copy: every change is visible to whoever
    owns the mapping.

    Example:
        >>> tokens = {}
        >>> storage = MappingStorage(tokens)
        >>> storage.set("csrf5f1c", "ab12")
        >>> tokens
        {'csrf5f1c': 'ab12'}
    """

    __slots__ = ("_mapping",)

    def __init__(self, mapping: MutableMapping):
        self._mapping = mapping

    @property
    def mapping(self) -> MutableMapping:
        """The wrapped mapping."""
        return self._mapping

    def get(self, name: str) -> Optional[str]:
        return self._mapping.get(name)

    def set(self, name: str, value: str) -> None:
        self._mapping[name] = value
        self._changed()

    def remove(self, name: str) -> None:
        if name in self._mapping:
            del self._mapping[name]
            self._changed()

    def count(self) -> int:
        return len(self._mapping)

    def oldest_key(self) -> Optional[str]:
        return next(iter(self._mapping), None)

    def newest_key(self) -> Optional[str]:
        if callable(getattr(type(self._mapping), "__reversed__", None)):
            return next(reversed(self._mapping), None)
        # No __reversed__: reversed() would fall back to positional lookups
        last = None
        for last in self._mapping:
            pass
        return last

    def _changed(self) -> None:
        """Hook called after every mutation."""

    def __len__(self) -> int:
        return self.count()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(count={self.count()})"


class MemoryStorage(MappingStorage):
    """
    In-process token storage for development, testing, and session-less apps.

    Tokens live as long as this object does; they are not shared between
    processes.
    """

    __slots__ = ()

    def __init__(self):
        super().__init__({})


# ============================================================================
# SessionStorage - Session-backed storage
# ============================================================================

class SessionStorage(MappingStorage):
    """
    Token storage kept in the ``session[prefix]`` bucket.

    The bucket is created as an empty dict when absent (or not a mapping).
    After each mutation the bucket is assigned back to the session and
    ``session.mark_dirty()`` is called when the session provides it, so the
    session layer persists the change.

    Args:
        session: Dict-like session object (``get``/``__getitem__``/``__setitem__``)
        prefix: Session key holding the tokens
    """

    __slots__ = ("_session", "_prefix")

    def __init__(self, session: Any, prefix: str):
        bucket = _session_get(session, prefix)
        if not isinstance(bucket, MutableMapping):
            if bucket is not None:
                logger.warning(
                    "Session key %r held %s instead of a token mapping; replacing it",
                    prefix, type(bucket).__name__,
                )
            bucket = {}
            session[prefix] = bucket
        super().__init__(bucket)
        self._session = session
        self._prefix = prefix

    @property
    def session(self) -> Any:
        return self._session

    def _changed(self) -> None:
        self._session[self._prefix] = self._mapping
        mark_dirty = getattr(self._session, "mark_dirty", None)
        if callable(mark_dirty):
            mark_dirty()


def _session_get(session: Any, key: str) -> Any:
    if hasattr(session, "get"):
        return session.get(key)
    try:
        return session[key]
    except KeyError:
        return None


def as_storage(obj: Any) -> TokenStorage:
    """
    Adapt a user-supplied storage object.

    Accepts a ``TokenStorage`` as-is and wraps a mutable mapping in
    ``MappingStorage``.

    Raises:
        CSRFConfigFault: ``obj`` is neither
    """
    if isinstance(obj, TokenStorage):
        return obj
    if isinstance(obj, MutableMapping):
        return MappingStorage(obj)
    if isinstance(obj, Mapping):
        raise CSRFConfigFault("storage", "mapping is read-only")
    raise CSRFConfigFault(
        "storage",
        f"expected a TokenStorage or mutable mapping, got {type(obj).__name__}",
    )
