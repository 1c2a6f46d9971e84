"""Key/value stores holding resolved sequence terms.

Every backend exposes the same three operations over an integer key space so
the sequence engine never depends on a concrete store.  Two implementations
ship with the package: :class:`InMemoryStore` for single-process deployments
and tests, and :class:`RedisStore` which persists terms as decimal strings
under ``<prefix>:<index>`` keys.
"""

from __future__ import annotations

import logging
from typing import Iterator, Mapping, Optional, Protocol, runtime_checkable

from redis import Redis, RedisError

__all__ = [
    "InMemoryStore",
    "RedisStore",
    "StorageError",
    "Store",
]

logger = logging.getLogger(__name__)


class StorageError(RuntimeError):
    """Raised when a backend cannot be reached or returns undecodable data."""


@runtime_checkable
class Store(Protocol):
    """Minimal protocol satisfied by every term store."""

    def get(self, index: int) -> Optional[int]:
        """Return the term stored at *index* or ``None`` when missing."""

    def set(self, index: int, term: int) -> None:
        """Persist *term* at *index*, replacing any previous value."""

    def contains_key(self, index: int) -> bool:
        """Return ``True`` when *index* holds a term."""


class InMemoryStore:
    """Dictionary backed store living for the lifetime of the process."""

    def __init__(self, initial: Mapping[int, int] | None = None) -> None:
        self._terms: dict[int, int] = dict(initial or {})

    def get(self, index: int) -> Optional[int]:
        return self._terms.get(index)

    def set(self, index: int, term: int) -> None:
        self._terms[index] = term

    def contains_key(self, index: int) -> bool:
        return index in self._terms

    def snapshot(self) -> dict[int, int]:
        """Return a copy of every stored term."""

        return dict(self._terms)

    def __contains__(self, index: object) -> bool:
        return index in self._terms

    def __len__(self) -> int:
        return len(self._terms)

    def __iter__(self) -> Iterator[int]:
        return iter(sorted(self._terms))


class RedisStore:
    """Redis backed store sharing one client between several prefixes.

    Terms are written as decimal strings because Redis has no arbitrary
    precision integer type.  The prefix keeps the Fibonacci and factorial
    tables apart inside one database.
    """

    def __init__(self, client: Redis, prefix: str) -> None:
        prefix = prefix.strip()
        if not prefix:
            raise ValueError("prefix must be a non-empty string")
        self._client = client
        self.prefix = prefix

    @property
    def client(self) -> Redis:
        return self._client

    def key(self, index: int) -> str:
        return f"{self.prefix}:{index}"

    def get(self, index: int) -> Optional[int]:
        key = self.key(index)
        try:
            raw = self._client.get(key)
        except RedisError as exc:
            raise StorageError(f"Failed to read {key}: {exc}") from exc
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8", errors="replace")
        if not (raw.isascii() and raw.isdigit()):
            raise StorageError(f"Value stored at {key} is not an integer")
        return int(raw)

    def set(self, index: int, term: int) -> None:
        key = self.key(index)
        try:
            self._client.set(key, str(term))
        except RedisError as exc:
            raise StorageError(f"Failed to write {key}: {exc}") from exc

    def contains_key(self, index: int) -> bool:
        key = self.key(index)
        try:
            return bool(self._client.exists(key))
        except RedisError as exc:
            raise StorageError(f"Failed to check {key}: {exc}") from exc

    def ping(self) -> bool:
        """Return ``True`` when the Redis server is reachable."""

        try:
            return bool(self._client.ping())
        except RedisError as exc:
            logger.warning("Redis ping failed for prefix %s: %s", self.prefix, exc)
            return False

    def clear_prefix(self) -> int:
        """Delete every key written under this store's prefix."""

        pattern = f"{self.prefix}:*"
        try:
            keys = list(self._client.scan_iter(match=pattern))
            if not keys:
                return 0
            deleted = int(self._client.delete(*keys))
        except RedisError as exc:
            raise StorageError(f"Failed to clear {pattern}: {exc}") from exc
        logger.info("Cleared %d keys matching %s", deleted, pattern)
        return deleted
