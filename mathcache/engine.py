"""Incremental memoized engine for integer recurrences.

The engine answers "what is term *n*" for a recurrence whose terms live in a
:class:`~mathcache.store.Store`.  It trusts only the contiguous run of terms
starting at index 0, resumes the recurrence from the top of that run and
writes each derived term back before deriving the next one.  A crash midway
therefore leaves a valid, resumable prefix behind.

The same control flow serves first order (factorial) and second order
(Fibonacci) recurrences; a :class:`Recurrence` supplies the step function,
the fallback terms used when the store is empty and the base cases.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Mapping, NamedTuple, Optional

from .store import Store

__all__ = [
    "InvalidInputError",
    "Recurrence",
    "Resolution",
    "SequenceEngine",
    "seed_store",
]

logger = logging.getLogger(__name__)

NEGATIVE_INDEX_MESSAGE = "Number must be non-negative"

StepFunction = Callable[[int, tuple[int, ...]], int]


class InvalidInputError(ValueError):
    """Raised when a caller requests a term at a negative index."""

    def __init__(self, message: str = NEGATIVE_INDEX_MESSAGE) -> None:
        super().__init__(message)
        self.message = message


class Resolution(NamedTuple):
    """Term returned by :meth:`SequenceEngine.resolve`."""

    value: int
    cached: bool


@dataclass(frozen=True)
class Recurrence:
    """Description of an integer recurrence of order 1 or 2.

    ``identity`` holds one fallback term per position in the window ending at
    the base index ``order - 1``; it is used when those positions are absent
    from the store.  ``step`` receives the index being derived and the window
    of the ``order`` preceding terms, oldest first.
    """

    name: str
    order: int
    identity: tuple[int, ...]
    step: StepFunction
    seeds: Mapping[int, int] = field(default_factory=dict)
    short_circuit: bool = False

    def __post_init__(self) -> None:
        if self.order not in (1, 2):
            raise ValueError("order must be 1 or 2")
        if len(self.identity) != self.order:
            raise ValueError("identity must provide one term per order")

    @property
    def base_index(self) -> int:
        return self.order - 1


def seed_store(recurrence: Recurrence, store: Store) -> int:
    """Write the recurrence's base cases into *store*.

    Existing keys are left untouched.  Returns the number of seeds written.
    """

    written = 0
    for index, term in sorted(recurrence.seeds.items()):
        if store.contains_key(index):
            continue
        store.set(index, term)
        written += 1
    if written:
        logger.debug("Seeded %d base cases for %s", written, recurrence.name)
    return written


def _validate_index(index: int) -> None:
    if isinstance(index, bool) or not isinstance(index, int):
        raise TypeError("index must be an integer")
    if index < 0:
        raise InvalidInputError()


class SequenceEngine:
    """Resolve terms of one recurrence against one store.

    Every call to :meth:`resolve` holds ``lock`` for its whole duration so
    concurrent callers never interleave their scans and writes.  Engines that
    share a store inside one process should share the lock as well.
    """

    def __init__(
        self,
        recurrence: Recurrence,
        store: Store,
        lock: Optional[threading.Lock] = None,
    ) -> None:
        self.recurrence = recurrence
        self.store = store
        self._lock = lock if lock is not None else threading.Lock()

    @property
    def name(self) -> str:
        return self.recurrence.name

    def resolve(self, index: int) -> Resolution:
        """Return the term at *index* and whether it came from the cache.

        Raises:
            InvalidInputError: *index* is negative.
            StorageError: the store failed; never treated as a cache miss.
        """

        _validate_index(index)

        recurrence = self.recurrence
        if recurrence.short_circuit and index in recurrence.seeds:
            return Resolution(recurrence.seeds[index], True)

        with self._lock:
            return self._resolve_locked(index)

    def _resolve_locked(self, index: int) -> Resolution:
        store = self.store
        if store.contains_key(index):
            term = store.get(index)
            if term is not None:
                logger.debug(
                    "sequence.hit", extra={"sequence": self.name, "index": index}
                )
                return Resolution(term, True)

        max_calculated = self._scan_prefix(index)
        window = self._recover_window(max_calculated)

        if index <= max_calculated:
            # Target is the base index itself and the store lacks it.
            term = window[-1]
            store.set(index, term)
            return Resolution(term, False)

        logger.info(
            "sequence.extend",
            extra={
                "sequence": self.name,
                "index": index,
                "resumed_from": max_calculated,
            },
        )
        step = self.recurrence.step
        term = window[-1]
        for position in range(max_calculated + 1, index + 1):
            term = step(position, window)
            store.set(position, term)
            window = window[1:] + (term,)
        return Resolution(term, False)

    def _scan_prefix(self, index: int) -> int:
        """Return the top of the contiguous run of stored terms from 0."""

        highest = -1
        for position in range(index + 1):
            if not self.store.contains_key(position):
                break
            highest = position
        return max(highest, self.recurrence.base_index)

    def _recover_window(self, max_calculated: int) -> tuple[int, ...]:
        order = self.recurrence.order
        identity = self.recurrence.identity
        terms: list[int] = []
        start = max_calculated - order + 1
        for offset, position in enumerate(range(start, max_calculated + 1)):
            term = self.store.get(position)
            terms.append(identity[offset] if term is None else term)
        return tuple(terms)
