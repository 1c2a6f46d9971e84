"""Fibonacci and factorial recurrences wired to the sequence engine."""

from __future__ import annotations

import threading
from typing import Dict

from .engine import Recurrence, Resolution, SequenceEngine, seed_store
from .store import Store

__all__ = [
    "FACTORIAL",
    "FIBONACCI",
    "build_engines",
    "find_factorial",
    "find_fibonacci",
]


def _fibonacci_step(index: int, window: tuple[int, ...]) -> int:
    prev, current = window
    return prev + current


def _factorial_step(index: int, window: tuple[int, ...]) -> int:
    return window[0] * index


FIBONACCI = Recurrence(
    name="fibonacci",
    order=2,
    identity=(0, 1),
    step=_fibonacci_step,
    seeds={0: 0, 1: 1},
    short_circuit=True,
)

FACTORIAL = Recurrence(
    name="factorial",
    order=1,
    identity=(1,),
    step=_factorial_step,
    seeds={0: 1, 1: 1},
)


def find_fibonacci(index: int, store: Store) -> Resolution:
    """Resolve the Fibonacci number at *index* against *store*."""

    return SequenceEngine(FIBONACCI, store).resolve(index)


def find_factorial(index: int, store: Store) -> Resolution:
    """Resolve ``index!`` against *store*."""

    return SequenceEngine(FACTORIAL, store).resolve(index)


def build_engines(
    fib_store: Store, fact_store: Store, *, seed: bool = True
) -> Dict[str, SequenceEngine]:
    """Return one engine per sequence, each guarded by its own lock.

    With ``seed`` the base cases are written into both stores first.
    """

    engines: Dict[str, SequenceEngine] = {}
    for recurrence, store in ((FIBONACCI, fib_store), (FACTORIAL, fact_store)):
        if seed:
            seed_store(recurrence, store)
        engines[recurrence.name] = SequenceEngine(
            recurrence, store, lock=threading.Lock()
        )
    return engines
