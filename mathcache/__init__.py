"""Cached arbitrary-precision Fibonacci and factorial service."""

import sys

# Terms routinely exceed the interpreter's default 4300 digit limit for
# int <-> str conversion used by the Redis store and the JSON responses.
if hasattr(sys, "set_int_max_str_digits"):
    sys.set_int_max_str_digits(0)

from .engine import (
    InvalidInputError,
    Recurrence,
    Resolution,
    SequenceEngine,
    seed_store,
)
from .sequences import (
    FACTORIAL,
    FIBONACCI,
    build_engines,
    find_factorial,
    find_fibonacci,
)
from .store import InMemoryStore, RedisStore, StorageError, Store

__all__ = [
    "FACTORIAL",
    "FIBONACCI",
    "InMemoryStore",
    "InvalidInputError",
    "Recurrence",
    "RedisStore",
    "Resolution",
    "SequenceEngine",
    "StorageError",
    "Store",
    "build_engines",
    "find_factorial",
    "find_fibonacci",
    "seed_store",
]
