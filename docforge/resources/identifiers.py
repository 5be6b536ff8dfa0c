"""Collision-free identifiers for temporary artifacts."""

from __future__ import annotations

import itertools
import secrets
import threading


class IdentifierFactory:
    """Produce identifiers unique for the lifetime of the process.

    Each identifier joins a monotonic counter with a random suffix, so two
    requests arriving within the same clock tick never share a name and a
    restarted process cannot collide with leftovers of a previous one.
    """

    def __init__(self, *, random_bytes: int = 6) -> None:
        if random_bytes < 1:
            raise ValueError("random_bytes must be positive")
        self._counter = itertools.count(1)
        self._lock = threading.Lock()
        self._random_bytes = random_bytes

    def __call__(self) -> str:
        with self._lock:
            sequence = next(self._counter)
        return f"{sequence:08d}-{secrets.token_hex(self._random_bytes)}"


__all__ = ["IdentifierFactory"]
