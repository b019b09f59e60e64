"""Deterministic random number generation.

A small 32-bit state generator (Mulberry32) so that a run seeded with the
same value replays bit for bit, and so that the generator state fits in a
saved run as a single integer.
"""

from __future__ import annotations

import random

from cretycoon.core.exceptions import InvalidParameterError

_MASK32 = 0xFFFFFFFF
_FNV_OFFSET = 0x811C9DC5
_FNV_PRIME = 0x01000193


def _imul(a: int, b: int) -> int:
    return (a * b) & _MASK32


def seed_from_string(text: str) -> int:
    """Map a text seed to a 32-bit integer seed (FNV-1a over UTF-8)."""
    h = _FNV_OFFSET
    for byte in text.encode("utf-8"):
        h ^= byte
        h = (h * _FNV_PRIME) & _MASK32
    return h


def random_seed() -> int:
    """Draw a fresh 32-bit seed for unseeded runs."""
    return random.SystemRandom().randrange(0, _MASK32 + 1)


class Mulberry32:
    """Seeded generator of floats in [0, 1).

    Each run context owns its own instance; reseeding one instance never
    touches another.
    """

    def __init__(self, seed: int):
        self._state = seed & _MASK32

    @property
    def state(self) -> int:
        return self._state

    @state.setter
    def state(self, value: int) -> None:
        self._state = value & _MASK32

    def random(self) -> float:
        """Next float in [0, 1)."""
        self._state = (self._state + 0x6D2B79F5) & _MASK32
        t = self._state
        t = _imul(t ^ (t >> 15), t | 1)
        t = ((t + _imul(t ^ (t >> 7), t | 61)) & _MASK32) ^ t
        return ((t ^ (t >> 14)) & _MASK32) / 4294967296.0

    __call__ = random

    def randint(self, lo: int, hi: int) -> int:
        """Uniform integer in [lo, hi], inclusive."""
        if hi < lo:
            raise InvalidParameterError("hi", hi, f"must be >= lo ({lo})")
        return lo + int(self.random() * (hi - lo + 1))

    def choice(self, items):
        """Uniformly pick one element of a non-empty sequence."""
        return items[int(self.random() * len(items))]
