"""Deterministic random source — seedable Mulberry32 stream of uniforms in [0, 1).

Anything with a ``random() -> float`` method can stand in for it, which is
how tests force a particular tie-break in the edit solver.
"""

import math
import secrets
from typing import Protocol, Sequence, TypeVar

T = TypeVar("T")

_MASK32 = 0xFFFFFFFF
_INCREMENT = 0x6D2B79F5
_TWO_32 = 4294967296.0


class RandomSource(Protocol):
    def random(self) -> float: ...


def _imul(a: int, b: int) -> int:
    """32-bit wrapping multiply."""
    return (a * b) & _MASK32


class Mulberry32:
    """Small 32-bit PRNG. Same seed gives the same stream on every platform."""

    def __init__(self, seed: int):
        self.seed = int(seed) & _MASK32
        self._state = self.seed

    def random(self) -> float:
        self._state = (self._state + _INCREMENT) & _MASK32
        a = self._state
        t = _imul(a ^ (a >> 15), 1 | a)
        t = ((t + _imul(t ^ (t >> 7), 61 | t)) & _MASK32) ^ t
        return ((t ^ (t >> 14)) & _MASK32) / _TWO_32

    def restart(self) -> None:
        self._state = self.seed


def entropy_seed() -> int:
    """32-bit seed from the OS entropy pool."""
    return secrets.randbits(32)


def pick(rng: RandomSource, candidates: Sequence[T]) -> T:
    """Choose one element uniformly at random."""
    if not candidates:
        raise ValueError("pick() needs at least one candidate")
    idx = min(len(candidates) - 1, int(math.floor(rng.random() * len(candidates))))
    return candidates[idx]
