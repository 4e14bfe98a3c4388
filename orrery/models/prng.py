"""Seeded pseudo-random streams for universe generation.

xoshiro128** seeded through SplitMix32. Every stream is reproducible from its
seed, and ``fork`` derives labelled child streams without advancing the
parent, so independent parts of the generator never disturb each other.
"""

from __future__ import annotations

import math
from typing import Sequence, TypeVar

T = TypeVar("T")

_MASK32 = 0xFFFFFFFF
_FNV_OFFSET = 2166136261
_FNV_PRIME = 16777619
_TWO_32 = 0x100000000
_TWO_53 = 9007199254740992.0


def _rotl(x: int, k: int) -> int:
    return ((x << k) | (x >> (32 - k))) & _MASK32


def hash_label(text: str) -> int:
    """32-bit FNV-1a over the UTF-16 code units of ``text``.

    Characters outside the Basic Multilingual Plane contribute their two
    surrogates, matching string hashing in JavaScript clients.
    """
    data = text.encode("utf-16-le", "surrogatepass")
    h = _FNV_OFFSET
    for i in range(0, len(data), 2):
        h = ((h ^ (data[i] | data[i + 1] << 8)) * _FNV_PRIME) & _MASK32
    return h


def _splitmix_state(seed: int) -> tuple[int, int, int, int]:
    state = seed & _MASK32
    out = []
    for _ in range(4):
        state = (state + 0x9E3779B9) & _MASK32
        z = state
        z = ((z ^ (z >> 16)) * 0x85EBCA6B) & _MASK32
        z = ((z ^ (z >> 13)) * 0xC2B2AE35) & _MASK32
        out.append((z ^ (z >> 16)) & _MASK32)
    return out[0], out[1], out[2], out[3]


class Prng:
    """A xoshiro128** stream with a ``random.Random``-like surface."""

    __slots__ = ("_s0", "_s1", "_s2", "_s3")

    def __init__(self, state: tuple[int, int, int, int]) -> None:
        self.setstate(state)

    # ------------------------------------------------------------------
    # Core stream
    # ------------------------------------------------------------------

    def getstate(self) -> tuple[int, int, int, int]:
        return self._s0, self._s1, self._s2, self._s3

    def setstate(self, state: tuple[int, int, int, int]) -> None:
        s0, s1, s2, s3 = (v & _MASK32 for v in state)
        if (s0 | s1 | s2 | s3) == 0:
            s0 = 1
        self._s0, self._s1, self._s2, self._s3 = s0, s1, s2, s3

    def next_u32(self) -> int:
        """Advance one step and return the next 32-bit word."""
        s0, s1, s2, s3 = self._s0, self._s1, self._s2, self._s3
        result = (_rotl((s1 * 5) & _MASK32, 7) * 9) & _MASK32
        t = (s1 << 9) & _MASK32

        s2 ^= s0
        s3 ^= s1
        s1 ^= s2
        s0 ^= s3
        s2 ^= t
        s3 = _rotl(s3, 11)

        self._s0, self._s1, self._s2, self._s3 = s0, s1, s2, s3
        return result

    def random(self) -> float:
        """Float in [0, 1) with 53 bits of precision."""
        a = self.next_u32() >> 5
        b = self.next_u32() >> 6
        return (a * 67108864.0 + b) / _TWO_53

    def randint(self, a: int, b: int) -> int:
        """Integer in [a, b], both ends inclusive. Swapped bounds are accepted."""
        lo, hi = math.floor(a), math.floor(b)
        if lo > hi:
            lo, hi = hi, lo
        span = hi - lo + 1
        if span > _TWO_32:
            return lo + min(span - 1, int(self.random() * span))
        limit = (_TWO_32 // span) * span
        value = self.next_u32()
        while value >= limit:
            value = self.next_u32()
        return lo + value % span

    def chance(self, p: float = 0.5) -> bool:
        return self.random() < p

    def choice(self, seq: Sequence[T]) -> T:
        if not seq:
            raise IndexError("Cannot choose from an empty sequence")
        return seq[self.randint(0, len(seq) - 1)]

    def fork(self, label: str) -> Prng:
        """Derive a child stream from the current state and ``label``.

        The parent is not advanced: forking the same label twice from the
        same state yields identical children.
        """
        h = hash_label(label)
        temp = Prng(self.getstate())
        return Prng((
            temp.next_u32() ^ h,
            temp.next_u32() ^ _rotl(h, 8),
            temp.next_u32() ^ _rotl(h, 16),
            temp.next_u32() ^ _rotl(h, 24),
        ))

    # ------------------------------------------------------------------
    # Distributions
    # ------------------------------------------------------------------

    def uniform(self, a: float, b: float) -> float:
        return a + (b - a) * self.random()

    def normal(self, mu: float = 0.0, sigma: float = 1.0) -> float:
        """Box-Muller transform over two uniforms."""
        u1 = self.random()
        u2 = self.random()
        if u1 <= 0.0:
            u1 = 1.0 / _TWO_53
        z = math.sqrt(-2.0 * math.log(u1)) * math.cos(math.tau * u2)
        return mu + sigma * z

    def log_normal(self, mu: float, sigma: float) -> float:
        return math.exp(self.normal(mu, sigma))

    def geometric(self, p: float) -> int:
        """Failures before the first success, P(k) = (1 - p)^k * p."""
        if p >= 1.0:
            return 0
        if p <= 0.0:
            raise ValueError("geometric p must be in (0, 1]")
        u = self.random()
        if u <= 0.0:
            u = 1.0 / _TWO_53
        return int(math.floor(math.log(u) / math.log(1.0 - p)))

    def weighted(self, items: Sequence[T], weights: Sequence[float]) -> T:
        """Pick one of ``items`` proportionally to ``weights``."""
        if not items:
            raise IndexError("Cannot choose from an empty sequence")
        total = sum(weights)
        if total <= 0:
            return items[0]
        roll = self.random() * total
        cumulative = 0.0
        for item, weight in zip(items, weights):
            cumulative += weight
            if roll < cumulative:
                return item
        return items[-1]  # Float rounding at the top edge


def create_prng(seed: str | int | float) -> Prng:
    """Build a stream from a string or numeric seed.

    Strings are hashed with FNV-1a; numbers are truncated toward zero and
    reduced modulo 2**32.
    """
    if isinstance(seed, str):
        numeric = hash_label(seed)
    else:
        numeric = int(seed) & _MASK32
    return Prng(_splitmix_state(numeric))
