"""The allocation effect lattice: ``NoAlloc <: MayAlloc``."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Effect(str, Enum):
    NO_ALLOC = "NoAlloc"
    MAY_ALLOC = "MayAlloc"   # top; the default for undeclared methods

    @property
    def may_alloc(self) -> bool:
        return self is Effect.MAY_ALLOC

    @property
    def no_alloc(self) -> bool:
        return self is Effect.NO_ALLOC

    def __str__(self) -> str:
        return self.value


def compare(a: Effect, b: Effect) -> int:
    """Total order on effects: -1, 0 or 1 with NO_ALLOC < MAY_ALLOC."""
    if a.may_alloc == b.may_alloc:
        return 0
    return 1 if a.may_alloc else -1


def meet(a: Effect, b: Effect) -> Effect:
    """Return the more restrictive of two effects."""
    return a if compare(a, b) <= 0 else b


@dataclass(frozen=True)
class EffectRange:
    """Span of effects demanded by the methods an override inherits from."""
    min: Effect
    max: Effect

    @classmethod
    def from_bounds(cls, lo: Effect | None, hi: Effect | None) -> EffectRange:
        """Build a range, filling a missing bound with the other one.

        Raises ValueError when neither bound is known.
        """
        if lo is None and hi is None:
            raise ValueError("EffectRange needs at least one bound")
        return cls(min=lo if lo is not None else hi, max=hi if hi is not None else lo)

    @property
    def conflicting(self) -> bool:
        return self.min != self.max

    def __str__(self) -> str:
        return f"({self.min}, {self.max})"
