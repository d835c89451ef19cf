"""Declaration markers read by the checker.

    from alloc_checker.markers import no_alloc, may_alloc

    class RingBuffer:
        @no_alloc
        def push(self, item): ...

The decorators are no-ops at runtime apart from recording the effect on the
function, so marked code runs unchanged. The checker recognizes them
syntactically, bare (``@no_alloc``), called (``@no_alloc()``) or qualified
(``@markers.no_alloc``).

A single allocation site is exempted by a trailing pragma on the assignment
that holds it::

    buf = bytearray(n)  # alloceffect: ignore
"""

from __future__ import annotations

import re
from typing import Callable, TypeVar

F = TypeVar("F", bound=Callable)

NO_ALLOC_NAMES = frozenset({"no_alloc"})
MAY_ALLOC_NAMES = frozenset({"may_alloc"})

EFFECT_ATTR = "__alloc_effect__"


def no_alloc(func: F | None = None) -> F | Callable[[F], F]:
    """Mark a function or method as performing no allocation."""
    return _mark(func, "NoAlloc")


def may_alloc(func: F | None = None) -> F | Callable[[F], F]:
    """Mark a function or method as possibly allocating (the default)."""
    return _mark(func, "MayAlloc")


def _mark(func, effect: str):
    def apply(f):
        target = getattr(f, "__func__", f)   # staticmethod / classmethod
        setattr(target, EFFECT_ATTR, effect)
        return f

    if func is None:
        return apply
    return apply(func)


def suppression_pattern(key: str) -> re.Pattern[str]:
    """Regex matching the suppression pragma for `key` inside a comment."""
    return re.compile(rf"#\s*{re.escape(key)}\s*:\s*ignore\b")
