from __future__ import annotations

import math
from typing import Mapping, Sequence

from .models import IndexedItem

_TOP_LEVEL_FIELDS = ("id", "content")


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """dot(a, b) / (|a| * |b|).

    Returns 0.0 for mismatched or empty lengths and for zero-magnitude
    vectors; never raises and never yields NaN.
    """
    if len(a) != len(b) or not a:
        return 0.0
    dot = mag_a = mag_b = 0.0
    for x, y in zip(a, b):
        dot += x * y
        mag_a += x * x
        mag_b += y * y
    if mag_a == 0.0 or mag_b == 0.0:
        return 0.0
    score = dot / math.sqrt(mag_a * mag_b)
    # float rounding can push parallel vectors a hair past the bounds
    return max(-1.0, min(1.0, score))


def _equal(stored: object, wanted: object) -> bool:
    # bool is an int subclass; True must not match 1
    if isinstance(stored, bool) != isinstance(wanted, bool):
        return False
    return stored == wanted


def matches_filter(item: IndexedItem, filter: Mapping[str, object]) -> bool:
    """True iff every filter key equals a top-level field or a metadata entry of ``item``.

    Missing keys never match.
    """
    for key, wanted in filter.items():
        if key in _TOP_LEVEL_FIELDS and _equal(getattr(item, key), wanted):
            continue
        meta = item.metadata or {}
        if key in meta and _equal(meta[key], wanted):
            continue
        return False
    return True
