"""Normalization helpers.

Centralizes defensive parsing of store payloads.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from typing import Any


def safe_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def to_count(value: Any) -> int | float | None:
    """Coerce a distribution count, keeping integral values as ``int``.

    Booleans, NaN, infinities and anything non-numeric yield ``None``.
    """
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    parsed = safe_float(value)
    if parsed is None:
        return None
    return int(parsed) if parsed.is_integer() else parsed


def count_mapping(value: Any) -> dict[str, int | float]:
    """Normalize a label → count mapping, dropping entries without a usable count.

    Negative counts are not usable either; a share of a distribution
    cannot be below zero.

    Insertion order is preserved; it decides ties downstream.
    """
    if not isinstance(value, Mapping):
        return {}
    counts: dict[str, int | float] = {}
    for label, raw_count in value.items():
        count = to_count(raw_count)
        if count is not None and count >= 0:
            counts[str(label)] = count
    return counts


def entry_list(value: Any) -> list[Any]:
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return list(value)
    return []
