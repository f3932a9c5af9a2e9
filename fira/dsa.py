"""
DSA utilities
=============

Small, explicit algorithms shared by the stores and the aggregator.

Included:
- Merge Sort (stable, O(n log n)) used to order incidents by `fire_time`
- First-occurrence deduplication by key (O(n))
- Row -> column transposition for factor records (O(n * fields))
"""

from __future__ import annotations
from typing import Any, Callable, Dict, Hashable, Iterable, List, Mapping, Optional, Sequence, TypeVar

T = TypeVar("T")


def merge_sort(arr: List[T], key: Callable[[T], Any] = lambda x: x, reverse: bool = False) -> List[T]:
    """Stable merge sort (equal keys keep their input order)."""
    if len(arr) <= 1:
        return arr[:]
    mid = len(arr) // 2
    left = merge_sort(arr[:mid], key=key, reverse=reverse)
    right = merge_sort(arr[mid:], key=key, reverse=reverse)
    return _merge(left, right, key=key, reverse=reverse)


def _merge(left: List[T], right: List[T], key: Callable[[T], Any], reverse: bool) -> List[T]:
    out: List[T] = []
    # i and j are pointers into each sorted list
    i = j = 0
    while i < len(left) and j < len(right):
        a, b = key(left[i]), key(right[j])
        take_left = (a >= b) if reverse else (a <= b)
        if take_left:
            out.append(left[i]); i += 1
        else:
            out.append(right[j]); j += 1
    out.extend(left[i:])
    out.extend(right[j:])
    return out


def unique_by(items: Iterable[T], key: Callable[[T], Hashable]) -> List[T]:
    """Keep the first item seen for each key, in input order."""
    seen = set()
    out: List[T] = []
    for it in items:
        k = key(it)
        if k in seen:
            continue
        seen.add(k)
        out.append(it)
    return out


def to_columns(
    records: Iterable[Any],
    names: Optional[Sequence[str]] = None,
    flatten: bool = False,
) -> Dict[str, List[Any]]:
    """Transpose records into one list per factor name.

    Each record provides `factor_items()` (name -> value). Column order is
    first-seen order, or `names` when given (missing values become None).
    With `flatten=True`, tuple/list values are spliced into the column
    instead of nested.
    """
    cols: Dict[str, List[Any]] = {n: [] for n in names} if names is not None else {}
    for rec in records:
        items: Mapping[str, Any] = rec.factor_items()
        keys = names if names is not None else items.keys()
        for k in keys:
            v = items.get(k)
            col = cols.setdefault(k, [])
            if flatten and isinstance(v, (tuple, list)):
                col.extend(v)
            else:
                col.append(v)
    return cols
