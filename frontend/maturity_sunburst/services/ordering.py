from __future__ import annotations

from typing import Iterable, List, Tuple

from .models import CriterionRow


SegmentKey = Tuple[int, int, str]


def natural_key(cid: object) -> Tuple[SegmentKey, ...]:
    """Sort key for dotted ids: numeric segments by value, others case-insensitively.

    Numeric segments sort before textual ones at the same position, and a
    prefix sorts before its extensions ("1" < "1.1").
    """
    key: List[SegmentKey] = []
    for segment in str(cid if cid is not None else "").split("."):
        text = segment.strip()
        if text.isdigit():
            key.append((0, int(text), ""))
        else:
            key.append((1, 0, text.casefold()))
    return tuple(key)


def compare_ids(left: object, right: object) -> int:
    a = natural_key(left)
    b = natural_key(right)
    if a < b:
        return -1
    if a > b:
        return 1
    return 0


def sort_ids(ids: Iterable[str]) -> List[str]:
    return sorted(ids, key=natural_key)


def sort_rows(rows: Iterable[CriterionRow]) -> List[CriterionRow]:
    return sorted(rows, key=lambda row: natural_key(row.id))
