from __future__ import annotations

from typing import Iterable, List, Optional, Tuple

from .hierarchy import HierarchyIndex, build_hierarchy
from .models import CriterionRow, optional_fraction
from .ordering import natural_key, sort_rows


def weighted_mean(pairs: Iterable[Tuple[Optional[float], float]]) -> float:
    """Weight-normalised mean over (score, weight) pairs.

    Pairs with an absent score count toward neither sum. Returns 0 when nothing
    scorable carries weight.
    """
    weighted_sum = 0.0
    weight_total = 0.0
    for score, weight in pairs:
        value = optional_fraction(score)
        if value is None:
            continue
        w = float(weight or 0.0)
        weighted_sum += value * w
        weight_total += w
    if weight_total > 0:
        return weighted_sum / weight_total
    return 0.0


def _rollup(index: HierarchyIndex, node_id: str) -> Optional[float]:
    node = index.nodes[node_id]
    if not node.children:
        return node.score
    node.children.sort(key=natural_key)
    pairs = [(_rollup(index, child_id), index.nodes[child_id].weight) for child_id in node.children]
    node.score = weighted_mean(pairs)
    return node.score


def aggregate(index: HierarchyIndex) -> List[CriterionRow]:
    """Recompute every internal score bottom-up and return the rows sorted by id.

    Mutates the rows held by ``index``; leaf scores are left as they are.
    """
    index.root_ids.sort(key=natural_key)
    for root_id in index.root_ids:
        _rollup(index, root_id)
    return sort_rows(index.rows)


def overall_score(index: HierarchyIndex) -> float:
    return weighted_mean((index.nodes[root_id].score, index.nodes[root_id].weight) for root_id in index.root_ids)


def recompute(rows: Iterable[CriterionRow]) -> List[CriterionRow]:
    return aggregate(build_hierarchy(rows))

