from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from matplotlib import colormaps
from matplotlib.colors import to_hex

from .aggregation import overall_score
from .formatting import acronym
from .hierarchy import HierarchyIndex
from .models import ROOT_ID, optional_fraction
from .ordering import natural_key


ROOT_NAME = "Total"
TAU = 2.0 * math.pi

# RdYlGn: red at 0, yellow around 0.5, green at 1.
SCORE_COLORMAP = "RdYlGn"
UNSCORED_FILL = "#cccccc"


def score_color(score: Any) -> str:
    value = optional_fraction(score)
    if value is None:
        return UNSCORED_FILL
    value = min(1.0, max(0.0, value))
    return to_hex(colormaps[SCORE_COLORMAP](value))


@dataclass(frozen=True)
class NodeGeometry:
    node_id: str
    name: str
    parent_id: Optional[str]
    depth: int
    weight: float
    absolute_weight: float
    value: float
    x0: float
    x1: float
    y0: float
    y1: float
    angle_start: float
    angle_end: float
    radius_inner: float
    radius_outer: float
    score: Optional[float]
    fill: str
    label: str
    children: Tuple[str, ...] = ()

    @property
    def is_leaf(self) -> bool:
        return not self.children

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.node_id,
            "name": self.name,
            "parentId": self.parent_id,
            "depth": self.depth,
            "weight": self.weight,
            "absoluteWeight": self.absolute_weight,
            "value": self.value,
            "x0": self.x0,
            "x1": self.x1,
            "y0": self.y0,
            "y1": self.y1,
            "angleStart": self.angle_start,
            "angleEnd": self.angle_end,
            "radiusInner": self.radius_inner,
            "radiusOuter": self.radius_outer,
            "score": self.score,
            "fill": self.fill,
            "label": self.label,
            "children": list(self.children),
        }


@dataclass
class SunburstLayout:
    radius: float
    height: int
    nodes: Dict[str, NodeGeometry] = field(default_factory=dict)

    @property
    def root(self) -> NodeGeometry:
        return self.nodes[ROOT_ID]

    def get(self, node_id: str) -> NodeGeometry:
        if node_id not in self.nodes:
            raise KeyError(node_id)
        return self.nodes[node_id]

    def arcs(self) -> List[NodeGeometry]:
        """Every drawable node in depth-first order (the synthetic root excluded)."""
        return [node for node_id, node in self.nodes.items() if node_id != ROOT_ID]


def compute_layout(index: HierarchyIndex, *, radius: float) -> SunburstLayout:
    """Partition the aggregated tree into angular spans and area-equalised rings.

    Only leaves carry value (their absolute weight), so an internal node spans
    exactly the union of its leaves. Siblings keep natural id order.
    """
    children: Dict[str, List[str]] = {ROOT_ID: sorted(index.root_ids, key=natural_key)}
    for node_id, row in index.nodes.items():
        children[node_id] = sorted(row.children, key=natural_key)

    absolute: Dict[str, float] = {ROOT_ID: 1.0}
    depth: Dict[str, int] = {ROOT_ID: 0}
    order: List[str] = []

    def _descend(node_id: str) -> None:
        order.append(node_id)
        for child_id in children[node_id]:
            weight = float(index.nodes[child_id].weight or 0.0)
            absolute[child_id] = absolute[node_id] * weight
            depth[child_id] = depth[node_id] + 1
            _descend(child_id)

    _descend(ROOT_ID)

    subtree: Dict[str, float] = {}
    for node_id in reversed(order):
        if children[node_id]:
            subtree[node_id] = sum(subtree[child_id] for child_id in children[node_id])
        else:
            subtree[node_id] = max(0.0, absolute[node_id])

    height = max(depth.values())
    band = 1.0 / (height + 1)
    spans: Dict[str, Tuple[float, float]] = {ROOT_ID: (0.0, 1.0)}
    for node_id in order:
        x0, x1 = spans[node_id]
        total = subtree[node_id]
        scale = (x1 - x0) / total if total > 0 else 0.0
        cursor = x0
        for child_id in children[node_id]:
            width = subtree[child_id] * scale
            spans[child_id] = (cursor, cursor + width)
            cursor += width

    root_score = overall_score(index)
    nodes: Dict[str, NodeGeometry] = {}
    for node_id in order:
        x0, x1 = spans[node_id]
        y0 = depth[node_id] * band
        y1 = y0 + band
        if node_id == ROOT_ID:
            name, parent_id, weight, score = ROOT_NAME, None, 1.0, root_score
        else:
            row = index.nodes[node_id]
            name = row.name or row.id
            parent_id = row.parent_id if row.parent_id is not None else ROOT_ID
            weight = float(row.weight or 0.0)
            score = optional_fraction(row.score)
        nodes[node_id] = NodeGeometry(
            node_id=node_id,
            name=name,
            parent_id=parent_id,
            depth=depth[node_id],
            weight=weight,
            absolute_weight=absolute[node_id],
            value=0.0 if children[node_id] else subtree[node_id],
            x0=x0,
            x1=x1,
            y0=y0,
            y1=y1,
            angle_start=x0 * TAU,
            angle_end=x1 * TAU,
            radius_inner=radius * math.sqrt(y0),
            radius_outer=radius * math.sqrt(y1),
            score=score,
            fill=score_color(score),
            label=acronym(name),
            children=tuple(children[node_id]),
        )

    return SunburstLayout(radius=float(radius), height=height, nodes=nodes)
