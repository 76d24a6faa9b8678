from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Optional

from .models import ROOT_ID, CriterionRow


logger = logging.getLogger(__name__)


def parent_id_of(cid: str) -> Optional[str]:
    text = str(cid or "")
    if "." not in text:
        return None
    return text.rsplit(".", 1)[0]


@dataclass
class HierarchyIndex:
    """Arena of rows keyed by id.

    ``rows`` keeps every input row in input order, including rows shadowed by a
    later duplicate id; only the rows reachable through ``nodes`` take part in
    the tree.
    """

    rows: List[CriterionRow]
    nodes: Dict[str, CriterionRow]
    root_ids: List[str] = field(default_factory=list)
    duplicate_ids: List[str] = field(default_factory=list)

    def get(self, node_id: str) -> CriterionRow:
        return self.nodes[node_id]

    def parent_of(self, node_id: str) -> Optional[CriterionRow]:
        parent_id = self.nodes[node_id].parent_id
        if parent_id is None:
            return None
        return self.nodes.get(parent_id)

    def depth_of(self, node_id: str) -> int:
        depth = 1
        parent = self.parent_of(node_id)
        while parent is not None:
            depth += 1
            parent = self.parent_of(parent.id)
        return depth


def build_hierarchy(rows: Iterable[CriterionRow]) -> HierarchyIndex:
    """Link a flat row list into a tree using the dotted-id prefix rule.

    Rows are copied so the caller's previous snapshot is never mutated. Never
    raises: a row whose parent id is missing becomes a root, and a repeated id
    keeps the later occurrence in the lookup. A row using the reserved chart
    centre id stays in ``rows`` but is left out of the tree.
    """
    fresh = [
        replace(row, children=[], parent_id=None, maturity_options=list(row.maturity_options))
        for row in rows
    ]

    nodes: Dict[str, CriterionRow] = {}
    duplicate_ids: List[str] = []
    for row in fresh:
        if row.id == ROOT_ID:
            logger.warning("Criterion id %r is reserved for the chart centre; leaving the row out of the tree.", row.id)
            continue
        if row.id in nodes and row.id not in duplicate_ids:
            duplicate_ids.append(row.id)
        nodes[row.id] = row

    if duplicate_ids:
        logger.warning("Duplicate criterion ids, keeping the last occurrence: %s", ", ".join(duplicate_ids))

    root_ids: List[str] = []
    for row in fresh:
        if nodes.get(row.id) is not row:
            continue
        candidate = parent_id_of(row.id)
        if candidate is not None and candidate in nodes:
            row.parent_id = candidate
            nodes[candidate].children.append(row.id)
            continue
        if candidate is not None:
            logger.debug("Parent %r of %r not present; treating it as a root.", candidate, row.id)
        root_ids.append(row.id)

    return HierarchyIndex(rows=fresh, nodes=nodes, root_ids=root_ids, duplicate_ids=duplicate_ids)
