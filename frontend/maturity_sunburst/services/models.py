from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


NO_SELECTION = -1

# Id of the synthetic chart centre; a row may not use it.
ROOT_ID = "__root__"


def now_iso() -> str:
    return datetime.now().isoformat(timespec="seconds")


def optional_fraction(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number):
        return None
    return number


@dataclass
class CriterionRow:
    """One row of the assessment table.

    ``children`` holds child ids (not nested rows) and is only meaningful after
    the hierarchy has been rebuilt; ``parent_id`` is None for top-level rows.
    """

    id: str
    name: str = ""
    weight: float = 0.0
    score: Optional[float] = None
    maturity_options: List[str] = field(default_factory=list)
    selected_option_index: int = NO_SELECTION
    children: List[str] = field(default_factory=list)
    parent_id: Optional[str] = None

    @property
    def is_leaf(self) -> bool:
        return not self.children

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "weight": float(self.weight),
            "score": self.score,
            "maturityOptions": list(self.maturity_options),
            "selectedOptionIndex": int(self.selected_option_index),
            "children": list(self.children),
            "parentId": self.parent_id,
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "CriterionRow":
        options = payload.get("maturityOptions")
        if not isinstance(options, list):
            options = []
        try:
            selected = int(payload.get("selectedOptionIndex", NO_SELECTION))
        except (TypeError, ValueError):
            selected = NO_SELECTION
        return cls(
            id=str(payload.get("id") or ""),
            name=str(payload.get("name") or ""),
            weight=optional_fraction(payload.get("weight")) or 0.0,
            score=optional_fraction(payload.get("score")),
            maturity_options=["" if item is None else str(item) for item in options],
            selected_option_index=selected,
        )


@dataclass
class AssessmentSnapshot:
    maturity_headers: List[str] = field(default_factory=list)
    rows: List[CriterionRow] = field(default_factory=list)

    def row_by_id(self, row_id: str) -> CriterionRow:
        found: Optional[CriterionRow] = None
        for row in self.rows:
            if row.id == row_id:
                found = row
        if found is None:
            raise KeyError(row_id)
        return found

    def to_dict(self) -> Dict[str, Any]:
        return {
            "maturityHeaders": list(self.maturity_headers),
            "data": [row.to_dict() for row in self.rows],
        }


@dataclass
class SessionRecord:
    session_id: str
    title: str
    created_at: str
    updated_at: str
    row_count: int = 0
    source: str = ""
    notes: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "SessionRecord":
        return cls(
            session_id=str(payload.get("session_id") or ""),
            title=str(payload.get("title") or ""),
            created_at=str(payload.get("created_at") or now_iso()),
            updated_at=str(payload.get("updated_at") or now_iso()),
            row_count=int(payload.get("row_count") or 0),
            source=str(payload.get("source") or ""),
            notes=dict(payload.get("notes") or {}),
        )
