from __future__ import annotations

import json
import math
from io import StringIO
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from .formatting import parse_percentage, parse_score
from .models import NO_SELECTION, AssessmentSnapshot, CriterionRow, optional_fraction


DEFAULT_TABLE = """CID,Criterion,Weight,Score,Maturity L1 (Non-Existent),Maturity L2 (Reactive/Manual),Maturity L3 (Defined/Policy)
1,Overall Quality,70%,,,,
2,Support,30%,,,,
1.1,Functionality,40%,,,,
1.2,Usability,30%,,,,
1.3,Reliability,30%,,,,
1.1.1,Feature Set,50%,,Level 1,Level 2,
1.1.2,Performance,50%,,Basic,,
1.2.1,Ease of Use,50%,,Simple,Usable,Expert
1.2.2,Documentation,50%,70%,Exists,,
2.1,Response Time,50%,,SLA Met,,
2.2,Problem Resolution,50%,,Resolved,,
"""

ID_COLUMNS = ("cid", "id")
NAME_COLUMNS = ("criterion", "criteria", "name")
WEIGHT_COLUMNS = ("calculated weights", "weights", "weight")
SCORE_COLUMNS = ("score", "current score")


class TableImportError(ValueError):
    """Raised when pasted or uploaded data cannot be turned into a snapshot."""


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and math.isnan(value):
        return ""
    return str(value)


def _find_column(columns: Sequence[str], terms: Sequence[str], fallback: int) -> Optional[str]:
    for column in columns:
        if str(column).strip().lower() in terms:
            return column
    if fallback < len(columns):
        return columns[fallback]
    return None


def parse_table_text(text: str) -> AssessmentSnapshot:
    """Parse pasted CSV (or TSV, when the text contains a tab) into raw rows.

    Core columns are matched by name and otherwise taken by position; every
    remaining column becomes a maturity header. Scores are not aggregated here.
    """
    body = str(text or "").strip()
    if not body:
        raise TableImportError("No data to import.")
    sep = "\t" if "\t" in body else ","
    try:
        header = pd.read_csv(StringIO(body), sep=sep, nrows=0, dtype=str)
        width = len(header.columns)
        frame = pd.read_csv(
            StringIO(body),
            sep=sep,
            dtype=str,
            keep_default_na=False,
            index_col=False,
            engine="python",
            on_bad_lines=lambda fields: fields[:width],
        )
    except (pd.errors.ParserError, pd.errors.EmptyDataError, ValueError) as exc:
        raise TableImportError(f"Failed to parse data: {exc}") from exc

    columns = [str(column) for column in frame.columns]
    if len(columns) < 2:
        raise TableImportError("Expected at least two columns (id and criterion).")

    id_col = _find_column(columns, ID_COLUMNS, 0)
    name_col = _find_column(columns, NAME_COLUMNS, 1)
    weight_col = _find_column(columns, WEIGHT_COLUMNS, 2)
    score_col = _find_column(columns, SCORE_COLUMNS, 3)
    standard = {id_col, name_col, weight_col, score_col}
    maturity_headers = [column for column in columns if column not in standard]

    rows: List[CriterionRow] = []
    for record in frame.to_dict(orient="records"):
        rows.append(
            CriterionRow(
                id=_cell(record.get(id_col)).strip(),
                name=_cell(record.get(name_col)).strip(),
                weight=parse_percentage(_cell(record.get(weight_col))) if weight_col else 0.0,
                score=parse_score(_cell(record.get(score_col))) if score_col else None,
                maturity_options=[_cell(record.get(header)).strip() for header in maturity_headers],
            )
        )
    return AssessmentSnapshot(maturity_headers=maturity_headers, rows=rows)


def _fit_options(options: Sequence[Any], size: int) -> List[str]:
    fitted = [_cell(item) for item in list(options)[:size]]
    return fitted + [""] * (size - len(fitted))


def row_from_payload(payload: Dict[str, Any], header_count: int) -> CriterionRow:
    """Build a row from either the exported camelCase shape or the legacy table keys."""
    if not isinstance(payload, dict):
        raise TableImportError("Each data entry must be an object.")
    raw_id = payload.get("id", payload.get("CID", ""))
    raw_name = payload.get("name", payload.get("Criterion", ""))
    raw_weight = payload.get("weight", payload.get("Calculated Weights", 0))
    raw_score = payload.get("score", payload.get("Score"))
    options = payload.get("maturityOptions", payload.get("maturities")) or []
    selected = payload.get("selectedOptionIndex", payload.get("selectedMaturityIndex", NO_SELECTION))

    if isinstance(raw_weight, str):
        weight = parse_percentage(raw_weight)
    else:
        weight = optional_fraction(raw_weight) or 0.0
    score = parse_score(raw_score) if isinstance(raw_score, str) else optional_fraction(raw_score)
    try:
        selected_index = int(selected)
    except (TypeError, ValueError):
        selected_index = NO_SELECTION
    if not 0 <= selected_index < header_count:
        selected_index = NO_SELECTION

    return CriterionRow(
        id=_cell(raw_id).strip(),
        name=_cell(raw_name),
        weight=weight,
        score=score,
        maturity_options=_fit_options(options if isinstance(options, list) else [], header_count),
        selected_option_index=selected_index,
    )


def load_snapshot_json(text: str) -> AssessmentSnapshot:
    """Load a ``{maturityHeaders, data}`` document or a legacy bare row list."""
    try:
        payload = json.loads(text)
    except (TypeError, ValueError) as exc:
        raise TableImportError(f"Error parsing JSON file: {exc}") from exc

    if isinstance(payload, list):
        entries = payload
        max_len = 0
        for entry in entries:
            if isinstance(entry, dict):
                options = entry.get("maturityOptions", entry.get("maturities")) or []
                if isinstance(options, list):
                    max_len = max(max_len, len(options))
        headers = [f"Maturity {i + 1}" for i in range(max_len)]
    elif isinstance(payload, dict) and isinstance(payload.get("data"), list) and isinstance(
        payload.get("maturityHeaders"), list
    ):
        entries = payload["data"]
        headers = [_cell(item) for item in payload["maturityHeaders"]]
    else:
        raise TableImportError("Unrecognised snapshot: expected a row list or {maturityHeaders, data}.")

    rows = [row_from_payload(entry, len(headers)) for entry in entries]
    return AssessmentSnapshot(maturity_headers=headers, rows=rows)


def dump_snapshot_json(snapshot: AssessmentSnapshot, indent: int = 2) -> str:
    size = len(snapshot.maturity_headers)
    payload = snapshot.to_dict()
    for row in payload["data"]:
        row["maturityOptions"] = _fit_options(row["maturityOptions"], size)
    return json.dumps(payload, ensure_ascii=False, indent=indent)
