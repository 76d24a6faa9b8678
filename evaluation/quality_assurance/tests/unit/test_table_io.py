from __future__ import annotations

import json

import pytest

from frontend.maturity_sunburst.services.formatting import acronym, format_percentage, parse_percentage, parse_score
from frontend.maturity_sunburst.services.models import AssessmentSnapshot, CriterionRow
from frontend.maturity_sunburst.services.table_io import (
    DEFAULT_TABLE,
    TableImportError,
    dump_snapshot_json,
    load_snapshot_json,
    parse_table_text,
)

pytestmark = pytest.mark.unit


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("70%", 0.7), ("70", 0.7), ("0.4", 0.4), (0.25, 0.25), ("", 0.0), ("abc", 0.0), (None, 0.0), ("1", 1.0)],
)
def test_parse_percentage(raw, expected) -> None:
    assert parse_percentage(raw) == pytest.approx(expected)


def test_parse_score_keeps_empty_cells_unscored() -> None:
    assert parse_score("") is None
    assert parse_score("  % ") is None
    assert parse_score("70%") == pytest.approx(0.7)
    assert parse_score("n/a") == 0.0


def test_format_percentage_and_acronym() -> None:
    assert format_percentage(0.7) == "70%"
    assert format_percentage(0.8714, 1) == "87.1%"
    assert format_percentage(None) == ""
    assert acronym("Problem Resolution") == "PR"
    assert acronym("Ease of Use Today") == "EOU"
    assert acronym("Documentation") == "DOC"
    assert acronym("") == ""


def test_default_table_parses_with_maturity_headers() -> None:
    snapshot = parse_table_text(DEFAULT_TABLE)
    assert snapshot.maturity_headers == [
        "Maturity L1 (Non-Existent)",
        "Maturity L2 (Reactive/Manual)",
        "Maturity L3 (Defined/Policy)",
    ]
    rows = {row.id: row for row in snapshot.rows}
    assert rows["1"].name == "Overall Quality"
    assert rows["1"].weight == pytest.approx(0.7)
    assert rows["2"].weight == pytest.approx(0.3)
    assert rows["1.1.1"].maturity_options == ["Level 1", "Level 2", ""]
    assert rows["1.2.2"].score == pytest.approx(0.7)
    assert rows["1.1.1"].score is None


def test_tab_separated_text_and_fuzzy_columns() -> None:
    text = "Name\tID\tWeights\tCurrent Score\tL1\tL2\nRoot\t1\t100%\t\tNo\tYes\nLeaf\t1.1\t50%\t40%\tBasic\tGood\n"
    snapshot = parse_table_text(text)
    assert snapshot.maturity_headers == ["L1", "L2"]
    rows = {row.id: row for row in snapshot.rows}
    assert rows["1"].name == "Root"
    assert rows["1.1"].weight == pytest.approx(0.5)
    assert rows["1.1"].score == pytest.approx(0.4)
    assert rows["1"].maturity_options == ["No", "Yes"]


@pytest.mark.parametrize("text", ["", "   ", "single\n1\n2\n"])
def test_unusable_paste_raises_import_error(text) -> None:
    with pytest.raises(TableImportError):
        parse_table_text(text)


def test_snapshot_json_wrapped_shape_keeps_headers_and_sizes_options() -> None:
    snapshot = AssessmentSnapshot(
        maturity_headers=["L1", "L2"],
        rows=[CriterionRow(id="1", name="Root", weight=1.0, score=0.5, maturity_options=["A"], selected_option_index=0)],
    )
    payload = json.loads(dump_snapshot_json(snapshot))
    assert payload["maturityHeaders"] == ["L1", "L2"]
    assert payload["data"][0]["maturityOptions"] == ["A", ""]

    loaded = load_snapshot_json(json.dumps(payload))
    assert loaded.maturity_headers == ["L1", "L2"]
    assert loaded.rows[0].selected_option_index == 0
    assert loaded.rows[0].score == pytest.approx(0.5)


def test_legacy_row_list_infers_generic_headers() -> None:
    legacy = [
        {"CID": "1", "Criterion": "Root", "Calculated Weights": 1, "Score": None, "maturities": []},
        {
            "CID": "1.1",
            "Criterion": "Leaf",
            "Calculated Weights": 0.5,
            "Score": 0.3,
            "maturities": ["a", "b", "c"],
            "selectedMaturityIndex": 1,
        },
    ]
    loaded = load_snapshot_json(json.dumps(legacy))
    assert loaded.maturity_headers == ["Maturity 1", "Maturity 2", "Maturity 3"]
    rows = {row.id: row for row in loaded.rows}
    assert rows["1"].maturity_options == ["", "", ""]
    assert rows["1.1"].selected_option_index == 1
    assert rows["1.1"].weight == pytest.approx(0.5)


@pytest.mark.parametrize("text", ["{not json", json.dumps({"rows": []}), json.dumps("hello"), json.dumps([1, 2])])
def test_malformed_json_raises_import_error(text) -> None:
    with pytest.raises(TableImportError):
        load_snapshot_json(text)


ORIGINAL_SAMPLE = """CID,Criterion,Weight,Score,Maturity L1 (Non-Existent),Maturity L2 (Reactive/Manual),Maturity L3 (Defined/Policy)
1,Overall Quality,70%,,,,,
2,Support,30%,,,,,
1.1,Functionality,40%,,,,,
1.2,Usability,30%,,,,,
1.3,Reliability,30%,,,,,
1.1.1,Feature Set,50%,,Level 1,Level 2,
1.1.2,Performance,50%,,Basic,
1.2.1,Ease of Use,50%,,Simple,Usable,Expert
1.2.2,Documentation,50%,70%,Exists,
2.1,Response Time,50%,,SLA Met,
2.2,Problem Resolution,50%,,Resolved,"""


def test_ragged_rows_are_truncated_or_padded_to_the_header() -> None:
    snapshot = parse_table_text(ORIGINAL_SAMPLE)
    assert len(snapshot.rows) == 11
    assert len(snapshot.maturity_headers) == 3
    rows = {row.id: row for row in snapshot.rows}
    assert rows["1"].name == "Overall Quality"
    assert rows["1"].weight == pytest.approx(0.7)
    assert rows["1"].maturity_options == ["", "", ""]
    assert rows["1.1.2"].maturity_options == ["Basic", "", ""]
    assert rows["1.2.1"].maturity_options == ["Simple", "Usable", "Expert"]
    assert rows["1.2.2"].score == pytest.approx(0.7)
    assert all(len(row.maturity_options) == 3 for row in snapshot.rows)
