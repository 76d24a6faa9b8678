from __future__ import annotations

import io
import json

import pytest

from frontend.maturity_sunburst import create_app

pytestmark = pytest.mark.integration


@pytest.fixture()
def client(workspace):
    app = create_app()
    return app.test_client()


def _new_session(client) -> str:
    resp = client.post("/api/sessions", json={"title": "Smoke"})
    assert resp.status_code == 200
    return resp.get_json()["session"]["session_id"]


def test_frontend_app_boots(client, workspace):
    resp = client.get("/")
    assert resp.status_code == 200
    assert b"Maturity Sunburst" in resp.data

    created = client.post("/sessions/new", data={"title": "Form session"}, follow_redirects=False)
    assert created.status_code in {302, 303}
    location = created.headers.get("Location", "")
    assert "/sessions/" in location

    detail = client.get(location)
    assert detail.status_code == 200
    assert b"sunburst-chart" in detail.data
    assert b"survey-table" in detail.data
    assert b"initial-snapshot" in detail.data
    assert b"paste-drawer" in detail.data
    assert (workspace / "sessions").is_dir()


def test_bad_paste_on_form_shows_error(client):
    resp = client.post("/sessions/new", data={"title": "x", "table_text": "only\n1\n"})
    assert resp.status_code == 200
    assert b"Failed to process data" in resp.data


def test_api_maturity_click_and_zoom(client):
    session_id = _new_session(client)

    snap = client.get(f"/api/sessions/{session_id}/snapshot").get_json()["snapshot"]
    assert snap["overallScore"] == pytest.approx(0.21)
    assert len(snap["chart"]["arcs"]) == 11

    clicked = client.post(f"/api/sessions/{session_id}/maturity", json={"row_id": "1.1.1", "option_index": 1})
    assert clicked.status_code == 200
    rows = {row["id"]: row for row in clicked.get_json()["snapshot"]["rows"]}
    assert rows["1"]["score"] == pytest.approx(0.61 / 0.7)

    parent = client.post(f"/api/sessions/{session_id}/maturity", json={"row_id": "1", "option_index": 0})
    assert parent.status_code == 400
    missing = client.post(f"/api/sessions/{session_id}/maturity", json={"row_id": "7", "option_index": 0})
    assert missing.status_code == 404

    zoom = client.post(f"/api/sessions/{session_id}/zoom", json={"node_id": "1"}).get_json()["zoom"]
    assert zoom["focus"] == "1"
    assert zoom["frames"]
    assert client.get(f"/api/sessions/{session_id}/zoom").get_json()["focus"] == "1"
    frames = client.get(f"/api/sessions/{session_id}/zoom/frames").get_json()["frames"]
    assert frames[-1]["t"] > 0

    back = client.post(f"/api/sessions/{session_id}/zoom", json={"center": True}).get_json()["zoom"]
    assert back["focus"] == "__root__"

    tooltip = client.get(f"/api/sessions/{session_id}/nodes/1.2.2/tooltip").get_json()["tooltip"]
    assert tooltip["parentName"] == "Usability"
    layout = client.get(f"/api/sessions/{session_id}/nodes/1.1/layout").get_json()["layout"]
    assert layout["depth"] == 2
    assert client.get(f"/api/sessions/{session_id}/nodes/9/tooltip").status_code == 404


def test_api_import_export_round_trip(client):
    session_id = _new_session(client)

    bad = client.post(f"/api/sessions/{session_id}/import/table", json={"text": "one\n1\n"})
    assert bad.status_code == 400
    assert bad.get_json()["message"] == "Failed to parse data. Check format."

    pasted = client.post(
        f"/api/sessions/{session_id}/import/table",
        json={"text": "CID\tCriterion\tWeight\tScore\tL1\n1\tRoot\t100%\t\t\n1.1\tLeaf\t100%\t25%\tBasic\n"},
    )
    assert pasted.status_code == 200
    assert pasted.get_json()["snapshot"]["overallScore"] == pytest.approx(0.25)

    exported = client.get(f"/api/sessions/{session_id}/export.json")
    assert exported.status_code == 200
    assert "attachment" in exported.headers["Content-Disposition"]
    document = json.loads(exported.data)
    assert document["maturityHeaders"] == ["L1"]

    other = _new_session(client)
    uploaded = client.post(
        f"/api/sessions/{other}/import/json",
        data={"file": (io.BytesIO(exported.data), "maturity_survey.json")},
        content_type="multipart/form-data",
    )
    assert uploaded.status_code == 200
    assert {row["id"] for row in uploaded.get_json()["snapshot"]["rows"]} == {"1", "1.1"}

    broken = client.post(f"/api/sessions/{other}/import/json", json={"text": "{nope"})
    assert broken.status_code == 400
    assert broken.get_json()["message"] == "Error parsing JSON file"


def test_api_row_editing(client):
    session_id = _new_session(client)
    added = client.post(f"/api/sessions/{session_id}/rows").get_json()["snapshot"]
    last = len(added["rows"]) - 1
    assert added["rows"][last]["id"] == ""

    edited = client.patch(f"/api/sessions/{session_id}/rows/{last}", json={"field": "id", "value": "3"})
    assert edited.status_code == 200
    assert "3" in {row["id"] for row in edited.get_json()["snapshot"]["rows"]}

    assert client.patch(f"/api/sessions/{session_id}/rows/0", json={"field": "score", "value": "1"}).status_code == 400
    assert client.delete(f"/api/sessions/{session_id}/rows/500").status_code == 400


def test_unknown_session_is_404(client):
    assert client.get("/api/sessions/missing/snapshot").status_code == 404
    assert client.post("/api/sessions/missing/rows").status_code == 404
    assert client.get("/api/sessions/missing/export.json").status_code == 404
    listed = client.get("/api/sessions").get_json()
    assert listed["status"] == "ok"


def test_chart_png_streams_and_session_files_are_not_exposed(client):
    session_id = _new_session(client)
    chart = client.get(f"/api/sessions/{session_id}/chart.png")
    assert chart.status_code == 200
    assert chart.mimetype == "image/png"
    assert chart.data[:4] == b"\x89PNG"
    assert client.get(f"/api/sessions/{session_id}/files/session.json").status_code == 404
