from __future__ import annotations

import io
import logging
from typing import Any, Dict

from flask import Blueprint, Response, current_app, jsonify, request, send_file

from ..services import AssessmentService, SessionStore, TableImportError


logger = logging.getLogger(__name__)

api_bp = Blueprint("api", __name__)


def _session_store() -> SessionStore:
    return current_app.extensions["sunburst.session_store"]


def _service() -> AssessmentService:
    return current_app.extensions["sunburst.service"]


def _error(message: str, code: int = 400):
    return jsonify({"status": "error", "message": message}), int(code)


def _payload() -> Dict[str, Any]:
    return request.get_json(silent=True) or {}


def _snapshot_response(snapshot: Dict[str, Any]):
    return jsonify({"status": "ok", "snapshot": snapshot})


@api_bp.post("/sessions")
def create_session():
    payload = _payload()
    try:
        session = _service().create_session(
            title=str(payload.get("title") or ""),
            table_text=payload.get("table_text"),
        )
    except TableImportError as exc:
        return _error(str(exc), 400)
    return jsonify({"status": "ok", "session": session})


@api_bp.get("/sessions")
def list_sessions():
    try:
        limit = int(request.args.get("limit", 30))
    except ValueError:
        limit = 30
    sessions = [item.to_dict() for item in _session_store().list_sessions(limit=limit)]
    return jsonify({"status": "ok", "sessions": sessions})


@api_bp.get("/sessions/<session_id>/snapshot")
def session_snapshot(session_id: str):
    try:
        return _snapshot_response(_service().snapshot_payload(session_id))
    except FileNotFoundError:
        return _error("Session not found.", 404)
    except Exception as exc:
        logger.exception("Snapshot failed for %s", session_id)
        return _error(str(exc), 500)


@api_bp.post("/sessions/<session_id>/maturity")
def click_maturity(session_id: str):
    payload = _payload()
    try:
        snapshot = _service().click_maturity(
            session_id,
            str(payload.get("row_id") or ""),
            int(payload.get("option_index", -1)),
        )
        return _snapshot_response(snapshot)
    except FileNotFoundError:
        return _error("Session not found.", 404)
    except KeyError:
        return _error("Row not found.", 404)
    except (TypeError, ValueError) as exc:
        return _error(str(exc), 400)


@api_bp.post("/sessions/<session_id>/rows")
def add_row(session_id: str):
    try:
        return _snapshot_response(_service().add_row(session_id))
    except FileNotFoundError:
        return _error("Session not found.", 404)


@api_bp.patch("/sessions/<session_id>/rows/<int:row_index>")
def edit_row(session_id: str, row_index: int):
    payload = _payload()
    try:
        snapshot = _service().edit_field(
            session_id,
            row_index,
            str(payload.get("field") or ""),
            payload.get("value"),
        )
        return _snapshot_response(snapshot)
    except FileNotFoundError:
        return _error("Session not found.", 404)
    except ValueError as exc:
        return _error(str(exc), 400)


@api_bp.delete("/sessions/<session_id>/rows/<int:row_index>")
def delete_row(session_id: str, row_index: int):
    try:
        return _snapshot_response(_service().delete_row(session_id, row_index))
    except FileNotFoundError:
        return _error("Session not found.", 404)
    except ValueError as exc:
        return _error(str(exc), 400)


@api_bp.post("/sessions/<session_id>/import/table")
def import_table(session_id: str):
    text = str(_payload().get("text") or "")
    try:
        return _snapshot_response(_service().import_table(session_id, text))
    except FileNotFoundError:
        return _error("Session not found.", 404)
    except TableImportError as exc:
        logger.warning("Rejected table import for %s: %s", session_id, exc)
        return _error("Failed to parse data. Check format.", 400)


@api_bp.post("/sessions/<session_id>/import/json")
def import_json(session_id: str):
    upload = request.files.get("file")
    if upload is not None:
        text = upload.read().decode("utf-8", errors="replace")
    else:
        text = str(_payload().get("text") or "")
    try:
        return _snapshot_response(_service().import_json(session_id, text))
    except FileNotFoundError:
        return _error("Session not found.", 404)
    except TableImportError as exc:
        logger.warning("Rejected JSON import for %s: %s", session_id, exc)
        return _error("Error parsing JSON file", 400)


@api_bp.get("/sessions/<session_id>/export.json")
def export_json(session_id: str):
    try:
        body = _service().export_json(session_id)
    except FileNotFoundError:
        return _error("Session not found.", 404)
    return Response(
        body,
        mimetype="application/json",
        headers={"Content-Disposition": "attachment; filename=maturity_survey.json"},
    )


@api_bp.post("/sessions/<session_id>/zoom")
def activate_node(session_id: str):
    payload = _payload()
    try:
        if payload.get("center"):
            zoom = _service().activate_center(session_id)
        else:
            zoom = _service().activate(session_id, str(payload.get("node_id") or ""))
        return jsonify({"status": "ok", "zoom": zoom})
    except FileNotFoundError:
        return _error("Session not found.", 404)
    except KeyError:
        return _error("Node not found.", 404)


@api_bp.get("/sessions/<session_id>/zoom")
def current_focus(session_id: str):
    try:
        return jsonify({"status": "ok", "focus": _service().current_focus(session_id)})
    except FileNotFoundError:
        return _error("Session not found.", 404)


@api_bp.get("/sessions/<session_id>/zoom/frames")
def zoom_frames(session_id: str):
    try:
        return jsonify({"status": "ok", "frames": _service().frames(session_id)})
    except FileNotFoundError:
        return _error("Session not found.", 404)


@api_bp.get("/sessions/<session_id>/nodes/<path:node_id>/layout")
def node_layout(session_id: str, node_id: str):
    try:
        return jsonify({"status": "ok", "layout": _service().layout_of(session_id, node_id)})
    except FileNotFoundError:
        return _error("Session not found.", 404)
    except KeyError:
        return _error("Node not found.", 404)


@api_bp.get("/sessions/<session_id>/nodes/<path:node_id>/tooltip")
def node_tooltip(session_id: str, node_id: str):
    try:
        return jsonify({"status": "ok", "tooltip": _service().tooltip_data_for(session_id, node_id)})
    except FileNotFoundError:
        return _error("Session not found.", 404)
    except KeyError:
        return _error("Node not found.", 404)


@api_bp.get("/sessions/<session_id>/chart.png")
def chart_png(session_id: str):
    try:
        png = _service().chart_png(session_id)
    except FileNotFoundError:
        return _error("Session not found.", 404)
    except Exception as exc:
        logger.exception("Chart render failed for %s", session_id)
        return _error(str(exc), 500)
    return send_file(io.BytesIO(png), mimetype="image/png", download_name="sunburst.png")
