from __future__ import annotations

from flask import Blueprint, current_app, redirect, render_template, request, url_for

from ..services import AssessmentService, SessionStore, TableImportError


ui_bp = Blueprint("ui", __name__)


def _session_store() -> SessionStore:
    return current_app.extensions["sunburst.session_store"]


def _service() -> AssessmentService:
    return current_app.extensions["sunburst.service"]


def _recent_sessions():
    return [item.to_dict() for item in _session_store().list_sessions(limit=30)]


@ui_bp.get("/")
def index():
    return render_template("index.html", sessions=_recent_sessions())


@ui_bp.post("/sessions/new")
def create_session_from_form():
    title = str(request.form.get("title") or "").strip()
    table_text = str(request.form.get("table_text") or "")
    try:
        session = _service().create_session(title=title, table_text=table_text or None)
    except TableImportError:
        return render_template(
            "index.html",
            sessions=_recent_sessions(),
            error="Failed to process data. Ensure CSV format is correct.",
        )
    return redirect(url_for("ui.session_detail", session_id=session["session_id"]))


@ui_bp.get("/sessions/<session_id>")
def session_detail(session_id: str):
    try:
        snapshot = _service().snapshot_payload(session_id)
    except FileNotFoundError:
        return render_template(
            "index.html",
            sessions=_recent_sessions(),
            error="Session not found.",
        )
    return render_template(
        "assessment.html",
        snapshot=snapshot,
        transition_ms=int(current_app.config.get("SUNBURST_TRANSITION_MS", 750)),
    )
