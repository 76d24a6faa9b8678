from __future__ import annotations

from flask import Flask

from .config import load_chart_settings, load_paths
from .routes.api import api_bp
from .routes.ui import ui_bp
from .services import AssessmentService, SessionStore


def create_app() -> Flask:
    paths = load_paths()
    settings = load_chart_settings()
    paths.workspace_root.mkdir(parents=True, exist_ok=True)
    paths.sessions_root.mkdir(parents=True, exist_ok=True)

    app = Flask(
        __name__,
        template_folder="templates",
        static_folder="static",
    )
    app.config["SECRET_KEY"] = "maturity-sunburst-dev"
    app.config["SUNBURST_REPO_ROOT"] = str(paths.repo_root)
    app.config["SUNBURST_WORKSPACE_ROOT"] = str(paths.workspace_root)
    app.config["SUNBURST_SESSIONS_ROOT"] = str(paths.sessions_root)
    app.config["SUNBURST_CHART_RADIUS"] = settings.chart_radius
    app.config["SUNBURST_TRANSITION_MS"] = int(round(settings.transition_seconds * 1000))

    session_store = SessionStore(paths.sessions_root)
    assessment_service = AssessmentService(session_store=session_store, settings=settings)

    app.extensions["sunburst.session_store"] = session_store
    app.extensions["sunburst.service"] = assessment_service

    app.register_blueprint(ui_bp)
    app.register_blueprint(api_bp, url_prefix="/api")
    return app
