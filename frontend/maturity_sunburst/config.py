from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


@dataclass(frozen=True)
class FrontendPaths:
    repo_root: Path
    workspace_root: Path
    sessions_root: Path


@dataclass(frozen=True)
class ChartSettings:
    chart_radius: float
    transition_seconds: float
    frame_interval_seconds: float
    min_label_arc_px: float
    center_inset_px: float


def _env_float(name: str, default: float) -> float:
    raw = str(os.environ.get(name, "")).strip()
    if not raw:
        return float(default)
    try:
        return float(raw)
    except ValueError:
        return float(default)


def load_paths() -> FrontendPaths:
    load_dotenv()
    default_repo_root = Path(__file__).resolve().parents[2]
    repo_root = Path(os.environ.get("SUNBURST_REPO_ROOT", str(default_repo_root))).expanduser().resolve()
    workspace_root = Path(
        os.environ.get("SUNBURST_WORKSPACE", str(repo_root / "frontend" / "workspace"))
    ).expanduser().resolve()
    sessions_root = workspace_root / "sessions"
    return FrontendPaths(
        repo_root=repo_root,
        workspace_root=workspace_root,
        sessions_root=sessions_root,
    )


def load_chart_settings() -> ChartSettings:
    load_dotenv()
    return ChartSettings(
        chart_radius=max(1.0, _env_float("SUNBURST_CHART_RADIUS", 300.0)),
        transition_seconds=max(0.0, _env_float("SUNBURST_TRANSITION_MS", 750.0) / 1000.0),
        frame_interval_seconds=max(0.001, _env_float("SUNBURST_FRAME_INTERVAL_MS", 50.0) / 1000.0),
        min_label_arc_px=_env_float("SUNBURST_MIN_LABEL_ARC_PX", 12.0),
        center_inset_px=max(0.0, _env_float("SUNBURST_CENTER_INSET_PX", 20.0)),
    )
