from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
from matplotlib.patches import Wedge

from .formatting import format_percentage
from .layout import SunburstLayout, score_color
from .zoom import ArcProjection


logger = logging.getLogger(__name__)


def _savefig(fig: plt.Figure, out_path: Path, dpi: int, metadata: Dict[str, Any] | None = None) -> List[str]:
    svg_path = out_path.with_suffix(".svg")
    fig.savefig(out_path, dpi=dpi, bbox_inches="tight")
    fig.savefig(svg_path, bbox_inches="tight")
    plt.close(fig)
    payload = dict(metadata or {})
    payload["generated_at"] = datetime.now().isoformat(timespec="seconds")
    payload["files"] = [str(out_path), str(svg_path)]
    out_path.with_suffix(".figure.json").write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    return payload["files"]


def _to_degrees(angle: float) -> float:
    # Chart angles start at 12 o'clock and run clockwise; matplotlib's run counter-clockwise from 3 o'clock.
    return 90.0 - float(np.degrees(angle))


def render_sunburst(
    layout: SunburstLayout,
    arcs: List[ArcProjection],
    out_path: Path,
    *,
    focus_id: str,
    title: str = "",
    dpi: int = 150,
) -> List[str]:
    """Draw projected arcs as wedges and write PNG + SVG next to a .figure.json sidecar."""
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    radius = layout.radius

    fig = plt.figure(figsize=(8, 8))
    ax = fig.add_subplot(111)
    ax.set_aspect("equal")
    if title:
        ax.set_title(title, fontsize=12)

    drawn = 0
    for arc in arcs:
        if arc.angle_end <= arc.angle_start or arc.radius_outer <= arc.radius_inner:
            continue
        node = layout.get(arc.node_id)
        ax.add_patch(
            Wedge(
                (0.0, 0.0),
                arc.radius_outer,
                _to_degrees(arc.angle_end),
                _to_degrees(arc.angle_start),
                width=arc.radius_outer - arc.radius_inner,
                facecolor=node.fill,
                edgecolor="white",
                linewidth=1.0,
            )
        )
        drawn += 1
        if not arc.label_visible:
            continue
        mid_angle = (arc.angle_start + arc.angle_end) / 2.0
        mid_radius = (arc.radius_inner + arc.radius_outer) / 2.0
        rotation = _to_degrees(mid_angle)
        if np.degrees(mid_angle) >= 180.0:
            rotation += 180.0
        ax.text(
            mid_radius * np.sin(mid_angle),
            mid_radius * np.cos(mid_angle),
            node.label,
            ha="center",
            va="center",
            rotation=rotation,
            rotation_mode="anchor",
            fontsize=8,
            fontweight="bold",
            color="white",
        )

    focus = layout.get(focus_id)
    ax.text(
        0.0,
        0.0,
        format_percentage(focus.score, 1),
        ha="center",
        va="center",
        fontsize=20,
        fontweight="bold",
        color=score_color(focus.score),
    )

    limit = radius * 1.05
    ax.set_xlim(-limit, limit)
    ax.set_ylim(-limit, limit)
    ax.axis("off")
    files = _savefig(fig, out_path, dpi=dpi, metadata={"focus": focus_id, "arcs": drawn})
    logger.info("Rendered sunburst (%d arcs, focus=%s) to %s", drawn, focus_id, out_path)
    return files
