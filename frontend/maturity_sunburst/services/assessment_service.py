from __future__ import annotations

import logging
import re
import threading
import time
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from ..config import ChartSettings
from .aggregation import aggregate, overall_score
from .formatting import format_percentage, parse_percentage
from .hierarchy import build_hierarchy
from .layout import ROOT_ID, ROOT_NAME, SunburstLayout, compute_layout
from .maturity import apply_maturity_click
from .models import AssessmentSnapshot, CriterionRow
from .render import render_sunburst
from .session_store import SessionStore
from .table_io import DEFAULT_TABLE, dump_snapshot_json, load_snapshot_json, parse_table_text
from .zoom import Clock, ZoomController


logger = logging.getLogger(__name__)

EDITABLE_FIELDS = {"id", "name", "weight"}


def _file_token(node_id: str) -> str:
    if node_id == ROOT_ID:
        return "root"
    return re.sub(r"[^A-Za-z0-9._-]", "_", node_id) or "blank"


@dataclass
class AssessmentState:
    snapshot: AssessmentSnapshot
    layout: SunburstLayout
    overall: float


def derive_state(snapshot: AssessmentSnapshot, *, radius: float) -> AssessmentState:
    """Rebuild the tree, roll up scores and lay it out; the input snapshot is not mutated."""
    index = build_hierarchy(snapshot.rows)
    rows = aggregate(index)
    layout = compute_layout(index, radius=radius)
    return AssessmentState(
        snapshot=AssessmentSnapshot(maturity_headers=list(snapshot.maturity_headers), rows=rows),
        layout=layout,
        overall=overall_score(index),
    )


class AssessmentService:
    """Host layer: owns the current snapshot per session and the zoom state for its chart.

    Every mutation loads the stored snapshot, applies a pure transformation,
    recomputes scores and layout from scratch and saves the result. A failed
    import raises before anything is saved.
    """

    def __init__(
        self,
        *,
        session_store: SessionStore,
        settings: ChartSettings,
        clock: Clock = time.monotonic,
    ) -> None:
        self.session_store = session_store
        self.settings = settings
        self._clock = clock
        self._zoom: Dict[str, ZoomController] = {}
        self._lock = threading.RLock()

    # -- state -------------------------------------------------------------

    def _state(self, session_id: str) -> AssessmentState:
        snapshot = self.session_store.load_snapshot(session_id)
        return derive_state(snapshot, radius=self.settings.chart_radius)

    def _controller(self, session_id: str, layout: SunburstLayout) -> ZoomController:
        with self._lock:
            controller = self._zoom.get(session_id)
            if controller is None:
                controller = ZoomController(
                    layout,
                    duration=self.settings.transition_seconds,
                    center_inset=self.settings.center_inset_px,
                    min_label_arc=self.settings.min_label_arc_px,
                    clock=self._clock,
                )
                self._zoom[session_id] = controller
            else:
                controller.rebind(layout)
            return controller

    def _commit(self, session_id: str, snapshot: AssessmentSnapshot, **session_updates: object) -> AssessmentState:
        state = derive_state(snapshot, radius=self.settings.chart_radius)
        self.session_store.save_snapshot(session_id, state.snapshot)
        self.session_store.update_session(session_id, row_count=len(state.snapshot.rows), **session_updates)
        self._controller(session_id, state.layout)
        return state

    def _mutate(
        self,
        session_id: str,
        change: Callable[[AssessmentSnapshot], AssessmentSnapshot],
        **session_updates: object,
    ) -> Dict[str, Any]:
        with self._lock:
            current = self._state(session_id).snapshot
            self._commit(session_id, change(current), **session_updates)
        return self.snapshot_payload(session_id)

    # -- sessions ------------------------------------------------------------

    def create_session(self, *, title: str = "", table_text: Optional[str] = None) -> Dict[str, Any]:
        source = "default" if table_text is None or not str(table_text).strip() else "paste"
        text = DEFAULT_TABLE if source == "default" else str(table_text)
        parsed = parse_table_text(text)
        state = derive_state(parsed, radius=self.settings.chart_radius)
        record = self.session_store.create_session(title=title, snapshot=state.snapshot, source=source)
        self._controller(record.session_id, state.layout)
        logger.info("Created session %s with %d rows (%s).", record.session_id, len(state.snapshot.rows), source)
        return record.to_dict()

    def snapshot_payload(self, session_id: str) -> Dict[str, Any]:
        session = self.session_store.load_session(session_id)
        state = self._state(session_id)
        controller = self._controller(session_id, state.layout)
        projections = {arc.node_id: arc for arc in controller.project_all()}
        focus = state.layout.get(controller.current_focus())

        rows: List[Dict[str, Any]] = []
        for row in state.snapshot.rows:
            item = row.to_dict()
            item["isParent"] = bool(row.children)
            item["weightText"] = format_percentage(row.weight, 1)
            item["scoreText"] = format_percentage(row.score, 0)
            rows.append(item)

        arcs: List[Dict[str, Any]] = []
        for node in state.layout.arcs():
            item = node.to_dict()
            item["projected"] = projections[node.node_id].to_dict()
            arcs.append(item)

        return {
            "session": session.to_dict(),
            "maturityHeaders": list(state.snapshot.maturity_headers),
            "rows": rows,
            "overallScore": state.overall,
            "overallScoreText": format_percentage(state.overall, 1),
            "focus": {
                "id": focus.node_id,
                "name": focus.name,
                "score": focus.score,
                "scoreText": format_percentage(focus.score, 1),
                "fill": focus.fill,
            },
            "chart": {"radius": state.layout.radius, "arcs": arcs},
        }

    # -- table edits -----------------------------------------------------------

    def click_maturity(self, session_id: str, row_id: str, option_index: int) -> Dict[str, Any]:
        def _change(snapshot: AssessmentSnapshot) -> AssessmentSnapshot:
            target = snapshot.row_by_id(row_id)
            updated = apply_maturity_click(target, int(option_index))
            rows = [updated if row is target else row for row in snapshot.rows]
            return replace(snapshot, rows=rows)

        return self._mutate(session_id, _change)

    def edit_field(self, session_id: str, row_index: int, field: str, value: Any) -> Dict[str, Any]:
        if field not in EDITABLE_FIELDS:
            raise ValueError(f"Field {field!r} is not editable.")

        def _change(snapshot: AssessmentSnapshot) -> AssessmentSnapshot:
            rows = list(snapshot.rows)
            if not 0 <= int(row_index) < len(rows):
                raise ValueError(f"Row index {row_index} out of range.")
            row = rows[int(row_index)]
            if field == "weight":
                rows[int(row_index)] = replace(row, weight=parse_percentage(value))
            elif field == "id":
                rows[int(row_index)] = replace(row, id=str(value or "").strip())
            else:
                rows[int(row_index)] = replace(row, name=str(value or ""))
            return replace(snapshot, rows=rows)

        return self._mutate(session_id, _change)

    def add_row(self, session_id: str) -> Dict[str, Any]:
        def _change(snapshot: AssessmentSnapshot) -> AssessmentSnapshot:
            blank = CriterionRow(id="", maturity_options=[""] * len(snapshot.maturity_headers))
            return replace(snapshot, rows=list(snapshot.rows) + [blank])

        return self._mutate(session_id, _change)

    def delete_row(self, session_id: str, row_index: int) -> Dict[str, Any]:
        def _change(snapshot: AssessmentSnapshot) -> AssessmentSnapshot:
            rows = list(snapshot.rows)
            if not 0 <= int(row_index) < len(rows):
                raise ValueError(f"Row index {row_index} out of range.")
            del rows[int(row_index)]
            return replace(snapshot, rows=rows)

        return self._mutate(session_id, _change)

    # -- import / export -------------------------------------------------------

    def import_table(self, session_id: str, text: str) -> Dict[str, Any]:
        self.session_store.load_session(session_id)
        parsed = parse_table_text(text)
        logger.info("Imported %d pasted rows into %s.", len(parsed.rows), session_id)
        return self._mutate(session_id, lambda _current: parsed, source="paste")

    def import_json(self, session_id: str, text: str) -> Dict[str, Any]:
        self.session_store.load_session(session_id)
        loaded = load_snapshot_json(text)
        logger.info("Loaded %d rows from JSON into %s.", len(loaded.rows), session_id)
        return self._mutate(session_id, lambda _current: loaded, source="json")

    def export_json(self, session_id: str) -> str:
        return dump_snapshot_json(self._state(session_id).snapshot)

    # -- chart interaction -------------------------------------------------------

    def _zoom_payload(self, controller: ZoomController, layout: SunburstLayout) -> Dict[str, Any]:
        focus = layout.get(controller.current_focus())
        transition = controller.transition
        return {
            "focus": focus.node_id,
            "focusName": focus.name,
            "focusScore": focus.score,
            "focusScoreText": format_percentage(focus.score, 1),
            "focusFill": focus.fill,
            "transition": transition.to_dict() if transition is not None else None,
            "frames": controller.frames(self.settings.frame_interval_seconds),
        }

    def activate(self, session_id: str, node_id: str) -> Dict[str, Any]:
        with self._lock:
            state = self._state(session_id)
            controller = self._controller(session_id, state.layout)
            controller.activate(node_id)
            return self._zoom_payload(controller, state.layout)

    def activate_center(self, session_id: str) -> Dict[str, Any]:
        with self._lock:
            state = self._state(session_id)
            controller = self._controller(session_id, state.layout)
            controller.activate_center()
            return self._zoom_payload(controller, state.layout)

    def frames(self, session_id: str) -> List[Dict[str, Any]]:
        with self._lock:
            state = self._state(session_id)
            return self._controller(session_id, state.layout).frames(self.settings.frame_interval_seconds)

    def current_focus(self, session_id: str) -> str:
        with self._lock:
            state = self._state(session_id)
            return self._controller(session_id, state.layout).current_focus()

    def layout_of(self, session_id: str, node_id: str) -> Dict[str, Any]:
        with self._lock:
            state = self._state(session_id)
            return self._controller(session_id, state.layout).layout_of(node_id)

    def tooltip_data_for(self, session_id: str, node_id: str) -> Dict[str, Any]:
        layout = self._state(session_id).layout
        node = layout.get(node_id)
        parent = layout.nodes.get(node.parent_id) if node.parent_id is not None else None
        parent_name = ROOT_NAME if parent is None or parent.node_id == ROOT_ID else parent.name
        return {
            "name": node.name,
            "id": node.node_id,
            "score": node.score,
            "weight": node.weight,
            "parentName": parent_name,
            "scoreText": format_percentage(node.score, 0),
            "weightText": format_percentage(node.weight, 0),
        }

    def render_chart(self, session_id: str) -> Path:
        """Render the chart at its current focus to ``charts/sunburst_<focus>.png``.

        The file for a focus is overwritten on every call, so the charts folder
        holds at most one PNG (plus its SVG and sidecar) per focus.
        """
        with self._lock:
            session = self.session_store.load_session(session_id)
            state = self._state(session_id)
            controller = self._controller(session_id, state.layout)
            focus_id = controller.current_focus()
            arcs = controller.project_all(controller.domain_for(focus_id))
            charts_root = self.session_store.session_paths(session_id)["charts_root"]
            out_path = charts_root / f"sunburst_{_file_token(focus_id)}.png"
            render_sunburst(state.layout, arcs, out_path, focus_id=focus_id, title=session.title)
            return out_path

    def chart_png(self, session_id: str) -> bytes:
        with self._lock:
            return self.render_chart(session_id).read_bytes()
