from __future__ import annotations

import math
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import numpy as np

from .layout import ROOT_ID, TAU, NodeGeometry, SunburstLayout


Clock = Callable[[], float]

DEFAULT_DURATION_SECONDS = 0.75
DEFAULT_CENTER_INSET = 20.0
DEFAULT_MIN_LABEL_ARC = 12.0


def ease_cubic_in_out(t: float) -> float:
    t = min(1.0, max(0.0, t))
    if t < 0.5:
        return 4.0 * t * t * t
    return 1.0 - ((-2.0 * t + 2.0) ** 3) / 2.0


@dataclass(frozen=True)
class ZoomDomain:
    """Angular domain [x0, x1], radial domain [y0, y1] and radial range [r0, r1]."""

    x0: float
    x1: float
    y0: float
    y1: float
    r0: float
    r1: float

    def interpolate(self, other: "ZoomDomain", t: float) -> "ZoomDomain":
        def _lerp(a: float, b: float) -> float:
            return a + (b - a) * t

        return ZoomDomain(
            x0=_lerp(self.x0, other.x0),
            x1=_lerp(self.x1, other.x1),
            y0=_lerp(self.y0, other.y0),
            y1=_lerp(self.y1, other.y1),
            r0=_lerp(self.r0, other.r0),
            r1=_lerp(self.r1, other.r1),
        )

    def angle(self, x: float) -> float:
        span = self.x1 - self.x0
        if span <= 0:
            return 0.0
        return min(TAU, max(0.0, (x - self.x0) / span * TAU))

    def radius(self, y: float) -> float:
        # Square-root scale: equal steps in y cover equal ring areas.
        d0 = math.sqrt(max(0.0, self.y0))
        d1 = math.sqrt(max(0.0, self.y1))
        if d1 == d0:
            return max(0.0, self.r0)
        t = (math.sqrt(max(0.0, y)) - d0) / (d1 - d0)
        return max(0.0, self.r0 + t * (self.r1 - self.r0))

    def to_dict(self) -> Dict[str, float]:
        return {"x0": self.x0, "x1": self.x1, "y0": self.y0, "y1": self.y1, "r0": self.r0, "r1": self.r1}


@dataclass(frozen=True)
class Transition:
    start: ZoomDomain
    end: ZoomDomain
    started_at: float
    duration: float
    target_id: str

    def progress(self, now: float) -> float:
        if self.duration <= 0:
            return 1.0
        return min(1.0, max(0.0, (now - self.started_at) / self.duration))

    def sample(self, now: float) -> ZoomDomain:
        progress = self.progress(now)
        if progress >= 1.0:
            return self.end
        return self.start.interpolate(self.end, ease_cubic_in_out(progress))

    def finished(self, now: float) -> bool:
        return self.progress(now) >= 1.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "targetId": self.target_id,
            "start": self.start.to_dict(),
            "end": self.end.to_dict(),
            "durationMs": int(round(self.duration * 1000)),
        }


@dataclass(frozen=True)
class ArcProjection:
    node_id: str
    angle_start: float
    angle_end: float
    radius_inner: float
    radius_outer: float
    label_visible: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.node_id,
            "angleStart": self.angle_start,
            "angleEnd": self.angle_end,
            "radiusInner": self.radius_inner,
            "radiusOuter": self.radius_outer,
            "labelVisible": self.label_visible,
        }


def label_fits(a0: float, a1: float, r0: float, r1: float, min_arc: float = DEFAULT_MIN_LABEL_ARC) -> bool:
    """A label is drawn only where the arc length at its mid radius exceeds ``min_arc`` px."""
    if a1 <= a0 or r0 >= r1 or r0 <= 0:
        return False
    return (a1 - a0) * (r0 + r1) / 2.0 > min_arc


def project(node: NodeGeometry, domain: ZoomDomain, *, min_label_arc: float = DEFAULT_MIN_LABEL_ARC) -> ArcProjection:
    a0 = domain.angle(node.x0)
    a1 = domain.angle(node.x1)
    r0 = domain.radius(node.y0)
    r1 = domain.radius(node.y1)
    return ArcProjection(
        node_id=node.node_id,
        angle_start=a0,
        angle_end=a1,
        radius_inner=r0,
        radius_outer=r1,
        label_visible=label_fits(a0, a1, r0, r1, min_label_arc),
    )


class ZoomController:
    """Focus state machine for the sunburst.

    Activating a node with children zooms into it; activating a leaf backs out
    to its parent. A new activation replaces any running transition and starts
    from the domain currently on screen.
    """

    def __init__(
        self,
        layout: SunburstLayout,
        *,
        duration: float = DEFAULT_DURATION_SECONDS,
        center_inset: float = DEFAULT_CENTER_INSET,
        min_label_arc: float = DEFAULT_MIN_LABEL_ARC,
        clock: Clock = time.monotonic,
    ) -> None:
        self.duration = float(duration)
        self.center_inset = float(center_inset)
        self.min_label_arc = float(min_label_arc)
        self._clock = clock
        self._layout = layout
        self._focus_id = ROOT_ID
        self._transition: Optional[Transition] = None

    @property
    def layout(self) -> SunburstLayout:
        return self._layout

    @property
    def transition(self) -> Optional[Transition]:
        return self._transition

    def current_focus(self) -> str:
        return self._focus_id

    def domain_for(self, node_id: str) -> ZoomDomain:
        node = self._layout.get(node_id)
        return ZoomDomain(
            x0=node.x0,
            x1=node.x1,
            y0=node.y0,
            y1=1.0,
            r0=self.center_inset if node.y0 > 0 else 0.0,
            r1=self._layout.radius,
        )

    def target_for(self, node_id: str) -> str:
        node = self._layout.get(node_id)
        if node.children:
            return node.node_id
        return node.parent_id or ROOT_ID

    def activate(self, node_id: str) -> Transition:
        return self._transition_to(self.target_for(node_id))

    def activate_center(self) -> Transition:
        focus = self._layout.get(self._focus_id)
        return self._transition_to(focus.parent_id or ROOT_ID)

    def _transition_to(self, target_id: str) -> Transition:
        now = self._clock()
        start = self.current_domain(now)
        self._transition = Transition(
            start=start,
            end=self.domain_for(target_id),
            started_at=now,
            duration=self.duration,
            target_id=target_id,
        )
        self._focus_id = target_id
        return self._transition

    def current_domain(self, now: Optional[float] = None) -> ZoomDomain:
        if self._transition is None:
            return self.domain_for(self._focus_id)
        return self._transition.sample(self._clock() if now is None else now)

    def is_animating(self, now: Optional[float] = None) -> bool:
        if self._transition is None:
            return False
        return not self._transition.finished(self._clock() if now is None else now)

    def project_all(self, domain: Optional[ZoomDomain] = None) -> List[ArcProjection]:
        active = domain if domain is not None else self.current_domain()
        return [project(node, active, min_label_arc=self.min_label_arc) for node in self._layout.arcs()]

    def layout_of(self, node_id: str) -> Dict[str, Any]:
        node = self._layout.get(node_id)
        payload = node.to_dict()
        payload["projected"] = project(node, self.current_domain(), min_label_arc=self.min_label_arc).to_dict()
        return payload

    def frames(self, interval: float) -> List[Dict[str, Any]]:
        """Pre-sample the active transition at ``interval`` seconds, last frame at its end."""
        if self._transition is None:
            return [{"t": 0.0, "arcs": [arc.to_dict() for arc in self.project_all()]}]
        transition = self._transition
        step = max(float(interval), 1e-3)
        offsets = np.arange(0.0, transition.duration, step).tolist() + [transition.duration]
        return [
            {
                "t": round(offset, 4),
                "arcs": [arc.to_dict() for arc in self.project_all(transition.sample(transition.started_at + offset))],
            }
            for offset in offsets
        ]

    def rebind(self, layout: SunburstLayout) -> None:
        """Swap in a freshly computed layout after an edit.

        The focus survives only if it still exists and still has children; any
        running transition is dropped because its domains refer to old geometry.
        """
        if layout == self._layout:
            return
        self._layout = layout
        self._transition = None
        focus = layout.nodes.get(self._focus_id)
        if focus is None or not focus.children:
            self._focus_id = ROOT_ID
