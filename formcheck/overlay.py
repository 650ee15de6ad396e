"""
Draw the measured side's skeleton and the engine's per-frame output on frames.
"""
from __future__ import annotations

from typing import Optional

import cv2
import numpy as np

from .engine import FormAnalysisResult
from .joints import SIDE_JOINTS, BodySide, JointId, JointObservation, Point
from .reps import SessionAggregate

# Full-body connections for the 13 tracked joints
_POSE_CONNECTIONS = (
    (JointId.LEFT_SHOULDER, JointId.RIGHT_SHOULDER),
    (JointId.LEFT_SHOULDER, JointId.LEFT_ELBOW),
    (JointId.LEFT_ELBOW, JointId.LEFT_WRIST),
    (JointId.RIGHT_SHOULDER, JointId.RIGHT_ELBOW),
    (JointId.RIGHT_ELBOW, JointId.RIGHT_WRIST),
    (JointId.LEFT_SHOULDER, JointId.LEFT_HIP),
    (JointId.RIGHT_SHOULDER, JointId.RIGHT_HIP),
    (JointId.LEFT_HIP, JointId.RIGHT_HIP),
    (JointId.LEFT_HIP, JointId.LEFT_KNEE),
    (JointId.LEFT_KNEE, JointId.LEFT_ANKLE),
    (JointId.RIGHT_HIP, JointId.RIGHT_KNEE),
    (JointId.RIGHT_KNEE, JointId.RIGHT_ANKLE),
)

# BGR
_GOOD = (0, 200, 0)
_WARN = (0, 200, 255)
_BAD = (0, 0, 230)
_DIM = (160, 160, 160)


def _pt(p: Point) -> tuple[int, int]:
    return (int(round(p[0])), int(round(p[1])))


def quality_color(quality: Optional[int]) -> tuple[int, int, int]:
    if quality is None:
        return _DIM
    if quality >= 85:
        return _GOOD
    if quality >= 70:
        return _WARN
    return _BAD


def draw_skeleton(
    frame: np.ndarray,
    observation: JointObservation,
    side: BodySide = BodySide.UNDETERMINED,
    color: tuple[int, int, int] = _GOOD,
    thickness: int = 2,
) -> None:
    """Draw the body in grey and the measured side's chain in `color` (in-place)."""
    for a, b in _POSE_CONNECTIONS:
        pa, pb = observation.position(a), observation.position(b)
        if pa is not None and pb is not None:
            cv2.line(frame, _pt(pa), _pt(pb), _DIM, 1)
    if side not in SIDE_JOINTS:
        return
    chain = [observation.position(j) for j in SIDE_JOINTS[side]]
    for pa, pb in zip(chain, chain[1:]):
        if pa is not None and pb is not None:
            cv2.line(frame, _pt(pa), _pt(pb), color, thickness)
    for p in chain:
        if p is not None:
            cv2.circle(frame, _pt(p), 5, color, -1)


def draw_realtime_overlay(
    frame: np.ndarray,
    observation: Optional[JointObservation],
    result: Optional[FormAnalysisResult],
    aggregate: SessionAggregate,
    message: Optional[str] = None,
) -> None:
    """
    Draw realtime overlay on frame (in-place):
    - skeleton with the measured side highlighted
    - phase, quality, cues, rep counts, last rep
    - optional message (e.g. "Move into frame")
    """
    h, w = frame.shape[:2]
    quality = result.quality if result is not None else None
    if observation is not None and result is not None:
        draw_skeleton(frame, observation, result.side, color=quality_color(quality))

    # Semi-transparent panel for text
    panel_h = 200
    overlay = frame.copy()
    cv2.rectangle(overlay, (0, 0), (w, panel_h), (40, 40, 40), -1)
    cv2.addWeighted(overlay, 0.6, frame, 0.4, 0, frame)

    font = cv2.FONT_HERSHEY_SIMPLEX
    scale = 0.6
    thick = 2
    y0, dy = 28, 28
    color = (255, 255, 255)

    def put(line: str, y: int, c: tuple[int, int, int] = color) -> None:
        cv2.putText(frame, line, (12, y), font, scale, c, thick, cv2.LINE_AA)

    def fmt(val: Optional[float], unit: str = "") -> str:
        return f"{val:.1f}{unit}" if val is not None else "--"

    phase = result.phase.value if result is not None else "--"
    side = result.side.value if result is not None else "--"
    put(f"Reps: {aggregate.total_reps}  Partial: {aggregate.partial_reps}  Avg: {aggregate.average_quality}", y0)
    put(f"Phase: {phase}  Side: {side}", y0 + dy)
    put(f"Quality: {quality if quality is not None else '--'}", y0 + 2 * dy, quality_color(quality))
    if result is not None:
        put(
            f"Knee: {fmt(result.knee_angle, ' deg')}  Fwd: {fmt(result.knee_forward_percent, '%')}  "
            f"Back: {fmt(result.back_angle, ' deg')}",
            y0 + 3 * dy,
        )
        if result.cues:
            put("Cues: " + ", ".join(result.cues), y0 + 4 * dy, _WARN)
    if aggregate.last_rep_quality is not None:
        last = f"Last rep: {aggregate.last_rep_quality}"
        if aggregate.last_rep_cues:
            last += " (" + ", ".join(aggregate.last_rep_cues) + ")"
        put(last, y0 + 5 * dy)

    if message:
        cv2.putText(
            frame, message, (w // 2 - 120, h // 2),
            font, 0.8, (0, 200, 255), 2, cv2.LINE_AA
        )
