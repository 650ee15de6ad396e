"""
Form quality at the bottom of the squat.

Three metrics from one side's joints, each turned into a deduction from 100:
  - knee angle (hip-knee-ankle): asymmetric; too shallow costs more than too deep
  - knee forward travel past the ankle, as % of shin length (or pixels)
  - back lean from vertical (shoulder-hip)
A metric that cannot be measured (degenerate geometry, substituted shoulder)
costs nothing and emits no cue.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Mapping, Optional

from .config import KNEE_FORWARD_PIXELS, EngineConfig
from .geometry import angle_from_vertical, interior_angle
from .joints import SideJoints

logger = logging.getLogger(__name__)

CUE_GO_DEEPER = "GO DEEPER"
CUE_LESS_DEPTH = "LESS DEPTH"
CUE_KNEES_BACK = "KNEES BACK"
CUE_CHEST_UP = "CHEST UP"
CUE_REPOSITION = "REPOSITION"

METRIC_KNEE_ANGLE = "knee_angle"
METRIC_KNEE_FORWARD = "knee_forward"
METRIC_BACK_ANGLE = "back_angle"

# Deduction caps (points)
MAX_SHALLOW_DEDUCTION = 40.0
MAX_DEEP_DEDUCTION = 15.0
MAX_KNEE_FORWARD_DEDUCTION = 30.0
MAX_BACK_DEDUCTION = 30.0
# Below the good range, two degrees cost one point.
DEEP_DEGREES_PER_POINT = 2.0
# Shin shorter than this (px) cannot normalise knee travel.
MIN_SHIN_LENGTH = 1e-6


@dataclass(frozen=True)
class FormScore:
    quality: int
    knee_angle: Optional[float] = None
    knee_forward_percent: Optional[float] = None
    knee_forward_px: Optional[float] = None
    back_angle: Optional[float] = None
    deductions: Mapping[str, float] = field(default_factory=dict)
    cues: tuple[str, ...] = ()
    breakdown: str = ""


def knee_angle_deduction(angle: float, lo: float, hi: float) -> float:
    if angle < lo:
        return min((lo - angle) / DEEP_DEGREES_PER_POINT, MAX_DEEP_DEDUCTION)
    if angle > hi:
        return min(angle - hi, MAX_SHALLOW_DEDUCTION)
    return 0.0


def excess_deduction(value: float, limit: float, cap: float) -> float:
    """One point per unit over the limit, capped."""
    if value <= limit:
        return 0.0
    return min(value - limit, cap)


def knee_forward_metrics(joints: SideJoints) -> tuple[float, Optional[float]]:
    """(horizontal knee offset in px, offset as % of shin length or None)."""
    offset = abs(joints.knee.x - joints.ankle.x)
    shin = abs(joints.ankle.y - joints.knee.y)
    if shin < MIN_SHIN_LENGTH:
        return offset, None
    return offset, offset / shin * 100.0


class FormScorer:
    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()

    def score(self, joints: SideJoints) -> FormScore:
        cfg = self.config
        deductions: dict[str, float] = {}
        cues: list[str] = []
        parts: list[str] = []

        knee_angle = interior_angle(joints.hip, joints.knee, joints.ankle)
        if knee_angle is not None:
            d = knee_angle_deduction(knee_angle, cfg.knee_angle_min, cfg.knee_angle_max)
            deductions[METRIC_KNEE_ANGLE] = d
            if d > cfg.knee_angle_cue_threshold:
                cues.append(CUE_GO_DEEPER if knee_angle > cfg.knee_angle_max else CUE_LESS_DEPTH)
            parts.append(f"knee {knee_angle:.1f}deg -{d:.1f}")
        else:
            parts.append("knee n/a")

        offset_px, offset_pct = knee_forward_metrics(joints)
        if cfg.knee_forward_mode == KNEE_FORWARD_PIXELS:
            measured: Optional[float] = offset_px
            limit = cfg.knee_forward_max_px
            unit = "px"
        else:
            measured = offset_pct
            limit = cfg.knee_forward_max_percent
            unit = "%"
        if measured is not None:
            d = excess_deduction(measured, limit, MAX_KNEE_FORWARD_DEDUCTION)
            deductions[METRIC_KNEE_FORWARD] = d
            if d > cfg.knee_forward_cue_threshold:
                cues.append(CUE_KNEES_BACK)
            parts.append(f"knee fwd {measured:.0f}{unit} -{d:.1f}")
        else:
            parts.append("knee fwd n/a")

        back_angle = None if joints.shoulder_substituted else angle_from_vertical(joints.shoulder, joints.hip)
        if back_angle is not None:
            d = excess_deduction(back_angle, cfg.back_angle_max, MAX_BACK_DEDUCTION)
            deductions[METRIC_BACK_ANGLE] = d
            if d > cfg.back_angle_cue_threshold:
                cues.append(CUE_CHEST_UP)
            parts.append(f"back {back_angle:.1f}deg -{d:.1f}")
        else:
            parts.append("back n/a")

        raw = 100.0 - sum(deductions.values())
        quality = int(round(max(0.0, min(100.0, raw))))
        breakdown = " | ".join(parts) + f" = {quality}"
        logger.debug("score: %s side=%s", breakdown, joints.side.value)
        return FormScore(
            quality=quality,
            knee_angle=knee_angle,
            knee_forward_percent=offset_pct,
            knee_forward_px=offset_px,
            back_angle=back_angle,
            deductions=deductions,
            cues=tuple(cues),
            breakdown=breakdown,
        )
