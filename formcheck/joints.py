"""
Per-frame joint observations as delivered by a pose source, plus the
single-side joint set the analysis pipeline works on.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, NamedTuple, Optional


class JointId(str, Enum):
    NOSE = "nose"
    LEFT_SHOULDER = "left_shoulder"
    RIGHT_SHOULDER = "right_shoulder"
    LEFT_ELBOW = "left_elbow"
    RIGHT_ELBOW = "right_elbow"
    LEFT_WRIST = "left_wrist"
    RIGHT_WRIST = "right_wrist"
    LEFT_HIP = "left_hip"
    RIGHT_HIP = "right_hip"
    LEFT_KNEE = "left_knee"
    RIGHT_KNEE = "right_knee"
    LEFT_ANKLE = "left_ankle"
    RIGHT_ANKLE = "right_ankle"


class BodySide(str, Enum):
    LEFT = "left"
    RIGHT = "right"
    UNDETERMINED = "undetermined"


class Point(NamedTuple):
    x: float
    y: float


# (shoulder, hip, knee, ankle) per side
SIDE_JOINTS: dict[BodySide, tuple[JointId, JointId, JointId, JointId]] = {
    BodySide.LEFT: (JointId.LEFT_SHOULDER, JointId.LEFT_HIP, JointId.LEFT_KNEE, JointId.LEFT_ANKLE),
    BodySide.RIGHT: (JointId.RIGHT_SHOULDER, JointId.RIGHT_HIP, JointId.RIGHT_KNEE, JointId.RIGHT_ANKLE),
}


def _clamp_confidence(value: Any) -> float:
    try:
        conf = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0.0
    if not math.isfinite(conf):
        return 0.0
    return max(0.0, min(1.0, conf))


def _finite_point(p: Any) -> Optional[Point]:
    try:
        x, y = float(p[0]), float(p[1])
    except (IndexError, TypeError, ValueError, OverflowError):
        return None
    if not (math.isfinite(x) and math.isfinite(y)):
        return None
    return Point(x, y)


@dataclass(frozen=True)
class JointObservation:
    """
    One frame from the pose source. A joint missing from `positions` was not
    detected this frame; a missing confidence reads as 0.
    """

    positions: Mapping[JointId, Point] = field(default_factory=dict)
    confidences: Mapping[JointId, float] = field(default_factory=dict)

    def position(self, joint: JointId) -> Optional[Point]:
        return self.positions.get(joint)

    def confidence(self, joint: JointId) -> float:
        return self.confidences.get(joint, 0.0)

    def sanitized(self) -> JointObservation:
        """Clamp confidences to [0, 1] and drop non-finite positions."""
        positions = {}
        for j, p in self.positions.items():
            point = _finite_point(p)
            if point is not None:
                positions[j] = point
        confidences = {j: _clamp_confidence(c) for j, c in self.confidences.items()}
        return JointObservation(positions=positions, confidences=confidences)

    @classmethod
    def from_dict(cls, joints: Mapping[str, Any]) -> JointObservation:
        """
        Build from {"left_hip": {"x": .., "y": .., "confidence": ..}, ...}.
        Unknown joint names and entries without coordinates are skipped.
        """
        positions: dict[JointId, Point] = {}
        confidences: dict[JointId, float] = {}
        for name, entry in joints.items():
            try:
                joint = JointId(name)
            except ValueError:
                continue
            if not isinstance(entry, Mapping):
                continue
            try:
                x = float(entry["x"])
                y = float(entry["y"])
            except (KeyError, TypeError, ValueError, OverflowError):
                continue
            positions[joint] = Point(x, y)
            confidences[joint] = _clamp_confidence(entry.get("confidence", 1.0))
        return cls(positions=positions, confidences=confidences)

    def to_dict(self) -> dict[str, dict[str, float]]:
        return {
            j.value: {"x": p.x, "y": p.y, "confidence": self.confidence(j)}
            for j, p in self.positions.items()
        }


@dataclass(frozen=True)
class SideJoints:
    """Shoulder/hip/knee/ankle from one side of the body."""

    side: BodySide
    shoulder: Point
    hip: Point
    knee: Point
    ankle: Point
    shoulder_conf: float
    hip_conf: float
    knee_conf: float
    ankle_conf: float
    # True when the shoulder was missing/unreliable and the hip stands in for it.
    shoulder_substituted: bool = False

    @property
    def average_confidence(self) -> float:
        return (self.shoulder_conf + self.hip_conf + self.knee_conf + self.ankle_conf) / 4.0

    @property
    def hip_to_ankle(self) -> float:
        return self.ankle.y - self.hip.y
