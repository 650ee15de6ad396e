from __future__ import annotations

import math
from typing import Optional

import pytest

from formcheck.config import EngineConfig
from formcheck.joints import SIDE_JOINTS, BodySide, JointObservation, Point

# Upright side view, hip-to-ankle 300
STANDING = {"shoulder": (200.0, 150.0), "hip": (200.0, 300.0), "knee": (205.0, 450.0), "ankle": (200.0, 600.0)}
# Bottom position with good form, hip-to-ankle 100
BOTTOM = {"shoulder": (150.0, 355.0), "hip": (70.0, 500.0), "knee": (210.0, 490.0), "ankle": (200.0, 600.0)}


def make_observation(
    left: Optional[dict] = None,
    right: Optional[dict] = None,
    left_conf: float = 0.9,
    right_conf: float = 0.9,
    conf_overrides: Optional[dict] = None,
) -> JointObservation:
    """Build an observation from per-side {"shoulder": (x, y), ...} dicts."""
    positions = {}
    confidences = {}
    for side, pose, conf in ((BodySide.LEFT, left, left_conf), (BodySide.RIGHT, right, right_conf)):
        if pose is None:
            continue
        for name, joint in zip(("shoulder", "hip", "knee", "ankle"), SIDE_JOINTS[side]):
            if name not in pose:
                continue
            x, y = pose[name]
            positions[joint] = Point(x, y)
            confidences[joint] = conf
    for joint, conf in (conf_overrides or {}).items():
        confidences[joint] = conf
    return JointObservation(positions=positions, confidences=confidences)


def pose_at(hip_to_ankle: float, base: Optional[dict] = None) -> dict:
    """Standing pose with the hip moved so ankle.y - hip.y == hip_to_ankle."""
    pose = dict(base or STANDING)
    ankle_y = pose["ankle"][1]
    hip_y = ankle_y - hip_to_ankle
    pose["hip"] = (pose["hip"][0], hip_y)
    pose["shoulder"] = (pose["shoulder"][0], hip_y - 150.0)
    pose["knee"] = (pose["knee"][0], (hip_y + ankle_y) / 2.0)
    return pose


@pytest.fixture
def config() -> EngineConfig:
    return EngineConfig()


def bottom_pose(
    knee_angle: float = 85.0,
    forward_pct: float = 20.0,
    back_angle: float = 30.0,
    shin: float = 80.0,
    thigh: float = 100.0,
    torso: float = 150.0,
) -> dict:
    """Left-side joints with the given knee angle, knee travel (% of shin) and back lean."""
    ankle = (200.0, 600.0)
    knee = (ankle[0] + shin * forward_pct / 100.0, ankle[1] - shin)
    vx, vy = ankle[0] - knee[0], ankle[1] - knee[1]
    norm = math.hypot(vx, vy)
    vx, vy = vx / norm, vy / norm
    theta = math.radians(knee_angle)
    rx = vx * math.cos(theta) - vy * math.sin(theta)
    ry = vx * math.sin(theta) + vy * math.cos(theta)
    hip = (knee[0] + thigh * rx, knee[1] + thigh * ry)
    lean = math.radians(back_angle)
    shoulder = (hip[0] + torso * math.sin(lean), hip[1] - torso * math.cos(lean))
    return {"shoulder": shoulder, "hip": hip, "knee": knee, "ankle": ankle}
