"""
Synthetic squat observations for demos and tests.

Each cycle is four equal quarters: standing, descending, bottom, ascending.
Joints are interpolated between a standing pose (hip-to-ankle 300 px) and a
bottom pose (hip-to-ankle 100 px, knee ~81 deg, upright back). Bad form pushes
the knees well past the toes at the bottom.
"""
from __future__ import annotations

from typing import Iterator, Optional

import numpy as np

from .joints import JointId, JointObservation, Point

# Side-view poses for the left side, pixel coordinates (Y down).
STANDING_POSE: dict[str, tuple[float, float]] = {
    "shoulder": (200.0, 150.0),
    "hip": (200.0, 300.0),
    "knee": (205.0, 450.0),
    "ankle": (200.0, 600.0),
}
BOTTOM_POSE: dict[str, tuple[float, float]] = {
    "shoulder": (150.0, 355.0),
    "hip": (70.0, 500.0),
    "knee": (210.0, 490.0),
    "ankle": (200.0, 600.0),
}
# Knee x at the bottom for bad form (knee travel ~73% of shin).
BAD_FORM_KNEE_X = 280.0
# Right-side joints are drawn this far right of the left side.
RIGHT_SIDE_OFFSET = 10.0

_LEFT = {
    "shoulder": JointId.LEFT_SHOULDER,
    "hip": JointId.LEFT_HIP,
    "knee": JointId.LEFT_KNEE,
    "ankle": JointId.LEFT_ANKLE,
}
_RIGHT = {
    "shoulder": JointId.RIGHT_SHOULDER,
    "hip": JointId.RIGHT_HIP,
    "knee": JointId.RIGHT_KNEE,
    "ankle": JointId.RIGHT_ANKLE,
}


def squat_pose(progress: float, good_form: bool = True) -> dict[str, tuple[float, float]]:
    """Left-side joints at `progress` in [0, 1] (0 = standing, 1 = bottom)."""
    p = float(np.clip(progress, 0.0, 1.0))
    pose = {}
    for name, (sx, sy) in STANDING_POSE.items():
        bx, by = BOTTOM_POSE[name]
        if name == "knee" and not good_form:
            bx = BAD_FORM_KNEE_X
        pose[name] = (sx + (bx - sx) * p, sy + (by - sy) * p)
    return pose


class SquatCycleGenerator:
    def __init__(
        self,
        cycle_frames: int = 60,
        good_form: bool = True,
        left_confidence: float = 0.9,
        right_confidence: float = 0.9,
        jitter_px: float = 0.0,
        seed: Optional[int] = None,
    ):
        if cycle_frames < 4:
            raise ValueError("cycle_frames must be at least 4")
        self.cycle_frames = cycle_frames
        self.good_form = good_form
        self.left_confidence = left_confidence
        self.right_confidence = right_confidence
        self.jitter_px = jitter_px
        self._rng = np.random.default_rng(seed)
        self.frame = 0

    def reset(self) -> None:
        self.frame = 0

    def progress(self, frame: int) -> float:
        quarter = self.cycle_frames / 4.0
        t = frame % self.cycle_frames
        if t < quarter:
            return 0.0
        if t < 2 * quarter:
            return (t - quarter) / quarter
        if t < 3 * quarter:
            return 1.0
        return 1.0 - (t - 3 * quarter) / quarter

    def phase_name(self, frame: Optional[int] = None) -> str:
        t = (self.frame if frame is None else frame) % self.cycle_frames
        quarter = self.cycle_frames / 4.0
        return ("standing", "descending", "in_squat", "ascending")[min(3, int(t // quarter))]

    def observation(self, frame: int) -> JointObservation:
        pose = squat_pose(self.progress(frame), self.good_form)
        positions: dict[JointId, Point] = {}
        confidences: dict[JointId, float] = {}
        for name, (x, y) in pose.items():
            for ids, dx, conf in (
                (_LEFT, 0.0, self.left_confidence),
                (_RIGHT, RIGHT_SIDE_OFFSET, self.right_confidence),
            ):
                jx, jy = x + dx, y
                if self.jitter_px > 0:
                    jx, jy = np.array([jx, jy]) + self._rng.normal(0.0, self.jitter_px, 2)
                positions[ids[name]] = Point(float(jx), float(jy))
                confidences[ids[name]] = conf
        return JointObservation(positions=positions, confidences=confidences)

    def next_frame(self) -> JointObservation:
        obs = self.observation(self.frame)
        self.frame += 1
        return obs

    def frames(self, count: int) -> Iterator[JointObservation]:
        for _ in range(count):
            yield self.next_frame()

    def cycles(self, n: int) -> Iterator[JointObservation]:
        return self.frames(n * self.cycle_frames)
