"""
Squat phase classification from one side's hip/ankle Y.

Uses hip-to-ankle distance (larger = more upright) against standing/depth
thresholds, falls back to hip velocity in between, and only commits a new
phase after `debounce_frames` consecutive identical proposals. The standing
baseline is calibrated once, on the first completed rep.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from .config import EngineConfig

logger = logging.getLogger(__name__)


class SquatPhase(str, Enum):
    STANDING = "standing"
    DESCENDING = "descending"
    IN_SQUAT = "in_squat"
    ASCENDING = "ascending"


class PhaseStateMachine:
    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()
        self.phase = SquatPhase.STANDING
        self.previous_hip_y: Optional[float] = None
        self.pending_phase: Optional[SquatPhase] = None
        self.pending_count = 0
        self.baseline: Optional[float] = None
        self.last_hip_to_ankle: Optional[float] = None
        self.last_knee_y: Optional[float] = None
        self.last_proposal: Optional[SquatPhase] = None
        # In-squat confirmed since the last standing; gates calibration.
        self._reached_depth = False

    def reset(self) -> None:
        self.phase = SquatPhase.STANDING
        self.previous_hip_y = None
        self.pending_phase = None
        self.pending_count = 0
        self.baseline = None
        self.last_hip_to_ankle = None
        self.last_knee_y = None
        self.last_proposal = None
        self._reached_depth = False

    @property
    def calibrated(self) -> bool:
        return self.baseline is not None

    @property
    def standing_threshold(self) -> float:
        if self.baseline is not None:
            return self.baseline * self.config.standing_ratio
        return self.config.fallback_standing_distance

    @property
    def depth_threshold(self) -> float:
        if self.baseline is not None:
            return self.baseline * self.config.depth_ratio
        return self.config.fallback_depth_distance

    def _velocity(self, hip_y: float, elapsed: Optional[float]) -> Optional[float]:
        """Hip movement per nominal frame; positive = moving down on screen."""
        if self.previous_hip_y is None:
            return None
        delta = hip_y - self.previous_hip_y
        if elapsed is not None and elapsed > 0 and self.config.target_fps > 0:
            return delta / (elapsed * self.config.target_fps)
        return delta

    def propose(self, hip_to_ankle: float, velocity: Optional[float]) -> SquatPhase:
        """Single-frame phase guess, before debouncing."""
        cfg = self.config
        is_deep = hip_to_ankle < self.depth_threshold
        is_standing = hip_to_ankle > self.standing_threshold
        if velocity is None:
            return SquatPhase.IN_SQUAT if is_deep else SquatPhase.STANDING
        if is_deep:
            return SquatPhase.IN_SQUAT
        if is_standing:
            return SquatPhase.STANDING
        if (
            self.phase is SquatPhase.ASCENDING
            and hip_to_ankle > cfg.near_top_distance
            and abs(velocity) < cfg.near_top_velocity
        ):
            return SquatPhase.STANDING
        if velocity > cfg.velocity_noise_floor:
            return SquatPhase.DESCENDING
        if velocity < -cfg.velocity_noise_floor:
            return SquatPhase.ASCENDING
        if self.phase is SquatPhase.ASCENDING:
            return SquatPhase.STANDING
        return self.phase

    def update(
        self,
        hip_y: float,
        knee_y: float,
        ankle_y: float,
        elapsed: Optional[float] = None,
    ) -> SquatPhase:
        """
        Push one frame of the selected side. Returns the confirmed phase.
        `elapsed` (seconds since the previous frame) is optional; without it
        velocity is measured per call.
        """
        hip_to_ankle = ankle_y - hip_y
        velocity = self._velocity(hip_y, elapsed)
        desired = self.propose(hip_to_ankle, velocity)
        self.last_hip_to_ankle = hip_to_ankle
        self.last_knee_y = knee_y
        self.last_proposal = desired

        if desired == self.pending_phase:
            self.pending_count += 1
        else:
            self.pending_phase = desired
            self.pending_count = 1
        logger.debug(
            "phase: hip_to_ankle=%.1f vel=%s proposal=%s pending=%s/%s current=%s",
            hip_to_ankle,
            None if velocity is None else round(velocity, 1),
            desired.value,
            self.pending_count,
            self.config.debounce_frames,
            self.phase.value,
        )

        if self.pending_count >= self.config.debounce_frames:
            self.pending_phase = None
            self.pending_count = 0
            if desired != self.phase:
                self._commit(desired, hip_to_ankle)

        self.previous_hip_y = hip_y
        return self.phase

    def _commit(self, new_phase: SquatPhase, hip_to_ankle: float) -> None:
        old = self.phase
        self.phase = new_phase
        logger.info("phase: %s -> %s (hip_to_ankle=%.1f)", old.value, new_phase.value, hip_to_ankle)
        if new_phase is SquatPhase.IN_SQUAT:
            self._reached_depth = True
        if new_phase is SquatPhase.STANDING:
            if old is SquatPhase.ASCENDING and self._reached_depth and self.baseline is None:
                self.baseline = hip_to_ankle
                logger.info(
                    "phase: calibrated baseline=%.1f (standing>%.1f depth<%.1f)",
                    hip_to_ankle,
                    self.standing_threshold,
                    self.depth_threshold,
                )
            self._reached_depth = False
