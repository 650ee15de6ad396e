"""
Chooses which half of the body (left/right) to measure each frame.

Confidence-weighted with switch hysteresis, and locked for the duration of a
repetition so a rep is never measured half on one side and half on the other.
"""
from __future__ import annotations

import logging
from typing import Optional

from .config import EngineConfig
from .joints import SIDE_JOINTS, BodySide, JointObservation, SideJoints
from .phase import SquatPhase

logger = logging.getLogger(__name__)


def _other(side: BodySide) -> BodySide:
    if side is BodySide.LEFT:
        return BodySide.RIGHT
    if side is BodySide.RIGHT:
        return BodySide.LEFT
    return BodySide.UNDETERMINED


class SideSelector:
    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()
        self.current_side = BodySide.UNDETERMINED
        self.locked_side: Optional[BodySide] = None

    def reset(self) -> None:
        self.current_side = BodySide.UNDETERMINED
        self.locked_side = None

    @property
    def selected_side(self) -> BodySide:
        return self.current_side

    def side_joints(self, observation: JointObservation, side: BodySide) -> Optional[SideJoints]:
        """
        Gather one side's joints, or None if the side is unusable.
        Hip, knee and ankle must each be present and confident; a missing or
        low-confidence shoulder is replaced by the hip position.
        """
        threshold = self.config.confidence_threshold
        shoulder_id, hip_id, knee_id, ankle_id = SIDE_JOINTS[side]
        required = []
        for joint in (hip_id, knee_id, ankle_id):
            pos = observation.position(joint)
            conf = observation.confidence(joint)
            if pos is None or conf < threshold:
                return None
            required.append((pos, conf))
        (hip, hip_c), (knee, knee_c), (ankle, ankle_c) = required

        shoulder = observation.position(shoulder_id)
        shoulder_c = observation.confidence(shoulder_id) if shoulder is not None else 0.0
        substituted = shoulder is None or shoulder_c < threshold
        if substituted:
            shoulder = hip
        return SideJoints(
            side=side,
            shoulder=shoulder,
            hip=hip,
            knee=knee,
            ankle=ankle,
            shoulder_conf=shoulder_c,
            hip_conf=hip_c,
            knee_conf=knee_c,
            ankle_conf=ankle_c,
            shoulder_substituted=substituted,
        )

    def select(
        self,
        observation: JointObservation,
        phase: SquatPhase = SquatPhase.STANDING,
    ) -> Optional[SideJoints]:
        """Pick the side to measure this frame; None when neither side is usable."""
        candidates = {
            BodySide.LEFT: self.side_joints(observation, BodySide.LEFT),
            BodySide.RIGHT: self.side_joints(observation, BodySide.RIGHT),
        }

        if phase is SquatPhase.STANDING:
            if self.locked_side is not None:
                logger.info("side: lock released (%s)", self.locked_side.value)
            self.locked_side = None
        elif self.locked_side is None and self.current_side is not BodySide.UNDETERMINED:
            self.locked_side = self.current_side
            logger.info("side: locked to %s for this rep", self.locked_side.value)

        if self.locked_side is not None:
            locked = candidates[self.locked_side]
            if locked is not None:
                return locked
            # Locked side unusable this frame only; the lock itself is kept.
            return candidates[_other(self.locked_side)]

        chosen = self._select_with_hysteresis(candidates[BodySide.LEFT], candidates[BodySide.RIGHT])
        if chosen is None:
            return None
        if self.current_side is not chosen.side:
            if self.current_side is BodySide.UNDETERMINED:
                logger.info("side: initial selection %s (conf=%.2f)", chosen.side.value, chosen.average_confidence)
            else:
                logger.info(
                    "side: switch %s -> %s (conf=%.2f)",
                    self.current_side.value,
                    chosen.side.value,
                    chosen.average_confidence,
                )
            self.current_side = chosen.side
        if phase is not SquatPhase.STANDING and self.locked_side is None:
            self.locked_side = chosen.side
            logger.info("side: locked to %s for this rep", chosen.side.value)
        return chosen

    def _select_with_hysteresis(
        self,
        left: Optional[SideJoints],
        right: Optional[SideJoints],
    ) -> Optional[SideJoints]:
        if left is not None and right is None:
            return left
        if right is not None and left is None:
            return right
        if left is None or right is None:
            return None

        left_conf = left.average_confidence
        right_conf = right.average_confidence
        min_conf = self.config.min_side_confidence
        if left_conf < min_conf and right_conf < min_conf:
            return None

        margin = self.config.side_switch_margin
        if self.current_side is BodySide.LEFT:
            return right if right_conf > left_conf + margin else left
        if self.current_side is BodySide.RIGHT:
            return left if left_conf > right_conf + margin else right
        return left if left_conf >= right_conf else right
