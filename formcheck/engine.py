"""
Per-frame squat analysis pipeline:
observation -> side selection -> phase -> (in-squat) form score -> rep aggregation.

One engine per session. Calls must be serialized by the host; the engine
does no locking of its own. Every call returns a result, never raises.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from .config import EngineConfig
from .joints import BodySide, JointObservation
from .phase import PhaseStateMachine, SquatPhase
from .reps import RepetitionAggregator, RepetitionRecord, SessionAggregate, SessionSummary
from .scoring import CUE_REPOSITION, FormScore, FormScorer
from .side import SideSelector

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FormAnalysisResult:
    phase: SquatPhase
    # None = not applicable (not in-squat)
    quality: Optional[int] = None
    knee_angle: Optional[float] = None
    knee_forward_percent: Optional[float] = None
    back_angle: Optional[float] = None
    cues: tuple[str, ...] = ()
    score_breakdown: Optional[str] = None
    side: BodySide = BodySide.UNDETERMINED
    hip_to_ankle: Optional[float] = None
    completed_rep: Optional[RepetitionRecord] = None
    # Quality at or above this counts as good form (from the engine config).
    good_form_quality: int = EngineConfig.good_form_quality

    @property
    def is_good_form(self) -> bool:
        return self.quality is not None and self.quality >= self.good_form_quality

    @property
    def side_usable(self) -> bool:
        return self.side is not BodySide.UNDETERMINED

    def to_dict(self) -> dict[str, Any]:
        return {
            "phase": self.phase.value,
            "quality": self.quality,
            "knee_angle": self.knee_angle,
            "knee_forward_percent": self.knee_forward_percent,
            "back_angle": self.back_angle,
            "cues": list(self.cues),
            "score_breakdown": self.score_breakdown,
            "side": self.side.value,
            "hip_to_ankle": self.hip_to_ankle,
            "completed_rep": self.completed_rep.to_dict() if self.completed_rep else None,
            "is_good_form": self.is_good_form,
        }


class SquatEngine:
    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()
        self.side_selector = SideSelector(self.config)
        self.phase_machine = PhaseStateMachine(self.config)
        self.scorer = FormScorer(self.config)
        self.aggregator = RepetitionAggregator(self.config)
        self.frame_index = 0

    def reset(self) -> None:
        """Back to phase=standing, no calibration, no side lock, zero reps."""
        self.side_selector.reset()
        self.phase_machine.reset()
        self.aggregator.reset()
        self.frame_index = 0
        logger.info("engine: reset")

    @property
    def phase(self) -> SquatPhase:
        return self.phase_machine.phase

    @property
    def baseline(self) -> Optional[float]:
        return self.phase_machine.baseline

    @property
    def selected_side(self) -> BodySide:
        return self.side_selector.selected_side

    def get_current_aggregate(self) -> SessionAggregate:
        return self.aggregator.get_current_aggregate()

    def session_summary(self) -> SessionSummary:
        return self.aggregator.session_summary()

    def snapshot(self) -> dict[str, Any]:
        """JSON-ready session state: per-rep records, aggregate, summary, calibration."""
        return {
            "frames": self.frame_index,
            "phase": self.phase.value,
            "baseline": self.baseline,
            "reps": [r.to_dict() for r in self.aggregator.records],
            "aggregate": self.get_current_aggregate().to_dict(),
            "summary": self.session_summary().to_dict(),
        }

    def process(
        self,
        observation: JointObservation,
        elapsed: Optional[float] = None,
    ) -> FormAnalysisResult:
        """
        Analyze one frame. `elapsed` is the optional time in seconds since the
        previous frame, used to normalise hip velocity for irregular cadences.
        """
        frame_idx = self.frame_index
        self.frame_index += 1
        observation = observation.sanitized()

        joints = self.side_selector.select(observation, self.phase_machine.phase)
        if joints is None:
            # Neutral frame: phase and debounce state are left untouched.
            logger.debug("engine: frame %s no usable side", frame_idx)
            return FormAnalysisResult(
                phase=self.phase_machine.phase,
                quality=0,
                cues=(CUE_REPOSITION,),
                score_breakdown="no usable side",
            )

        phase = self.phase_machine.update(joints.hip.y, joints.knee.y, joints.ankle.y, elapsed)
        score: Optional[FormScore] = None
        if phase is SquatPhase.IN_SQUAT:
            score = self.scorer.score(joints)

        completed = self.aggregator.update(
            phase,
            quality=score.quality if score else None,
            cues=score.cues if score else (),
            frame_idx=frame_idx,
        )
        if score is None:
            return FormAnalysisResult(
                phase=phase,
                side=joints.side,
                hip_to_ankle=joints.hip_to_ankle,
                completed_rep=completed,
            )
        return FormAnalysisResult(
            phase=phase,
            quality=score.quality,
            knee_angle=score.knee_angle,
            knee_forward_percent=score.knee_forward_percent,
            back_angle=score.back_angle,
            cues=score.cues,
            score_breakdown=score.breakdown,
            side=joints.side,
            hip_to_ankle=joints.hip_to_ankle,
            completed_rep=completed,
            good_form_quality=self.config.good_form_quality,
        )
