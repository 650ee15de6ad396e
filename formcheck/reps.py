"""
Repetition aggregation driven by the confirmed phase stream.

An attempt opens on standing -> descending and closes on the next return to
standing from any other phase (a fast rise can skip ascending).
Attempts that reached in-squat are full reps scored by the mean of their
in-squat frame scores; attempts that only descended are partial reps with a
fixed penalty score. Full and partial counts are kept separately.
"""
from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from .config import EngineConfig
from .phase import SquatPhase
from .scoring import CUE_GO_DEEPER

logger = logging.getLogger(__name__)

# Reps needed before the first-half vs second-half trend is reported.
MIN_REPS_FOR_TREND = 4


@dataclass(frozen=True)
class RepetitionRecord:
    number: int
    full: bool
    quality: int
    cues: tuple[str, ...]
    frame_count: int
    start_frame: Optional[int] = None
    end_frame: Optional[int] = None

    @property
    def partial(self) -> bool:
        return not self.full

    def to_dict(self) -> dict:
        return {
            "rep": self.number,
            "full": self.full,
            "quality": self.quality,
            "cues": list(self.cues),
            "frame_count": self.frame_count,
            "start_frame": self.start_frame,
            "end_frame": self.end_frame,
        }


@dataclass(frozen=True)
class SessionAggregate:
    total_reps: int = 0
    partial_reps: int = 0
    average_quality: int = 0
    average_attempt_quality: int = 0
    last_rep_quality: Optional[int] = None
    last_rep_cues: tuple[str, ...] = ()
    last_rep_partial: bool = False

    @property
    def total_attempts(self) -> int:
        return self.total_reps + self.partial_reps

    def to_dict(self) -> dict:
        return {
            "total_reps": self.total_reps,
            "partial_reps": self.partial_reps,
            "total_attempts": self.total_attempts,
            "average_quality": self.average_quality,
            "average_attempt_quality": self.average_attempt_quality,
            "last_rep_quality": self.last_rep_quality,
            "last_rep_cues": list(self.last_rep_cues),
            "last_rep_partial": self.last_rep_partial,
        }


@dataclass(frozen=True)
class SessionSummary:
    total_reps: int = 0
    partial_reps: int = 0
    average_score: int = 0
    highest_score: int = 0
    lowest_score: int = 0
    all_rep_scores: tuple[int, ...] = ()
    good_form_percentage: float = 0.0
    most_common_issue: Optional[str] = None
    issue_count: int = 0
    performance_trend: float = 0.0

    def to_dict(self) -> dict:
        return {
            "total_reps": self.total_reps,
            "partial_reps": self.partial_reps,
            "average_score": self.average_score,
            "highest_score": self.highest_score,
            "lowest_score": self.lowest_score,
            "all_rep_scores": list(self.all_rep_scores),
            "good_form_percentage": self.good_form_percentage,
            "most_common_issue": self.most_common_issue,
            "issue_count": self.issue_count,
            "performance_trend": self.performance_trend,
        }


def dominant_cues(frame_cues: Sequence[Sequence[str]], limit: int = 3) -> tuple[str, ...]:
    """Cues present in more than a third of the frames, most frequent first."""
    n = len(frame_cues)
    if n == 0:
        return ()
    counts: Counter[str] = Counter()
    for cues in frame_cues:
        counts.update(list(dict.fromkeys(cues)))
    # Counter preserves first-seen order, so sorted() keeps it for ties.
    kept = [cue for cue, count in counts.items() if count * 3 > n]
    kept = sorted(kept, key=lambda c: counts[c], reverse=True)
    return tuple(kept[:limit])


def performance_trend(scores: Sequence[int]) -> float:
    """Mean of the second half minus mean of the first half (0 with few reps)."""
    if len(scores) < MIN_REPS_FOR_TREND:
        return 0.0
    half = len(scores) // 2
    return float(np.mean(scores[half:]) - np.mean(scores[:half]))


class RepetitionAggregator:
    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()
        self.reset()

    def reset(self) -> None:
        self.previous_phase = SquatPhase.STANDING
        self.records: list[RepetitionRecord] = []
        self._total_reps = 0
        self._partial_reps = 0
        self._quality_sum = 0
        self._partial_quality_sum = 0
        self._cue_frequency: Counter[str] = Counter()
        self._reset_attempt()

    def _reset_attempt(self) -> None:
        self._attempted = False
        self._reached_depth = False
        self._scores: list[int] = []
        self._frame_cues: list[tuple[str, ...]] = []
        self._start_frame: Optional[int] = None

    def update(
        self,
        phase: SquatPhase,
        quality: Optional[int] = None,
        cues: Sequence[str] = (),
        frame_idx: Optional[int] = None,
    ) -> Optional[RepetitionRecord]:
        """
        Push one frame's confirmed phase (and score while in-squat).
        Returns the record of an attempt closed on this frame, else None.
        """
        prev = self.previous_phase
        closed: Optional[RepetitionRecord] = None

        if prev is SquatPhase.STANDING and phase is SquatPhase.DESCENDING:
            self._reset_attempt()
            self._start_frame = frame_idx
            logger.info("reps: new attempt (frame=%s)", frame_idx)
        if phase is SquatPhase.DESCENDING:
            self._attempted = True
        if phase is SquatPhase.IN_SQUAT:
            self._reached_depth = True
            if self._start_frame is None:
                self._start_frame = frame_idx
            if quality is not None:
                self._scores.append(int(quality))
                self._frame_cues.append(tuple(cues))
                self._cue_frequency.update(cues)

        if prev is not SquatPhase.STANDING and phase is SquatPhase.STANDING:
            closed = self._close_attempt(frame_idx)
            self._reset_attempt()

        self.previous_phase = phase
        return closed

    def _close_attempt(self, frame_idx: Optional[int]) -> Optional[RepetitionRecord]:
        if self._reached_depth:
            self._total_reps += 1
            quality = int(sum(self._scores) / len(self._scores)) if self._scores else 0
            cues = dominant_cues(self._frame_cues, self.config.max_rep_cues)
            self._quality_sum += quality
            record = RepetitionRecord(
                number=self._total_reps + self._partial_reps,
                full=True,
                quality=quality,
                cues=cues,
                frame_count=len(self._scores),
                start_frame=self._start_frame,
                end_frame=frame_idx,
            )
            logger.info(
                "reps: rep %s complete quality=%s cues=%s frames=%s",
                self._total_reps, quality, list(cues), len(self._scores),
            )
        elif self._attempted:
            self._partial_reps += 1
            quality = self.config.partial_rep_quality
            self._partial_quality_sum += quality
            record = RepetitionRecord(
                number=self._total_reps + self._partial_reps,
                full=False,
                quality=quality,
                cues=(CUE_GO_DEEPER,),
                frame_count=0,
                start_frame=self._start_frame,
                end_frame=frame_idx,
            )
            logger.info("reps: partial attempt %s (depth not reached)", self._partial_reps)
        else:
            return None
        self.records.append(record)
        return record

    def get_current_aggregate(self) -> SessionAggregate:
        last = self.records[-1] if self.records else None
        attempts = self._total_reps + self._partial_reps
        return SessionAggregate(
            total_reps=self._total_reps,
            partial_reps=self._partial_reps,
            average_quality=self._quality_sum // self._total_reps if self._total_reps else 0,
            average_attempt_quality=(
                (self._quality_sum + self._partial_quality_sum) // attempts if attempts else 0
            ),
            last_rep_quality=last.quality if last else None,
            last_rep_cues=last.cues if last else (),
            last_rep_partial=last.partial if last else False,
        )

    def session_summary(self) -> SessionSummary:
        """End-of-set statistics over full reps."""
        scores = [r.quality for r in self.records if r.full]
        if not scores:
            return SessionSummary(partial_reps=self._partial_reps)
        good = sum(1 for s in scores if s >= self.config.good_form_quality)
        issue, issue_count = (None, 0)
        if self._cue_frequency:
            issue, issue_count = self._cue_frequency.most_common(1)[0]
        return SessionSummary(
            total_reps=len(scores),
            partial_reps=self._partial_reps,
            average_score=sum(scores) // len(scores),
            highest_score=max(scores),
            lowest_score=min(scores),
            all_rep_scores=tuple(scores),
            good_form_percentage=good / len(scores) * 100.0,
            most_common_issue=issue,
            issue_count=issue_count,
            performance_trend=performance_trend(scores),
        )
