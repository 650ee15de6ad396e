import pytest

from formcheck.phase import SquatPhase
from formcheck.reps import RepetitionAggregator, dominant_cues, performance_trend
from formcheck.scoring import CUE_CHEST_UP, CUE_GO_DEEPER, CUE_KNEES_BACK

S, D, B, A = SquatPhase.STANDING, SquatPhase.DESCENDING, SquatPhase.IN_SQUAT, SquatPhase.ASCENDING


def run_rep(agg, scores, cues=None, descend=3, ascend=3):
    """Drive one standing -> descending -> in-squat -> ascending -> standing cycle."""
    agg.update(S)
    for _ in range(descend):
        agg.update(D)
    for i, q in enumerate(scores):
        agg.update(B, quality=q, cues=(cues[i] if cues else ()))
    for _ in range(ascend):
        agg.update(A)
    return agg.update(S)


def test_full_rep_quality_is_integer_mean():
    agg = RepetitionAggregator()
    record = run_rep(agg, [100, 95, 90, 88])
    assert record.full
    assert record.quality == 93
    assert record.frame_count == 4
    current = agg.get_current_aggregate()
    assert current.total_reps == 1
    assert current.partial_reps == 0
    assert current.last_rep_quality == 93
    assert current.average_quality == 93


def test_partial_rep():
    agg = RepetitionAggregator()
    agg.update(S)
    agg.update(D)
    agg.update(A)
    record = agg.update(S)
    assert record.partial
    assert record.quality == 30
    assert record.cues == (CUE_GO_DEEPER,)
    current = agg.get_current_aggregate()
    assert current.total_reps == 0
    assert current.partial_reps == 1
    assert current.average_quality == 0
    assert current.average_attempt_quality == 30
    assert current.last_rep_partial


def test_full_and_partial_counted_separately():
    agg = RepetitionAggregator()
    run_rep(agg, [90])
    run_rep(agg, [], descend=2)
    run_rep(agg, [81])
    current = agg.get_current_aggregate()
    assert current.total_reps == 2
    assert current.partial_reps == 1
    assert current.total_attempts == 3
    assert current.average_quality == 85
    assert current.average_attempt_quality == (90 + 30 + 81) // 3
    assert [r.number for r in agg.records] == [1, 2, 3]


def test_no_close_without_attempt():
    agg = RepetitionAggregator()
    agg.update(S)
    assert agg.update(A) is None
    assert agg.update(S) is None
    assert agg.get_current_aggregate().total_attempts == 0


def test_rep_cues_use_dominant_frames():
    agg = RepetitionAggregator()
    cues = [(CUE_KNEES_BACK,), (CUE_KNEES_BACK, CUE_CHEST_UP), (CUE_KNEES_BACK,), (), (), ()]
    record = run_rep(agg, [70, 60, 70, 90, 90, 90], cues)
    # KNEES BACK on 3 of 6 frames is kept; CHEST UP on 1 of 6 is not
    assert record.cues == (CUE_KNEES_BACK,)


def test_dominant_cues_ordering_and_limit():
    frames = [("A", "B"), ("B", "C"), ("B", "C", "D"), ("A", "C", "D")]
    assert dominant_cues(frames) == ("B", "C", "A")
    assert dominant_cues(frames, limit=2) == ("B", "C")
    assert dominant_cues([]) == ()
    # Duplicate cues within one frame count once
    assert dominant_cues([("A", "A"), (), ()]) == ()


def test_session_summary():
    agg = RepetitionAggregator()
    for q in (60, 70, 80, 90):
        run_rep(agg, [q], [(CUE_KNEES_BACK,)] if q < 70 else None)
    run_rep(agg, [], descend=2)
    summary = agg.session_summary()
    assert summary.total_reps == 4
    assert summary.partial_reps == 1
    assert summary.average_score == 75
    assert summary.highest_score == 90
    assert summary.lowest_score == 60
    assert summary.all_rep_scores == (60, 70, 80, 90)
    assert summary.good_form_percentage == pytest.approx(75.0)
    assert summary.most_common_issue == CUE_KNEES_BACK
    assert summary.issue_count == 1
    assert summary.performance_trend == pytest.approx(20.0)


def test_empty_summary():
    summary = RepetitionAggregator().session_summary()
    assert summary.total_reps == 0
    assert summary.most_common_issue is None


def test_performance_trend_needs_four_reps():
    assert performance_trend([50, 90, 90]) == 0.0
    assert performance_trend([90, 90, 70, 70]) == pytest.approx(-20.0)


def test_reset():
    agg = RepetitionAggregator()
    run_rep(agg, [88])
    agg.reset()
    assert agg.records == []
    assert agg.get_current_aggregate().total_reps == 0
    assert agg.get_current_aggregate().last_rep_quality is None


def test_attempt_closes_on_any_return_to_standing():
    agg = RepetitionAggregator()
    agg.update(S)
    agg.update(D)
    record = agg.update(S)
    assert record is not None and record.partial
    agg.update(D)
    agg.update(B, quality=80)
    record = agg.update(S)
    assert record is not None and record.full and record.quality == 80
    assert agg.get_current_aggregate().total_attempts == 2
