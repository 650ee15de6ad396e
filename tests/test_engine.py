import json

import pytest
from conftest import STANDING, bottom_pose, make_observation, pose_at

from formcheck.config import EngineConfig
from formcheck.engine import SquatEngine
from formcheck.joints import BodySide
from formcheck.phase import SquatPhase
from formcheck.scoring import CUE_GO_DEEPER, CUE_KNEES_BACK, CUE_REPOSITION
from formcheck.synthetic import SquatCycleGenerator


def feed(engine, pose, n=1, **kwargs):
    result = None
    for _ in range(n):
        result = engine.process(make_observation(pose, pose, **kwargs))
    return result


def test_standing_frames_have_no_quality():
    engine = SquatEngine()
    result = feed(engine, STANDING, 5)
    assert result.phase is SquatPhase.STANDING
    assert result.quality is None
    assert result.cues == ()
    assert result.side is BodySide.LEFT
    assert result.hip_to_ankle == pytest.approx(300.0)


def test_good_depth_scores_100():
    engine = SquatEngine()
    results = [feed(engine, bottom_pose(85.0, 20.0, 30.0)) for _ in range(5)]
    assert all(r.phase is SquatPhase.STANDING for r in results[:4])
    assert results[-1].phase is SquatPhase.IN_SQUAT
    assert results[-1].quality == 100
    assert results[-1].cues == ()
    assert results[-1].is_good_form


def test_shallow_knee_scores_85():
    engine = SquatEngine()
    result = feed(engine, bottom_pose(knee_angle=110.0), 5)
    assert result.phase is SquatPhase.IN_SQUAT
    assert result.quality == 85
    assert CUE_GO_DEEPER in result.cues


def test_full_cycle_counts_rep_and_calibrates():
    engine = SquatEngine()
    feed(engine, bottom_pose(85.0, 20.0, 30.0), 5)
    for h2a in (160.0, 180.0, 200.0, 220.0, 240.0):
        result = feed(engine, pose_at(h2a))
    assert result.phase is SquatPhase.ASCENDING
    assert engine.baseline is None
    results = [feed(engine, pose_at(300.0)) for _ in range(5)]
    assert results[-1].phase is SquatPhase.STANDING
    rep = results[-1].completed_rep
    assert rep is not None and rep.full
    aggregate = engine.get_current_aggregate()
    assert aggregate.total_reps == 1
    assert aggregate.last_rep_quality == 100
    assert engine.baseline == pytest.approx(300.0)
    assert engine.phase_machine.standing_threshold == pytest.approx(255.0)


def test_unusable_frame_asks_to_reposition_and_holds_state():
    engine = SquatEngine()
    feed(engine, bottom_pose(), 3)
    pending = engine.phase_machine.pending_count
    result = engine.process(make_observation(STANDING, STANDING, 0.2, 0.2))
    assert result.quality == 0
    assert result.cues == (CUE_REPOSITION,)
    assert not result.side_usable
    assert result.phase is SquatPhase.STANDING
    assert engine.phase_machine.pending_count == pending
    # Debounce resumes where it left off
    feed(engine, bottom_pose(), 2)
    assert engine.phase is SquatPhase.IN_SQUAT


def test_non_finite_input_is_sanitized():
    pose = dict(STANDING)
    pose["hip"] = (float("nan"), 300.0)
    result = SquatEngine().process(make_observation(pose))
    assert result.cues == (CUE_REPOSITION,)
    assert result.phase is SquatPhase.STANDING


def test_synthetic_good_reps():
    engine = SquatEngine()
    gen = SquatCycleGenerator(cycle_frames=60)
    completed = [r.completed_rep for r in map(engine.process, gen.frames(3 * 60 + 15)) if r.completed_rep]
    assert len(completed) == 3
    assert all(rep.full for rep in completed)
    assert all(rep.quality >= 90 for rep in completed)
    assert engine.baseline is not None
    summary = engine.session_summary()
    assert summary.total_reps == 3
    assert summary.good_form_percentage == pytest.approx(100.0)


def test_synthetic_bad_form_reps():
    engine = SquatEngine()
    gen = SquatCycleGenerator(cycle_frames=60, good_form=False)
    for obs in gen.frames(2 * 60 + 15):
        engine.process(obs)
    aggregate = engine.get_current_aggregate()
    assert aggregate.total_reps == 2
    assert aggregate.last_rep_quality < 80
    assert CUE_KNEES_BACK in aggregate.last_rep_cues
    assert engine.session_summary().most_common_issue is not None


def test_side_stays_locked_through_rep():
    engine = SquatEngine()
    gen = SquatCycleGenerator(cycle_frames=60, left_confidence=0.9, right_confidence=0.8)
    sides = set()
    for obs in gen.frames(60):
        result = engine.process(obs)
        if result.phase is not SquatPhase.STANDING:
            sides.add(result.side)
    assert sides == {BodySide.LEFT}


def test_reset():
    engine = SquatEngine()
    for obs in SquatCycleGenerator().frames(75):
        engine.process(obs)
    assert engine.get_current_aggregate().total_reps == 1
    engine.reset()
    assert engine.phase is SquatPhase.STANDING
    assert engine.baseline is None
    assert engine.selected_side is BodySide.UNDETERMINED
    assert engine.get_current_aggregate().total_reps == 0


def test_result_and_snapshot_serialize():
    engine = SquatEngine()
    results = [engine.process(obs) for obs in SquatCycleGenerator().frames(75)]
    payload = json.loads(json.dumps([r.to_dict() for r in results]))
    assert payload[0]["phase"] == "standing"
    assert any(p["completed_rep"] for p in payload)
    snap = json.loads(json.dumps(engine.snapshot()))
    assert snap["aggregate"]["total_reps"] == 1
    assert len(snap["reps"]) == 1


def test_descend_and_return_without_depth_is_partial():
    engine = SquatEngine()
    feed(engine, STANDING, 5)
    for h2a in (260.0, 250.0, 240.0, 230.0, 220.0, 210.0):
        result = feed(engine, pose_at(h2a))
    assert result.phase is SquatPhase.DESCENDING
    results = [feed(engine, STANDING) for _ in range(5)]
    assert results[-1].phase is SquatPhase.STANDING
    rep = results[-1].completed_rep
    assert rep is not None and rep.partial
    aggregate = engine.get_current_aggregate()
    assert aggregate.partial_reps == 1
    assert aggregate.total_reps == 0
    assert engine.baseline is None


def test_fast_rise_from_bottom_counts_full_rep():
    engine = SquatEngine()
    feed(engine, bottom_pose(85.0, 20.0, 30.0), 5)
    assert engine.phase is SquatPhase.IN_SQUAT
    results = [feed(engine, STANDING) for _ in range(5)]
    assert results[-1].phase is SquatPhase.STANDING
    assert results[-1].completed_rep is not None and results[-1].completed_rep.full
    assert engine.get_current_aggregate().total_reps == 1
    assert engine.get_current_aggregate().last_rep_quality == 100


def test_good_form_threshold_follows_config():
    engine = SquatEngine(EngineConfig(good_form_quality=101))
    result = feed(engine, bottom_pose(85.0, 20.0, 30.0), 5)
    assert result.quality == 100
    assert not result.is_good_form
    assert result.to_dict()["is_good_form"] is False
    assert feed(SquatEngine(), bottom_pose(85.0, 20.0, 30.0), 5).is_good_form


def test_huge_integer_coordinates_do_not_raise():
    pose = dict(STANDING)
    pose["hip"] = (10 ** 400, 300.0)
    result = SquatEngine().process(make_observation(pose))
    assert result.cues == (CUE_REPOSITION,)
