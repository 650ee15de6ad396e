import math

from formcheck.joints import JointId, JointObservation, Point


def test_from_dict_defaults_and_unknown_names():
    obs = JointObservation.from_dict({
        "left_hip": {"x": 1, "y": 2},
        "left_knee": {"x": 3, "y": 4, "confidence": 0.7},
        "tail": {"x": 0, "y": 0},
        "left_ankle": {"y": 5},
    })
    assert obs.position(JointId.LEFT_HIP) == Point(1.0, 2.0)
    assert obs.confidence(JointId.LEFT_HIP) == 1.0
    assert obs.confidence(JointId.LEFT_KNEE) == 0.7
    assert obs.position(JointId.LEFT_ANKLE) is None
    assert len(obs.positions) == 2


def test_from_dict_huge_integers():
    obs = JointObservation.from_dict({
        "left_hip": {"x": 10 ** 400, "y": 2},
        "left_knee": {"x": 3, "y": 4, "confidence": 10 ** 400},
    })
    assert obs.position(JointId.LEFT_HIP) is None
    assert obs.confidence(JointId.LEFT_KNEE) == 0.0


def test_sanitized_clamps_and_drops():
    obs = JointObservation(
        positions={
            JointId.LEFT_HIP: Point(1.0, math.inf),
            JointId.LEFT_KNEE: Point(10 ** 400, 1.0),
            JointId.LEFT_ANKLE: Point(5.0, 6.0),
        },
        confidences={JointId.LEFT_HIP: float("nan"), JointId.LEFT_KNEE: 1.5, JointId.LEFT_ANKLE: -0.2},
    ).sanitized()
    assert set(obs.positions) == {JointId.LEFT_ANKLE}
    assert obs.confidence(JointId.LEFT_HIP) == 0.0
    assert obs.confidence(JointId.LEFT_KNEE) == 1.0
    assert obs.confidence(JointId.LEFT_ANKLE) == 0.0
