import math

import pytest

from physioai.core.data_types import BiometricSnapshot, JointStress, PoseLandmark as PL, StressLevel
from physioai.modules.biometrics import BiometricCalculator
from physioai.modules.form_evaluator import (
    DEFAULT_JOINTS, calculate_form_score, evaluate_form, signed_plank_hip_angle,
)

from conftest import PLANK_BODY, build_frame


def _evaluate(frame, exercise_id):
    snapshot = BiometricCalculator().calculate(frame)
    return evaluate_form(frame, exercise_id, snapshot), snapshot


def _messages(stresses):
    return {s.message for s in stresses if s.message}


def _levels(stresses, level):
    return [s for s in stresses if s.stress_level is level]


@pytest.mark.parametrize("elbow, level, message", [
    (60, StressLevel.BAD, 'Too deep!'),
    (120, StressLevel.WARNING, 'Go lower'),
    (170, StressLevel.GOOD, None),
])
def test_pushup_elbow_bands(elbow, level, message):
    stresses, _ = _evaluate(build_frame(elbow_angle=elbow), 'pushup')
    elbows = [s for s in stresses if s.joint_id in (PL.LEFT_ELBOW, PL.RIGHT_ELBOW)]

    assert len(elbows) == 2
    assert all(s.stress_level is level for s in elbows)
    assert all(s.message == message for s in elbows)


def test_pushup_score_counts_penalties_and_symmetry():
    stresses, snapshot = _evaluate(build_frame(elbow_angle=60), 'pushup')
    # two bad elbows, straight spine, perfect symmetry
    assert calculate_form_score(snapshot, stresses) == 100 - 30 + 10


def test_pushup_bent_back():
    frame = build_frame(overrides={PL.NOSE: (0.7, 0.45)})
    stresses, _ = _evaluate(frame, 'pushup')
    assert 'Keep back straight!' in _messages(stresses)


def test_squat_depth_and_uneven_weight():
    standing, _ = _evaluate(build_frame(), 'squat')
    assert _messages(standing) == {'Squat deeper'}

    theta = math.radians(100)
    knee_x, knee_y = 0.55, 0.9
    frame = build_frame(overrides={
        PL.RIGHT_ANKLE: (knee_x + 0.1 * math.sin(theta), knee_y - 0.1 * math.cos(theta)),
    })
    stresses, snapshot = _evaluate(frame, 'squat')
    assert snapshot.symmetry_scores['knee'] < 75
    assert 'Uneven weight distribution' in _messages(stresses)


def test_squat_uneven_weight_needs_both_knees_visible():
    frame = build_frame(hidden=(PL.RIGHT_KNEE,))
    stresses, _ = _evaluate(frame, 'squat')
    assert 'Uneven weight distribution' not in _messages(stresses)


def test_bicep_curl_shoulder_swing():
    frame = build_frame(overrides={PL.LEFT_ELBOW: (0.3, 0.6)})
    stresses, _ = _evaluate(frame, 'bicep-curl')
    assert 'Keep shoulders stable!' in _messages(stresses)

    steady, _ = _evaluate(build_frame(), 'bicep-curl')
    assert _levels(steady, StressLevel.BAD) == []


def test_plank_straight_body_is_good(plank_frame):
    stresses, snapshot = _evaluate(plank_frame, 'plank')
    assert _levels(stresses, StressLevel.BAD) == []
    assert _levels(stresses, StressLevel.WARNING) == []
    assert calculate_form_score(snapshot, stresses) == 100


@pytest.mark.parametrize("hip_y, message", [
    (0.56, 'Hips sagging! Engage your core.'),
    (0.44, 'Hips too high! Keep body straight.'),
])
def test_plank_hip_direction(hip_y, message):
    body = {**PLANK_BODY, PL.LEFT_HIP: (0.5, hip_y), PL.RIGHT_HIP: (0.5, hip_y)}
    stresses, _ = _evaluate(build_frame(body=body), 'plank')
    assert message in _messages(stresses)


def test_signed_plank_hip_angle(plank_frame):
    assert signed_plank_hip_angle(plank_frame) == pytest.approx(180.0)

    body = {**PLANK_BODY, PL.LEFT_HIP: (0.5, 0.56)}
    assert signed_plank_hip_angle(build_frame(body=body)) > 200


def test_exercise_without_rules_marks_default_joints_good():
    stresses, _ = _evaluate(build_frame(), 'lateral-raise')
    assert [s.joint_id for s in stresses] == list(DEFAULT_JOINTS)
    assert all(s.stress_level is StressLevel.GOOD for s in stresses)


@pytest.mark.parametrize("levels, symmetry, expected", [
    ([], 100, 100),
    ([StressLevel.BAD, StressLevel.WARNING], 100, 90),
    ([StressLevel.BAD, StressLevel.WARNING], 50, 80),
    ([StressLevel.BAD], 53, 86),
    ([StressLevel.BAD] * 10, 100, 0),
    ([StressLevel.GOOD] * 3, 0, 90),
])
def test_form_score(levels, symmetry, expected):
    stresses = [JointStress(PL.LEFT_KNEE, level) for level in levels]
    snapshot = BiometricSnapshot(overall_symmetry=symmetry)
    assert calculate_form_score(snapshot, stresses) == expected
