import pytest

from physioai.core.data_types import (
    DEFAULT_BASELINE, CalibrationBaseline, IntensityLevel, PoseFrame, PoseLandmark as PL,
    RecommendedAction,
)
from physioai.modules.pain_detector import PainDetector, analyze_pain_expression

from conftest import PAIN_FACE, build_frame


@pytest.fixture
def detector():
    return PainDetector()


def test_neutral_face_ratios(detector, neutral_frame):
    ratios = detector.compute_face_ratios(neutral_frame)

    assert ratios.inter_eye_distance == pytest.approx(0.08)
    assert ratios.eye_nose_ratio == pytest.approx(0.8125)
    assert ratios.eye_narrowing_ratio == pytest.approx(0.375)
    assert ratios.mouth_nose_ratio == pytest.approx(0.92913, abs=1e-4)
    assert ratios.mouth_width_ratio == pytest.approx(0.625)


def test_ratios_do_not_depend_on_camera_distance(detector):
    near = detector.compute_face_ratios(build_frame())
    scaled = PoseFrame([
        type(lm)(x=lm.x * 0.5, y=lm.y * 0.5, z=lm.z, visibility=lm.visibility)
        for lm in build_frame().landmarks
    ])
    far = detector.compute_face_ratios(scaled)

    assert far.eye_nose_ratio == pytest.approx(near.eye_nose_ratio)
    assert far.mouth_width_ratio == pytest.approx(near.mouth_width_ratio)


def test_neutral_face_is_no_pain(detector, neutral_frame):
    analysis = detector.analyze(neutral_frame)

    assert analysis.pain_score_raw == 0.0
    assert not analysis.pain_detected
    assert analysis.primary_action_units == []
    assert analysis.intensity_level is IntensityLevel.LOW
    assert analysis.recommended_action is RecommendedAction.CONTINUE
    assert analysis.confidence_score == 1.0


def test_grimace_is_critical_without_baseline(detector, pain_frame):
    analysis = detector.analyze(pain_frame)

    assert analysis.pain_score_raw == pytest.approx(10.0)
    assert analysis.pain_detected
    assert analysis.intensity_level is IntensityLevel.CRITICAL
    assert analysis.recommended_action is RecommendedAction.STOP
    assert len(analysis.primary_action_units) == 4


def test_grimace_is_critical_against_personal_baseline(detector, neutral_frame, pain_frame):
    ratios = detector.compute_face_ratios(neutral_frame)
    baseline = CalibrationBaseline.from_samples([ratios])

    assert detector.analyze(neutral_frame, baseline).pain_score_raw == 0.0
    assert detector.analyze(pain_frame, baseline).pain_score_raw == pytest.approx(10.0)


def test_baseline_threshold_uses_relaxation_factor(detector):
    rule = detector.policy.rules[0]
    assert rule.threshold(None) == rule.population_threshold
    assert rule.threshold(DEFAULT_BASELINE) == pytest.approx(DEFAULT_BASELINE.eye_nose_ratio * 0.88)


def test_default_baseline_reproduces_population_thresholds(detector):
    for rule in detector.policy.rules:
        assert rule.threshold(DEFAULT_BASELINE) == pytest.approx(rule.population_threshold)


def test_hidden_face_is_no_pain(detector):
    frame = build_frame(face=PAIN_FACE, hidden=(PL.MOUTH_LEFT,))

    assert detector.compute_face_ratios(frame) is None
    analysis = detector.analyze(frame)
    assert analysis.pain_score_raw == 0.0
    assert not analysis.pain_detected
    assert analysis.confidence_score == 0.0


def test_short_frame_is_no_pain(detector):
    frame = PoseFrame(build_frame().landmarks[:5])
    assert detector.analyze(frame).pain_score_raw == 0.0


@pytest.mark.parametrize("raw, level, action", [
    (9.5, IntensityLevel.CRITICAL, RecommendedAction.STOP),
    (8.0, IntensityLevel.HIGH, RecommendedAction.STOP),
    (5.0, IntensityLevel.MODERATE, RecommendedAction.WARNING),
    (4.0, IntensityLevel.LOW, RecommendedAction.CONTINUE),
])
def test_classification_bands(detector, raw, level, action):
    assert detector.classify(raw) == (level, action)


def test_intensity_is_capped(detector):
    rule = detector.policy.rules[3]
    assert detector._intensity(rule, 10.0, 1.0) == pytest.approx(1.5)
    assert detector._intensity(rule, 1.04, 1.0) == pytest.approx(1.1)
    assert detector._intensity(rule, 0.9, 1.0) == 0.0


def test_analyze_pain_expression_scale(pain_frame, neutral_frame):
    assert analyze_pain_expression(pain_frame) == pytest.approx(100.0)
    assert analyze_pain_expression(neutral_frame) == 0.0
