import numpy as np
import pytest

from physioai.core.data_types import DEFAULT_BASELINE, PoseLandmark as PL
from physioai.modules.calibrator import CalibrationState, FaceCalibrator

from conftest import NEUTRAL_FACE, build_frame


def _run(calibrator, frames):
    result = None
    for frame in frames:
        result = calibrator.update_calibration(frame)
    return result


def test_baseline_is_mean_of_samples():
    calibrator = FaceCalibrator(duration_ms=3000)
    wide_mouth = {**NEUTRAL_FACE, PL.MOUTH_LEFT: (0.465, 0.43), PL.MOUTH_RIGHT: (0.535, 0.43)}
    frames = [
        build_frame(timestamp_ms=t, face=wide_mouth if i % 2 else None)
        for i, t in enumerate(range(0, 3001, 40))
    ]

    baseline = _run(calibrator, frames)

    samples = [calibrator.pain_detector.compute_face_ratios(f) for f in frames]
    assert calibrator.is_complete
    assert baseline.mouth_width_ratio == pytest.approx(np.mean([s.mouth_width_ratio for s in samples]))
    assert baseline.eye_nose_ratio == pytest.approx(np.mean([s.eye_nose_ratio for s in samples]))
    assert len(calibrator.samples) == len(frames)


def test_progress_and_completion():
    calibrator = FaceCalibrator(duration_ms=1000)
    assert calibrator.state == CalibrationState.IDLE

    assert calibrator.update_calibration(build_frame(timestamp_ms=500)) is None
    assert calibrator.state == CalibrationState.COLLECTING
    assert calibrator.progress == 0.0

    calibrator.update_calibration(build_frame(timestamp_ms=1000))
    assert calibrator.progress == pytest.approx(0.5)

    assert calibrator.update_calibration(build_frame(timestamp_ms=1500)) is not None
    assert calibrator.progress == 1.0


def test_frames_without_face_are_skipped():
    calibrator = FaceCalibrator(duration_ms=200)
    frames = [
        build_frame(timestamp_ms=0),
        build_frame(timestamp_ms=100, hidden=(PL.NOSE,)),
        build_frame(timestamp_ms=200),
    ]
    _run(calibrator, frames)

    result = calibrator.get_calibration_result()
    assert result['samples'] == 2
    assert result['skipped_frames'] == 1
    assert not result['used_default']


def test_no_valid_sample_uses_default_baseline():
    calibrator = FaceCalibrator(duration_ms=200)
    frames = [build_frame(timestamp_ms=t, hidden=(PL.LEFT_EYE,)) for t in (0, 100, 200)]

    assert _run(calibrator, frames) == DEFAULT_BASELINE
    assert calibrator.used_default


def test_default_baseline_reproduces_population_thresholds():
    for rule in FaceCalibrator().pain_detector.policy.rules:
        assert rule.threshold(DEFAULT_BASELINE) == pytest.approx(rule.population_threshold, abs=0.01)


def test_reset():
    calibrator = FaceCalibrator(duration_ms=100)
    _run(calibrator, [build_frame(timestamp_ms=0), build_frame(timestamp_ms=100)])
    assert calibrator.is_complete

    calibrator.reset()
    assert calibrator.state == CalibrationState.IDLE
    assert calibrator.samples == []
    assert calibrator.baseline is None
