import math
from dataclasses import replace
from typing import Dict, List, Optional, Tuple

import pytest

from physioai.core.config import Settings
from physioai.core.data_types import Landmark, PoseFrame, PoseLandmark as PL
from physioai.modules.biometrics import BiometricCalculator

NEUTRAL_FACE: Dict[PL, Tuple[float, float]] = {
    PL.NOSE: (0.5, 0.36),
    PL.LEFT_EYE_INNER: (0.475, 0.30),
    PL.LEFT_EYE: (0.46, 0.30),
    PL.LEFT_EYE_OUTER: (0.445, 0.30),
    PL.RIGHT_EYE_INNER: (0.525, 0.30),
    PL.RIGHT_EYE: (0.54, 0.30),
    PL.RIGHT_EYE_OUTER: (0.555, 0.30),
    PL.LEFT_EAR: (0.43, 0.31),
    PL.RIGHT_EAR: (0.57, 0.31),
    PL.MOUTH_LEFT: (0.475, 0.43),
    PL.MOUTH_RIGHT: (0.525, 0.43),
}

# Squinting, nose wrinkled, mouth stretched
PAIN_FACE: Dict[PL, Tuple[float, float]] = {
    **NEUTRAL_FACE,
    PL.NOSE: (0.5, 0.325),
    PL.LEFT_EYE_OUTER: (0.465, 0.30),
    PL.RIGHT_EYE_OUTER: (0.535, 0.30),
    PL.MOUTH_LEFT: (0.45, 0.355),
    PL.MOUTH_RIGHT: (0.55, 0.355),
}

STANDING_BODY: Dict[PL, Tuple[float, float]] = {
    PL.LEFT_SHOULDER: (0.4, 0.55),
    PL.RIGHT_SHOULDER: (0.6, 0.55),
    PL.LEFT_ELBOW: (0.4, 0.65),
    PL.RIGHT_ELBOW: (0.6, 0.65),
    PL.LEFT_HIP: (0.45, 0.8),
    PL.RIGHT_HIP: (0.55, 0.8),
    PL.LEFT_KNEE: (0.45, 0.9),
    PL.RIGHT_KNEE: (0.55, 0.9),
    PL.LEFT_ANKLE: (0.45, 1.0),
    PL.RIGHT_ANKLE: (0.55, 1.0),
    PL.LEFT_HEEL: (0.45, 1.02),
    PL.RIGHT_HEEL: (0.55, 1.02),
    PL.LEFT_FOOT_INDEX: (0.47, 1.03),
    PL.RIGHT_FOOT_INDEX: (0.53, 1.03),
}

PLANK_BODY: Dict[PL, Tuple[float, float]] = {
    PL.LEFT_SHOULDER: (0.3, 0.5),
    PL.RIGHT_SHOULDER: (0.3, 0.5),
    PL.LEFT_ELBOW: (0.3, 0.6),
    PL.RIGHT_ELBOW: (0.3, 0.6),
    PL.LEFT_WRIST: (0.35, 0.6),
    PL.RIGHT_WRIST: (0.35, 0.6),
    PL.LEFT_HIP: (0.5, 0.5),
    PL.RIGHT_HIP: (0.5, 0.5),
    PL.LEFT_KNEE: (0.6, 0.5),
    PL.RIGHT_KNEE: (0.6, 0.5),
    PL.LEFT_ANKLE: (0.7, 0.5),
    PL.RIGHT_ANKLE: (0.7, 0.5),
    PL.LEFT_HEEL: (0.7, 0.48),
    PL.RIGHT_HEEL: (0.7, 0.48),
    PL.LEFT_FOOT_INDEX: (0.72, 0.55),
    PL.RIGHT_FOOT_INDEX: (0.72, 0.55),
}

HAND_POINTS = {
    'left': (PL.LEFT_WRIST, PL.LEFT_PINKY, PL.LEFT_INDEX, PL.LEFT_THUMB),
    'right': (PL.RIGHT_WRIST, PL.RIGHT_PINKY, PL.RIGHT_INDEX, PL.RIGHT_THUMB),
}


def _wrists_for(elbow_angle: float) -> Dict[PL, Tuple[float, float]]:
    """Wrists placed so that both shoulder-elbow-wrist angles equal elbow_angle."""
    theta = math.radians(elbow_angle)
    points = {}
    for side, sign in (('left', 1.0), ('right', -1.0)):
        ex, ey = STANDING_BODY[PL.LEFT_ELBOW if side == 'left' else PL.RIGHT_ELBOW]
        wrist = (ex + sign * 0.1 * math.sin(theta), ey - 0.1 * math.cos(theta))
        for index in HAND_POINTS[side]:
            points[index] = wrist
    return points


def build_landmarks(
    elbow_angle: float = 170.0,
    face: Optional[Dict[PL, Tuple[float, float]]] = None,
    body: Optional[Dict[PL, Tuple[float, float]]] = None,
    hidden: Tuple[int, ...] = (),
    overrides: Optional[Dict[PL, Tuple[float, float]]] = None,
) -> List[Landmark]:
    """
    33 visible landmarks of a standing person with a controllable elbow angle.

    Args:
        elbow_angle: Both shoulder-elbow-wrist angles (degrees).
        face: Face coordinates, neutral by default.
        body: Body coordinates replacing the standing pose.
        hidden: Indices reported with visibility 0.1.
        overrides: Extra coordinates applied last.
    """
    points: Dict[int, Tuple[float, float]] = {}
    points.update(face or NEUTRAL_FACE)
    if body is None:
        points.update(STANDING_BODY)
        points.update(_wrists_for(elbow_angle))
    else:
        points.update(body)
    points.update(overrides or {})

    landmarks = []
    for index in range(33):
        x, y = points.get(index, (0.5, 0.5))
        visibility = 0.1 if index in hidden else 1.0
        landmarks.append(Landmark(x=x, y=y, z=0.0, visibility=visibility))
    return landmarks


def build_frame(timestamp_ms: float = 0.0, **kwargs) -> PoseFrame:
    return PoseFrame(build_landmarks(**kwargs), timestamp_ms)


def calibrate(engine, start_ms: float = 0.0, step_ms: float = 40.0, duration_ms: float = 3000.0, **kwargs) -> float:
    """Feed neutral frames until calibration completes; returns the next timestamp."""
    timestamp = start_ms
    while timestamp <= start_ms + duration_ms:
        engine.process_frame(build_landmarks(**kwargs), timestamp)
        timestamp += step_ms
    assert not engine.get_state().is_calibrating
    return timestamp


def pushup_cycle(start_ms: float, step_ms: float = 40.0):
    """One push-up: 20 frames 170°→60°, 5 at the bottom, 20 back up, 15 at the top."""
    down = [170 - 110 * i / 19 for i in range(20)]
    bottom = [60.0] * 5
    up = [60 + 110 * i / 19 for i in range(20)]
    top = [170.0] * 15

    timestamp = start_ms
    for angle in down + bottom + up + top:
        yield build_landmarks(elbow_angle=angle), timestamp
        timestamp += step_ms


class ScriptedPainCalculator(BiometricCalculator):
    """Biometric calculator whose raw pain score is set by the test."""

    def __init__(self, raw: Optional[float] = None):
        super().__init__()
        self.raw = raw

    def analyze_pain(self, frame, baseline=None):
        analysis = super().analyze_pain(frame, baseline)
        if self.raw is None:
            return analysis
        return replace(analysis, pain_score_raw=self.raw)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def neutral_frame():
    return build_frame()


@pytest.fixture
def pain_frame():
    return build_frame(face=PAIN_FACE)


@pytest.fixture
def plank_frame():
    return build_frame(body=PLANK_BODY)


@pytest.fixture
def test_settings():
    return Settings()


@pytest.fixture
def unsmoothed_settings():
    return Settings(SMOOTHING_WINDOW=1)


@pytest.fixture
def clock():
    return FakeClock()
