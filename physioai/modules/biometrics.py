"""
Biometrics Module for PHYSIOAI.

Turns one pose frame (optionally with the previous one) into joint angles,
angular velocities, left/right symmetry and a face-based pain estimate.
"""

from typing import Dict, Optional, Tuple

from ..core.data_types import (
    UNRELIABLE_ANGLE, BiometricSnapshot, CalibrationBaseline, PainAnalysis,
    PoseFrame, PoseLandmark as PL,
)
from ..core.kinematics import (
    calculate_angle_3d, calculate_angular_velocity, calculate_symmetry_score,
    midpoint, round_half_up,
)
from .pain_detector import PainDetector


# name -> (proximal, vertex, distal)
JOINT_DEFINITIONS: Dict[str, Tuple[PL, PL, PL]] = {
    'left_elbow': (PL.LEFT_SHOULDER, PL.LEFT_ELBOW, PL.LEFT_WRIST),
    'right_elbow': (PL.RIGHT_SHOULDER, PL.RIGHT_ELBOW, PL.RIGHT_WRIST),
    'left_shoulder': (PL.LEFT_HIP, PL.LEFT_SHOULDER, PL.LEFT_ELBOW),
    'right_shoulder': (PL.RIGHT_HIP, PL.RIGHT_SHOULDER, PL.RIGHT_ELBOW),
    'left_knee': (PL.LEFT_HIP, PL.LEFT_KNEE, PL.LEFT_ANKLE),
    'right_knee': (PL.RIGHT_HIP, PL.RIGHT_KNEE, PL.RIGHT_ANKLE),
    'left_hip': (PL.LEFT_SHOULDER, PL.LEFT_HIP, PL.LEFT_KNEE),
    'right_hip': (PL.RIGHT_SHOULDER, PL.RIGHT_HIP, PL.RIGHT_KNEE),
}

SPINE_LANDMARKS = (PL.NOSE, PL.LEFT_SHOULDER, PL.RIGHT_SHOULDER, PL.LEFT_HIP, PL.RIGHT_HIP)

SYMMETRY_PAIRS = ('elbow', 'shoulder', 'knee', 'hip')


def is_reliable(angle: Optional[float]) -> bool:
    return angle is not None and angle != UNRELIABLE_ANGLE


def joint_angle(frame: PoseFrame, joint: str, visibility_threshold: float = 0.5) -> float:
    """
    Angle of a named joint, UNRELIABLE_ANGLE when any of its three
    landmarks is below the visibility threshold.
    """
    indices = JOINT_DEFINITIONS[joint]
    if frame.min_visibility(indices) < visibility_threshold:
        return UNRELIABLE_ANGLE
    a, b, c = (frame[i] for i in indices)
    return calculate_angle_3d(a, b, c)


def spine_angle(frame: PoseFrame, visibility_threshold: float = 0.5) -> float:
    """Angle nose / shoulder midpoint / hip midpoint."""
    if frame.min_visibility(SPINE_LANDMARKS) < visibility_threshold:
        return UNRELIABLE_ANGLE
    shoulder_mid = midpoint(frame[PL.LEFT_SHOULDER], frame[PL.RIGHT_SHOULDER])
    hip_mid = midpoint(frame[PL.LEFT_HIP], frame[PL.RIGHT_HIP])
    return calculate_angle_3d(frame[PL.NOSE], shoulder_mid, hip_mid)


class BiometricCalculator:
    """
    Per-frame biomechanical calculator.

    Example:
        >>> calculator = BiometricCalculator()
        >>> snapshot = calculator.calculate(frame, previous, delta_time_ms=40)
        >>> snapshot.joint_angles['left_knee']
    """

    def __init__(self, pain_detector: Optional[PainDetector] = None, visibility_threshold: float = 0.5):
        self._pain_detector = pain_detector or PainDetector()
        self._visibility_threshold = visibility_threshold

    @property
    def pain_detector(self) -> PainDetector:
        return self._pain_detector

    def joint_angles(self, frame: PoseFrame) -> Dict[str, float]:
        angles = {name: joint_angle(frame, name, self._visibility_threshold) for name in JOINT_DEFINITIONS}
        angles['spine'] = spine_angle(frame, self._visibility_threshold)
        return angles

    def analyze_pain(self, frame: PoseFrame, baseline: Optional[CalibrationBaseline] = None) -> PainAnalysis:
        return self._pain_detector.analyze(frame, baseline)

    def calculate(
        self,
        frame: PoseFrame,
        previous_frame: Optional[PoseFrame] = None,
        delta_time_ms: Optional[float] = None,
        baseline: Optional[CalibrationBaseline] = None,
    ) -> BiometricSnapshot:
        """
        Compute the biometric snapshot of a frame.

        Args:
            frame: Current frame (33 landmarks).
            previous_frame: Previous frame, enables angular velocities.
            delta_time_ms: Time since previous_frame.
            baseline: Neutral-face baseline for the pain estimate.

        Returns:
            BiometricSnapshot
        """
        angles = self.joint_angles(frame)

        velocities = {}
        if previous_frame is not None and delta_time_ms is not None and delta_time_ms > 0:
            previous_angles = self.joint_angles(previous_frame)
            for name, angle in angles.items():
                previous = previous_angles.get(name)
                if is_reliable(angle) and is_reliable(previous):
                    velocities[name] = calculate_angular_velocity(angle, previous, delta_time_ms)

        symmetry = {}
        for group in SYMMETRY_PAIRS:
            left, right = angles[f'left_{group}'], angles[f'right_{group}']
            # A pair with an unobserved side says nothing about symmetry
            if is_reliable(left) and is_reliable(right):
                symmetry[group] = calculate_symmetry_score(left, right)

        overall = round_half_up(sum(symmetry.values()) / len(symmetry)) if symmetry else 100

        return BiometricSnapshot(
            joint_angles=angles,
            angular_velocities=velocities,
            symmetry_scores=symmetry,
            overall_symmetry=overall,
            pain_analysis=self.analyze_pain(frame, baseline),
        )


def calculate_biometrics(
    frame: PoseFrame,
    previous_frame: Optional[PoseFrame] = None,
    delta_time_ms: Optional[float] = None,
    baseline: Optional[CalibrationBaseline] = None,
) -> BiometricSnapshot:
    """Module-level shortcut using a default calculator."""
    return BiometricCalculator().calculate(frame, previous_frame, delta_time_ms, baseline)
