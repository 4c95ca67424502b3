"""
Form Evaluation Module for PHYSIOAI.

Exercise-specific rule sets that grade joints as good / warning / bad from
the current biometric snapshot, and the additive 0-100 form score.

Scoring (kept simple so scores stay comparable between sessions):
    score = 100 - 15 × bad - 5 × warning + (overall_symmetry - 50) / 5
    clamped to [0, 100]
"""

from typing import Callable, Dict, List, Optional, Sequence

from ..core.data_types import (
    BiometricSnapshot, JointStress, PoseFrame, PoseLandmark as PL, StressLevel,
)
from ..core.kinematics import calculate_angle_3d, round_half_up
from .biometrics import is_reliable

BAD_PENALTY = 15
WARNING_PENALTY = 5

DEFAULT_JOINTS = (
    PL.LEFT_SHOULDER, PL.RIGHT_SHOULDER,
    PL.LEFT_ELBOW, PL.RIGHT_ELBOW,
    PL.LEFT_HIP, PL.RIGHT_HIP,
    PL.LEFT_KNEE, PL.RIGHT_KNEE,
)

FormRule = Callable[[PoseFrame, BiometricSnapshot], List[JointStress]]


def _mean_reliable(values: Sequence[float]) -> Optional[float]:
    reliable = [v for v in values if is_reliable(v)]
    if not reliable:
        return None
    return sum(reliable) / len(reliable)


def _pair(left: PL, right: PL, level: StressLevel, message: Optional[str] = None) -> List[JointStress]:
    return [JointStress(left, level, message), JointStress(right, level, message)]


def signed_plank_hip_angle(frame: PoseFrame, side: str = 'left') -> float:
    """
    Shoulder-hip-knee angle reported on a 0-360 scale.

    A hip that drops below the shoulder-knee line (image y grows downwards)
    is reported as 360 - angle, so sagging reads above 180 and piking
    below it.
    """
    prefix = 'LEFT' if side == 'left' else 'RIGHT'
    shoulder = frame[PL[f'{prefix}_SHOULDER']]
    hip = frame[PL[f'{prefix}_HIP']]
    knee = frame[PL[f'{prefix}_KNEE']]

    angle = calculate_angle_3d(shoulder, hip, knee)

    dx = knee.x - shoulder.x
    if abs(dx) < 1e-6:
        return angle
    t = (hip.x - shoulder.x) / dx
    line_y = shoulder.y + t * (knee.y - shoulder.y)
    if hip.y > line_y:
        return 360.0 - angle
    return angle


def evaluate_pushup(frame: PoseFrame, biometrics: BiometricSnapshot) -> List[JointStress]:
    angles = biometrics.joint_angles
    stresses = []

    avg_elbow = _mean_reliable([angles['left_elbow'], angles['right_elbow']])
    if avg_elbow is not None:
        if avg_elbow < 70:
            stresses += _pair(PL.LEFT_ELBOW, PL.RIGHT_ELBOW, StressLevel.BAD, 'Too deep!')
        elif avg_elbow > 160:
            stresses += _pair(PL.LEFT_ELBOW, PL.RIGHT_ELBOW, StressLevel.GOOD)
        else:
            stresses += _pair(PL.LEFT_ELBOW, PL.RIGHT_ELBOW, StressLevel.WARNING, 'Go lower')

    spine = angles['spine']
    if is_reliable(spine):
        if spine < 160:
            stresses.append(JointStress(PL.LEFT_HIP, StressLevel.BAD, 'Keep back straight!'))
        else:
            stresses.append(JointStress(PL.LEFT_HIP, StressLevel.GOOD))

    return stresses


def evaluate_squat(frame: PoseFrame, biometrics: BiometricSnapshot) -> List[JointStress]:
    angles = biometrics.joint_angles
    stresses = []

    left_knee, right_knee = angles['left_knee'], angles['right_knee']
    left_vis = frame[PL.LEFT_KNEE].confidence
    right_vis = frame[PL.RIGHT_KNEE].confidence

    avg_knee = _mean_reliable([left_knee, right_knee])
    if avg_knee is not None:
        if avg_knee < 80:
            stresses += _pair(PL.LEFT_KNEE, PL.RIGHT_KNEE, StressLevel.WARNING, 'Too deep for beginners')
        elif avg_knee > 140:
            stresses += _pair(PL.LEFT_KNEE, PL.RIGHT_KNEE, StressLevel.WARNING, 'Squat deeper')
        else:
            stresses += _pair(PL.LEFT_KNEE, PL.RIGHT_KNEE, StressLevel.GOOD)

    knee_symmetry = biometrics.symmetry_scores.get('knee')
    if left_vis > 0.6 and right_vis > 0.6 and knee_symmetry is not None and knee_symmetry < 75:
        stresses.append(JointStress(PL.LEFT_KNEE, StressLevel.BAD, 'Uneven weight distribution'))

    return stresses


def evaluate_bicep_curl(frame: PoseFrame, biometrics: BiometricSnapshot) -> List[JointStress]:
    angles = biometrics.joint_angles
    stresses = []

    left, right = angles['left_shoulder'], angles['right_shoulder']
    if is_reliable(left) and is_reliable(right):
        if abs(left - right) > 20:
            stresses += _pair(PL.LEFT_SHOULDER, PL.RIGHT_SHOULDER, StressLevel.BAD, 'Keep shoulders stable!')
        else:
            stresses += _pair(PL.LEFT_SHOULDER, PL.RIGHT_SHOULDER, StressLevel.GOOD)

    stresses += _pair(PL.LEFT_ELBOW, PL.RIGHT_ELBOW, StressLevel.GOOD)
    return stresses


def evaluate_plank(frame: PoseFrame, biometrics: BiometricSnapshot) -> List[JointStress]:
    angles = biometrics.joint_angles
    stresses = []

    # 1. Hip alignment, signed so that sagging and piking are told apart
    hips = []
    if is_reliable(angles['left_hip']):
        hips.append(signed_plank_hip_angle(frame, 'left'))
    if is_reliable(angles['right_hip']):
        hips.append(signed_plank_hip_angle(frame, 'right'))
    if hips:
        avg_hip = sum(hips) / len(hips)
        if avg_hip < 160:
            stresses += _pair(PL.LEFT_HIP, PL.RIGHT_HIP, StressLevel.BAD, 'Hips too high! Keep body straight.')
        elif avg_hip > 200:
            stresses += _pair(PL.LEFT_HIP, PL.RIGHT_HIP, StressLevel.BAD, 'Hips sagging! Engage your core.')
        else:
            stresses += _pair(PL.LEFT_HIP, PL.RIGHT_HIP, StressLevel.GOOD)

    # 2. Knee extension
    avg_knee = _mean_reliable([angles['left_knee'], angles['right_knee']])
    if avg_knee is not None:
        if avg_knee < 160:
            stresses.append(JointStress(PL.LEFT_KNEE, StressLevel.WARNING, 'Keep your legs straight'))
        else:
            stresses.append(JointStress(PL.LEFT_KNEE, StressLevel.GOOD))

    # 3. Shoulders stacked over elbows (~90°)
    avg_shoulder = _mean_reliable([angles['left_shoulder'], angles['right_shoulder']])
    if avg_shoulder is not None:
        if avg_shoulder > 110 or avg_shoulder < 70:
            stresses.append(JointStress(PL.LEFT_SHOULDER, StressLevel.WARNING, 'Shoulders over elbows'))
        else:
            stresses.append(JointStress(PL.LEFT_SHOULDER, StressLevel.GOOD))

    return stresses


def evaluate_default(frame: PoseFrame, biometrics: BiometricSnapshot) -> List[JointStress]:
    return [JointStress(joint, StressLevel.GOOD) for joint in DEFAULT_JOINTS]


FORM_RULES: Dict[str, FormRule] = {
    'pushup': evaluate_pushup,
    'squat': evaluate_squat,
    'bicep-curl': evaluate_bicep_curl,
    'plank': evaluate_plank,
}


def get_form_rule(exercise_id: str) -> FormRule:
    """Rule set of an exercise; exercises without one get evaluate_default."""
    return FORM_RULES.get(exercise_id, evaluate_default)


def evaluate_form(frame: PoseFrame, exercise_id: str, biometrics: BiometricSnapshot) -> List[JointStress]:
    """
    Grade the joints of interest for the current frame.

    Args:
        frame: Current pose frame.
        exercise_id: Catalog id of the exercise.
        biometrics: Snapshot of the same frame.

    Returns:
        List of JointStress; a joint may appear more than once.
    """
    return get_form_rule(exercise_id)(frame, biometrics)


def calculate_form_score(biometrics: BiometricSnapshot, joint_stresses: Sequence[JointStress]) -> int:
    """Additive 0-100 form score."""
    score = 100.0
    for stress in joint_stresses:
        if stress.stress_level is StressLevel.BAD:
            score -= BAD_PENALTY
        elif stress.stress_level is StressLevel.WARNING:
            score -= WARNING_PENALTY

    score += (biometrics.overall_symmetry - 50) / 5

    return max(0, min(100, round_half_up(score)))
