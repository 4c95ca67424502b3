"""
Core Module for PHYSIOAI.

Contains the data types, geometry and sequence comparison shared by the
analysis modules.
"""

from .config import Settings, settings
from .data_types import (
    UNRELIABLE_ANGLE, LANDMARK_COUNT, FACE_LANDMARKS, DEFAULT_BASELINE,
    PoseLandmark, ExercisePhase, StressLevel, IntensityLevel, RecommendedAction,
    SafetyStatus, SystemCommand, Landmark, PoseFrame, FaceRatios, CalibrationBaseline,
    PainAnalysis, JointStress, BiometricSnapshot, SafetyLog, ExerciseState,
)
from .kinematics import (
    subtract, dot, magnitude, normalize, midpoint, calculate_distance_3d,
    calculate_angle_3d, calculate_angular_velocity, calculate_symmetry_score,
    round_half_up,
)
from .dtw_analysis import (
    DTWResult, GoldStandardFrame, GoldStandardSequence, StreamingDTW,
    compute_dtw, compare_angle_sequences, preprocess_sequence, evaluate_rhythm_quality,
)

__all__ = [
    # Config
    'Settings', 'settings',

    # Data types
    'UNRELIABLE_ANGLE', 'LANDMARK_COUNT', 'FACE_LANDMARKS', 'DEFAULT_BASELINE',
    'PoseLandmark', 'ExercisePhase', 'StressLevel', 'IntensityLevel', 'RecommendedAction',
    'SafetyStatus', 'SystemCommand', 'Landmark', 'PoseFrame', 'FaceRatios', 'CalibrationBaseline',
    'PainAnalysis', 'JointStress', 'BiometricSnapshot', 'SafetyLog', 'ExerciseState',

    # Kinematics
    'subtract', 'dot', 'magnitude', 'normalize', 'midpoint', 'calculate_distance_3d',
    'calculate_angle_3d', 'calculate_angular_velocity', 'calculate_symmetry_score',
    'round_half_up',

    # DTW
    'DTWResult', 'GoldStandardFrame', 'GoldStandardSequence', 'StreamingDTW',
    'compute_dtw', 'compare_angle_sequences', 'preprocess_sequence', 'evaluate_rhythm_quality',
]
