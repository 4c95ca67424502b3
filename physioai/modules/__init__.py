"""
Modules Package for PHYSIOAI.

Contains the analysis stages: pain detection, calibration, biometrics,
form evaluation, exercise kinds and the exercise engine.
"""

from .pain_detector import PainDetector, PainThresholdPolicy, DEFAULT_POLICY, analyze_pain_expression
from .calibrator import FaceCalibrator, CalibrationState
from .biometrics import BiometricCalculator, calculate_biometrics
from .form_evaluator import evaluate_form, calculate_form_score
from .exercise_kinds import ExerciseKind, get_exercise_kind
from .exercise_engine import ExerciseEngine

__all__ = [
    # Pain Detection
    'PainDetector', 'PainThresholdPolicy', 'DEFAULT_POLICY', 'analyze_pain_expression',

    # Calibration
    'FaceCalibrator', 'CalibrationState',

    # Biometrics
    'BiometricCalculator', 'calculate_biometrics',

    # Form
    'evaluate_form', 'calculate_form_score',

    # Engine
    'ExerciseKind', 'get_exercise_kind', 'ExerciseEngine',
]
