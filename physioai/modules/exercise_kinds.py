"""
Exercise Kinds Module for PHYSIOAI.

Each exercise kind knows three things about its exercise:
    - where its primary angle comes from
    - how that angle moves the rep state machine (thresholds from the
      catalog entry, widened by a hysteresis band)
    - where the peak-exertion point of its cycle lies, so facial strain
      there is read as effort instead of pain

Rep cycles:
    descend/ascend   IDLE ─► DOWN ─► UP (rep) ─► COMPLETE ─► DOWN ...
    flexion          IDLE ─► DOWN (curled) ─► UP (rep, extended) ...
    raise/lower      IDLE ─► UP ─► DOWN (rep) ─► COMPLETE ─► UP ...
    hold             IDLE ⇄ HOLD (time accumulates while in HOLD)

The kind is picked once when the engine is built (see get_exercise_kind).

Author: PHYSIOAI Team
Version: 1.0.0
"""

import math
from typing import Callable, Dict, Optional, Sequence, Tuple

from ..core.data_types import (
    UNRELIABLE_ANGLE, BiometricSnapshot, ExercisePhase, PoseFrame, PoseLandmark as PL,
)
from ..core.kinematics import calculate_angle_3d
from ..schemas.sche_exercise import ExerciseDefinition
from .biometrics import is_reliable

AngleSource = Callable[[PoseFrame, BiometricSnapshot, float], float]

PhaseProposal = Tuple[ExercisePhase, bool]


# ==================== PRIMARY ANGLE SOURCES ====================

def _mean_or_unreliable(values: Sequence[float]) -> float:
    reliable = [v for v in values if is_reliable(v)]
    if not reliable:
        return UNRELIABLE_ANGLE
    return sum(reliable) / len(reliable)


def average_elbow(frame: PoseFrame, biometrics: BiometricSnapshot, visibility_threshold: float = 0.5) -> float:
    angles = biometrics.joint_angles
    return _mean_or_unreliable([angles['left_elbow'], angles['right_elbow']])


def average_shoulder(frame: PoseFrame, biometrics: BiometricSnapshot, visibility_threshold: float = 0.5) -> float:
    angles = biometrics.joint_angles
    return _mean_or_unreliable([angles['left_shoulder'], angles['right_shoulder']])


def robust_knee(frame: PoseFrame, biometrics: BiometricSnapshot, visibility_threshold: float = 0.5) -> float:
    """Knee angle weighted by knee visibility; one hidden leg does not drag the average."""
    angles = biometrics.joint_angles
    weighted = []
    for side, knee in (('left', PL.LEFT_KNEE), ('right', PL.RIGHT_KNEE)):
        angle = angles[f'{side}_knee']
        if is_reliable(angle):
            weighted.append((angle, frame[knee].confidence))

    if not weighted:
        return UNRELIABLE_ANGLE
    total = sum(w for _, w in weighted)
    if total <= 0:
        return sum(a for a, _ in weighted) / len(weighted)
    return sum(a * w for a, w in weighted) / total


def arm_spread(frame: PoseFrame, biometrics: BiometricSnapshot, visibility_threshold: float = 0.5) -> float:
    """
    Angle of the arms from the downward vertical, averaged over both sides.

    0° with the arms hanging, 90° at shoulder height, 180° overhead.
    """
    spreads = []
    for shoulder, wrist in ((PL.LEFT_SHOULDER, PL.LEFT_WRIST), (PL.RIGHT_SHOULDER, PL.RIGHT_WRIST)):
        if frame.min_visibility((shoulder, wrist)) < visibility_threshold:
            continue
        s, w = frame[shoulder], frame[wrist]
        spreads.append(math.degrees(math.atan2(abs(w.x - s.x), w.y - s.y)))

    if not spreads:
        return UNRELIABLE_ANGLE
    return sum(spreads) / len(spreads)


def ankle_plantar_flexion(frame: PoseFrame, biometrics: BiometricSnapshot, visibility_threshold: float = 0.5) -> float:
    """Knee-ankle-toe angle of the better visible leg; grows as the heel lifts."""
    sides = (
        (PL.LEFT_KNEE, PL.LEFT_ANKLE, PL.LEFT_FOOT_INDEX),
        (PL.RIGHT_KNEE, PL.RIGHT_ANKLE, PL.RIGHT_FOOT_INDEX),
    )
    best = max(sides, key=frame.min_visibility)
    if frame.min_visibility(best) < visibility_threshold:
        return UNRELIABLE_ANGLE
    knee, ankle, toe = (frame[i] for i in best)
    return calculate_angle_3d(knee, ankle, toe)


def plank_line(frame: PoseFrame, biometrics: BiometricSnapshot, visibility_threshold: float = 0.5) -> float:
    """Shoulder-hip-ankle angle of the better visible side (180° = straight body)."""
    left = (PL.LEFT_SHOULDER, PL.LEFT_HIP, PL.LEFT_ANKLE)
    right = (PL.RIGHT_SHOULDER, PL.RIGHT_HIP, PL.RIGHT_ANKLE)

    def score(side):
        return sum(frame[i].confidence for i in side)

    best = left if score(left) >= score(right) else right
    if frame.min_visibility(best) < visibility_threshold:
        return UNRELIABLE_ANGLE
    shoulder, hip, ankle = (frame[i] for i in best)
    return calculate_angle_3d(shoulder, hip, ankle)


# ==================== KINDS ====================

class ExerciseKind:
    """
    Base class of the exercise variants.

    Attributes:
        name: Variant name, for logs.
        angle_source: Function producing the primary angle.
        time_based: True when progress is hold time instead of reps.
    """

    name = "base"
    time_based = False

    def __init__(self, angle_source: AngleSource):
        self.angle_source = angle_source

    def primary_angle(self, frame: PoseFrame, biometrics: BiometricSnapshot,
                      visibility_threshold: float = 0.5) -> float:
        return self.angle_source(frame, biometrics, visibility_threshold)

    def propose_phase(self, phase: ExercisePhase, angle: float,
                      definition: ExerciseDefinition, form_score: int = 100) -> PhaseProposal:
        """
        Phase suggested by the current angle.

        Returns:
            Tuple of (candidate phase, True when reaching it closes a rep).
        """
        raise NotImplementedError

    def is_peak_exertion(self, angle: float, definition: ExerciseDefinition) -> bool:
        raise NotImplementedError

    def __repr__(self):
        return f"{type(self).__name__}({self.name})"


class DescendAscendKind(ExerciseKind):
    """Angle drops to the bottom position and rises back (push-up, squat)."""

    name = "descend-ascend"

    def __init__(self, angle_source: AngleSource, band: float):
        super().__init__(angle_source)
        self.band = band

    def propose_phase(self, phase, angle, definition, form_score=100):
        if phase in (ExercisePhase.IDLE, ExercisePhase.UP, ExercisePhase.COMPLETE):
            if angle < definition.down_angle_threshold + self.band:
                return ExercisePhase.DOWN, False
        elif phase == ExercisePhase.DOWN:
            if angle > definition.up_angle_threshold - self.band:
                return ExercisePhase.UP, True
        return phase, False

    def is_peak_exertion(self, angle, definition):
        return angle < definition.down_angle_threshold + self.band


class FlexionKind(ExerciseKind):
    """
    Joint curls towards up_angle_threshold (the small angle) and extends
    back to down_angle_threshold (bicep curl).
    """

    name = "flexion"

    def __init__(self, angle_source: AngleSource, band: float):
        super().__init__(angle_source)
        self.band = band

    def propose_phase(self, phase, angle, definition, form_score=100):
        if phase in (ExercisePhase.IDLE, ExercisePhase.UP, ExercisePhase.COMPLETE):
            if angle < definition.up_angle_threshold + self.band:
                return ExercisePhase.DOWN, False
        elif phase == ExercisePhase.DOWN:
            if angle > definition.down_angle_threshold - self.band:
                return ExercisePhase.UP, True
        return phase, False

    def is_peak_exertion(self, angle, definition):
        return angle < definition.up_angle_threshold + self.band


class RaiseLowerKind(ExerciseKind):
    """Angle rises to the top position and the rep closes on the way down."""

    name = "raise-lower"

    def __init__(self, angle_source: AngleSource, rise_band: float, lower_band: Optional[float] = None):
        super().__init__(angle_source)
        self.rise_band = rise_band
        self.lower_band = rise_band if lower_band is None else lower_band

    def propose_phase(self, phase, angle, definition, form_score=100):
        if phase in (ExercisePhase.IDLE, ExercisePhase.DOWN, ExercisePhase.COMPLETE):
            if angle > definition.up_angle_threshold - self.rise_band:
                return ExercisePhase.UP, False
        elif phase == ExercisePhase.UP:
            if angle < definition.down_angle_threshold + self.lower_band:
                return ExercisePhase.DOWN, True
        return phase, False

    def is_peak_exertion(self, angle, definition):
        return angle > definition.up_angle_threshold - self.rise_band


class HoldKind(ExerciseKind):
    """Isometric hold: HOLD while aligned with acceptable form, IDLE otherwise."""

    name = "hold"
    time_based = True

    def __init__(self, angle_source: AngleSource, min_form_score: float = 70.0,
                 alignment_tolerance: float = 30.0, target_angle: float = 180.0):
        super().__init__(angle_source)
        self.min_form_score = min_form_score
        self.alignment_tolerance = alignment_tolerance
        self.target_angle = target_angle

    def propose_phase(self, phase, angle, definition, form_score=100):
        good_form = form_score > self.min_form_score
        aligned = abs(angle - self.target_angle) < self.alignment_tolerance
        if good_form and aligned:
            return ExercisePhase.HOLD, False
        return ExercisePhase.IDLE, False

    def is_peak_exertion(self, angle, definition):
        # A hold has no expected strain point in a cycle
        return False


def get_exercise_kind(exercise_id: str, min_form_score: float = 70.0,
                      alignment_tolerance: float = 30.0) -> ExerciseKind:
    """
    Variant for an exercise id.

    Args:
        exercise_id: Catalog id.
        min_form_score: Form score a plank hold requires.
        alignment_tolerance: Allowed deviation from a straight plank.

    Returns:
        ExerciseKind; unknown ids get a descend/ascend kind on the elbow
        with a 20° band.
    """
    kinds: Dict[str, Callable[[], ExerciseKind]] = {
        'pushup': lambda: DescendAscendKind(average_elbow, band=10),
        'tricep-dip': lambda: DescendAscendKind(average_elbow, band=10),
        'squat': lambda: DescendAscendKind(robust_knee, band=20),
        'lunge': lambda: DescendAscendKind(robust_knee, band=20),
        'bicep-curl': lambda: FlexionKind(average_elbow, band=20),
        'shoulder-press': lambda: RaiseLowerKind(average_shoulder, rise_band=10),
        'lateral-raise': lambda: RaiseLowerKind(average_shoulder, rise_band=10),
        'jumping-jack': lambda: RaiseLowerKind(arm_spread, rise_band=0, lower_band=10),
        'calf-raise': lambda: RaiseLowerKind(ankle_plantar_flexion, rise_band=10),
        'plank': lambda: HoldKind(plank_line, min_form_score, alignment_tolerance),
    }
    factory = kinds.get(exercise_id)
    if factory is None:
        return DescendAscendKind(average_elbow, band=20)
    return factory()
