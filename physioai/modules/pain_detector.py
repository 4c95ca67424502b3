"""
Pain Detection Module for PHYSIOAI.

Detects pain from facial expression using a reduced set of Facial Action
Coding System (FACS) proxies computed from the sparse face landmarks of
the pose skeleton.

Scientific basis:
    FACS (Paul Ekman) describes facial muscle movements as "Action Units".
    Acute pain typically shows as:
    - AU4: Brow lowering
    - AU6/7: Cheek raising and lid tightening (squint)
    - AU9: Nose wrinkling
    - AU10: Upper lip raising (grimace)

    Brow lowering and squinting also appear under plain exertion, so they
    weigh less than the nose wrinkle and the grimace.

Every ratio is divided by the distance between the eye centers, which makes
the measurement independent of the distance to the camera. Thresholds come
either from the user's neutral-face baseline (scaled by a per-AU relaxation
factor) or from population defaults when no baseline exists; both paths go
through the same formula with a different threshold source.

Author: PHYSIOAI Team
Version: 1.0.0
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

from ..core.data_types import (
    FACE_LANDMARKS, CalibrationBaseline, FaceRatios, IntensityLevel, PainAnalysis,
    PoseFrame, PoseLandmark, RecommendedAction,
)
from ..core.kinematics import calculate_distance_3d


class Direction(Enum):
    """Which side of the threshold activates an Action Unit."""
    BELOW = "below"
    ABOVE = "above"


@dataclass(frozen=True)
class ActionUnitRule:
    """
    Threshold rule for one Action Unit proxy.

    Attributes:
        label: Name reported in primary_action_units.
        ratio: FaceRatios / CalibrationBaseline field the rule reads.
        direction: Activation side of the threshold.
        population_threshold: Threshold used without a baseline.
        baseline_factor: Relaxation applied to the baseline ratio.
        weight: Contribution to the 0-10 pain score at intensity 1.
    """
    label: str
    ratio: str
    direction: Direction
    population_threshold: float
    baseline_factor: float
    weight: float

    def threshold(self, baseline: Optional[CalibrationBaseline]) -> float:
        if baseline is None:
            return self.population_threshold
        return getattr(baseline, self.ratio) * self.baseline_factor


@dataclass(frozen=True)
class PainThresholdPolicy:
    """
    Parameters of the pain score, shared by the calibrated and the
    population-default path.
    """
    rules: Tuple[ActionUnitRule, ...]
    max_intensity: float = 1.5
    intensity_gain: float = 2.5
    max_score: float = 10.0
    detection_threshold: float = 7.5
    critical_above: float = 9.0
    high_above: float = 7.0
    moderate_above: float = 4.0
    visibility_threshold: float = 0.5


DEFAULT_POLICY = PainThresholdPolicy(
    rules=(
        ActionUnitRule("AU4 (Brow Lowering)", "eye_nose_ratio", Direction.BELOW, 0.60, 0.88, 1.2),
        ActionUnitRule("AU6/7 (Lid Tightening)", "eye_narrowing_ratio", Direction.BELOW, 0.25, 0.88, 1.2),
        ActionUnitRule("AU9 (Nose Wrinkling)", "mouth_nose_ratio", Direction.BELOW, 0.85, 0.90, 2.5),
        ActionUnitRule("AU10 (Upper Lip Raising)", "mouth_width_ratio", Direction.ABOVE, 1.05, 1.15, 3.0),
    )
)


def no_pain() -> PainAnalysis:
    """Result used whenever the face is not observable."""
    return PainAnalysis(
        pain_detected=False,
        confidence_score=0.0,
        primary_action_units=[],
        intensity_level=IntensityLevel.LOW,
        recommended_action=RecommendedAction.CONTINUE,
        pain_score_raw=0.0,
    )


class PainDetector:
    """
    Face-based pain estimator.

    Algorithm:
        1. Compute four distance-normalized facial ratios
        2. Compare each with its threshold (baseline or population)
        3. Every crossed threshold adds weight × intensity, where the
           intensity grows with the distance past the threshold
        4. Cap the sum at 10 and classify

    Example:
        >>> detector = PainDetector()
        >>> analysis = detector.analyze(frame, baseline)
        >>> if analysis.recommended_action is RecommendedAction.STOP:
        ...     print(analysis.primary_action_units)
    """

    def __init__(self, policy: PainThresholdPolicy = DEFAULT_POLICY):
        self._policy = policy

    @property
    def policy(self) -> PainThresholdPolicy:
        return self._policy

    def compute_face_ratios(self, frame: PoseFrame) -> Optional[FaceRatios]:
        """
        Measure the facial ratios of one frame.

        Returns:
            FaceRatios, or None when a face landmark is missing or
            poorly visible, or the eyes coincide.
        """
        if len(frame) <= max(FACE_LANDMARKS):
            return None
        if frame.min_visibility(FACE_LANDMARKS) < self._policy.visibility_threshold:
            return None

        nose = frame[PoseLandmark.NOSE]
        left_eye = frame[PoseLandmark.LEFT_EYE]
        right_eye = frame[PoseLandmark.RIGHT_EYE]
        left_inner = frame[PoseLandmark.LEFT_EYE_INNER]
        right_inner = frame[PoseLandmark.RIGHT_EYE_INNER]
        left_outer = frame[PoseLandmark.LEFT_EYE_OUTER]
        right_outer = frame[PoseLandmark.RIGHT_EYE_OUTER]
        mouth_left = frame[PoseLandmark.MOUTH_LEFT]
        mouth_right = frame[PoseLandmark.MOUTH_RIGHT]

        eye_dist = calculate_distance_3d(left_eye, right_eye)
        if eye_dist == 0:
            return None

        # AU4 proxy: eye-to-nose vertical compression
        eye_nose = (calculate_distance_3d(left_inner, nose) + calculate_distance_3d(right_inner, nose)) / 2
        # AU6/7 proxy: horizontal eye opening
        narrowing = (abs(left_inner.x - left_outer.x) + abs(right_inner.x - right_outer.x)) / 2
        # AU9 proxy: mouth-to-nose compression
        mouth_nose = (calculate_distance_3d(mouth_left, nose) + calculate_distance_3d(mouth_right, nose)) / 2
        # AU10 proxy: mouth stretch
        mouth_width = calculate_distance_3d(mouth_left, mouth_right)

        return FaceRatios(
            inter_eye_distance=eye_dist,
            eye_nose_ratio=eye_nose / eye_dist,
            eye_narrowing_ratio=narrowing / eye_dist,
            mouth_nose_ratio=mouth_nose / eye_dist,
            mouth_width_ratio=mouth_width / eye_dist,
        )

    def _intensity(self, rule: ActionUnitRule, value: float, threshold: float) -> float:
        """0 when the rule is not crossed, else 1 + gain × relative excess, capped."""
        if threshold <= 0:
            return 0.0
        if rule.direction is Direction.BELOW:
            excess = (threshold - value) / threshold
        else:
            excess = (value - threshold) / threshold
        if excess <= 0:
            return 0.0
        return min(self._policy.max_intensity, 1.0 + self._policy.intensity_gain * excess)

    def score_ratios(
        self,
        ratios: FaceRatios,
        baseline: Optional[CalibrationBaseline] = None,
    ) -> Tuple[float, List[str], Dict[str, float]]:
        """
        Weighted Action Unit score of a set of ratios.

        Returns:
            Tuple of (raw score capped at max_score, triggered AU labels,
            AU label → intensity).
        """
        triggered = []
        intensities = {}
        score = 0.0
        for rule in self._policy.rules:
            value = getattr(ratios, rule.ratio)
            intensity = self._intensity(rule, value, rule.threshold(baseline))
            if intensity > 0:
                triggered.append(rule.label)
                intensities[rule.label] = intensity
                score += rule.weight * intensity
        return min(self._policy.max_score, score), triggered, intensities

    def classify(self, raw_score: float) -> Tuple[IntensityLevel, RecommendedAction]:
        policy = self._policy
        if raw_score > policy.critical_above:
            level = IntensityLevel.CRITICAL
        elif raw_score > policy.high_above:
            level = IntensityLevel.HIGH
        elif raw_score > policy.moderate_above:
            level = IntensityLevel.MODERATE
        else:
            level = IntensityLevel.LOW

        if level in (IntensityLevel.HIGH, IntensityLevel.CRITICAL):
            action = RecommendedAction.STOP
        elif level is IntensityLevel.MODERATE:
            action = RecommendedAction.WARNING
        else:
            action = RecommendedAction.CONTINUE
        return level, action

    def analyze(self, frame: PoseFrame, baseline: Optional[CalibrationBaseline] = None) -> PainAnalysis:
        """
        Estimate pain from the face landmarks of a frame.

        Args:
            frame: Current pose frame.
            baseline: Neutral-face baseline, None for population defaults.

        Returns:
            PainAnalysis: a "no pain" result when the face is not observable.
        """
        ratios = self.compute_face_ratios(frame)
        if ratios is None:
            return no_pain()

        raw_score, triggered, _ = self.score_ratios(ratios, baseline)
        level, action = self.classify(raw_score)

        return PainAnalysis(
            pain_detected=raw_score > self._policy.detection_threshold,
            confidence_score=round(frame.min_visibility(FACE_LANDMARKS), 3),
            primary_action_units=triggered,
            intensity_level=level,
            recommended_action=action,
            pain_score_raw=raw_score,
        )


def analyze_pain_expression(
    frame: PoseFrame,
    baseline: Optional[CalibrationBaseline] = None,
    detector: Optional[PainDetector] = None,
) -> float:
    """Pain score mapped from the raw 0-10 scale to 0-100."""
    detector = detector or PainDetector()
    return detector.analyze(frame, baseline).pain_score_raw * 10
