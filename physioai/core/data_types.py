"""
Data Types Module for PHYSIOAI.

Data classes and type definitions shared by the analysis pipeline:
landmarks and frames coming from the pose provider, the per-frame
biometric snapshot, pain and safety verdicts, and the externally
visible exercise state.

Author: PHYSIOAI Team
Version: 1.0.0
"""

from dataclasses import dataclass, field, replace
from enum import Enum, IntEnum
from typing import Any, Dict, List, Mapping, Optional, Sequence
import math
import numpy as np

from ..helpers.exceptions import InvalidFrameError


# Sentinel for an angle whose landmarks are not reliably observed
UNRELIABLE_ANGLE = -1.0

LANDMARK_COUNT = 33


class PoseLandmark(IntEnum):
    """
    Fixed anatomical indices of the 33-point pose skeleton.

    A missing body part is reported through a low visibility,
    never through a missing entry.
    """
    # Face
    NOSE = 0
    LEFT_EYE_INNER = 1
    LEFT_EYE = 2
    LEFT_EYE_OUTER = 3
    RIGHT_EYE_INNER = 4
    RIGHT_EYE = 5
    RIGHT_EYE_OUTER = 6
    LEFT_EAR = 7
    RIGHT_EAR = 8
    MOUTH_LEFT = 9
    MOUTH_RIGHT = 10

    # Upper body
    LEFT_SHOULDER = 11
    RIGHT_SHOULDER = 12
    LEFT_ELBOW = 13
    RIGHT_ELBOW = 14
    LEFT_WRIST = 15
    RIGHT_WRIST = 16
    LEFT_PINKY = 17
    RIGHT_PINKY = 18
    LEFT_INDEX = 19
    RIGHT_INDEX = 20
    LEFT_THUMB = 21
    RIGHT_THUMB = 22

    # Lower body
    LEFT_HIP = 23
    RIGHT_HIP = 24
    LEFT_KNEE = 25
    RIGHT_KNEE = 26
    LEFT_ANKLE = 27
    RIGHT_ANKLE = 28
    LEFT_HEEL = 29
    RIGHT_HEEL = 30
    LEFT_FOOT_INDEX = 31
    RIGHT_FOOT_INDEX = 32


# Landmarks the face-based pain estimate depends on
FACE_LANDMARKS = (
    PoseLandmark.NOSE,
    PoseLandmark.LEFT_EYE_INNER, PoseLandmark.LEFT_EYE, PoseLandmark.LEFT_EYE_OUTER,
    PoseLandmark.RIGHT_EYE_INNER, PoseLandmark.RIGHT_EYE, PoseLandmark.RIGHT_EYE_OUTER,
    PoseLandmark.MOUTH_LEFT, PoseLandmark.MOUTH_RIGHT,
)


class ExercisePhase(Enum):
    """Stages of a repetition cycle."""
    IDLE = "IDLE"
    DOWN = "DOWN"
    UP = "UP"
    HOLD = "HOLD"
    COMPLETE = "COMPLETE"


class StressLevel(Enum):
    GOOD = "good"
    WARNING = "warning"
    BAD = "bad"


class IntensityLevel(Enum):
    LOW = "Low"
    MODERATE = "Moderate"
    HIGH = "High"
    CRITICAL = "Critical"


class RecommendedAction(Enum):
    CONTINUE = "Continue"
    WARNING = "Warning"
    STOP = "Stop"


class SafetyStatus(Enum):
    SCANNING = "Scanning"
    EFFORT_DETECTED = "EffortDetected"
    PAIN_ALERT = "PainAlert"
    CALIBRATING = "Calibrating"


class SystemCommand(Enum):
    HALT_WORKOUT = "HaltWorkout"


@dataclass(frozen=True)
class Landmark:
    """
    One tracked anatomical point.

    Attributes:
        x: Normalized image-space X.
        y: Normalized image-space Y (grows downwards).
        z: Depth-like coordinate.
        visibility: Confidence 0-1, None when the provider does not report it.
    """
    x: float
    y: float
    z: float = 0.0
    visibility: Optional[float] = None

    def to_array(self) -> np.ndarray:
        """Return [x, y, z] as a numpy array."""
        return np.array([self.x, self.y, self.z], dtype=np.float64)

    @property
    def confidence(self) -> float:
        """Visibility with unreported confidence treated as fully visible."""
        return 1.0 if self.visibility is None else float(self.visibility)

    @classmethod
    def coerce(cls, value: Any) -> "Landmark":
        """
        Build a Landmark from a Landmark, a mapping or an (x, y, z[, v]) sequence.

        Raises:
            InvalidFrameError: if the value cannot be read as a landmark
                or carries a non-finite number.
        """
        landmark = value if isinstance(value, Landmark) else cls._parse(value)
        for name in ('x', 'y', 'z', 'visibility'):
            number = getattr(landmark, name)
            if number is not None and not math.isfinite(number):
                raise InvalidFrameError(f"Landmark {name} is not finite: {number}")
        return landmark

    @classmethod
    def _parse(cls, value: Any) -> "Landmark":
        try:
            if isinstance(value, Mapping):
                return cls(
                    x=float(value['x']),
                    y=float(value['y']),
                    z=float(value.get('z', 0.0)),
                    visibility=None if value.get('visibility') is None else float(value['visibility']),
                )
            if hasattr(value, 'x') and hasattr(value, 'y'):
                visibility = getattr(value, 'visibility', None)
                return cls(
                    x=float(value.x),
                    y=float(value.y),
                    z=float(getattr(value, 'z', 0.0)),
                    visibility=None if visibility is None else float(visibility),
                )
            coords = list(value)
            if len(coords) < 2:
                raise InvalidFrameError(f"Landmark needs at least x and y, got {coords!r}")
            return cls(
                x=float(coords[0]),
                y=float(coords[1]),
                z=float(coords[2]) if len(coords) > 2 else 0.0,
                visibility=float(coords[3]) if len(coords) > 3 and coords[3] is not None else None,
            )
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidFrameError(f"Cannot read landmark from {value!r}: {e}") from e


@dataclass
class PoseFrame:
    """
    Full skeletal/facial snapshot at one timestamp.

    Attributes:
        landmarks: Ordered landmarks, indexed by PoseLandmark.
        timestamp_ms: Monotonic timestamp in milliseconds.
    """
    landmarks: List[Landmark]
    timestamp_ms: float = 0.0

    def __len__(self) -> int:
        return len(self.landmarks)

    def __getitem__(self, index: int) -> Landmark:
        return self.landmarks[index]

    def is_complete(self, landmark_count: int = LANDMARK_COUNT) -> bool:
        return len(self.landmarks) >= landmark_count

    def to_numpy(self) -> np.ndarray:
        """
        Convert all landmarks to a numpy array.

        Returns:
            np.ndarray: Matrix of shape (N, 3).
        """
        if not self.landmarks:
            return np.array([], dtype=np.float64).reshape(0, 3)
        return np.array([lm.to_array() for lm in self.landmarks], dtype=np.float64)

    def min_visibility(self, indices: Sequence[int]) -> float:
        """Lowest confidence among the given landmark indices."""
        return min(self.landmarks[i].confidence for i in indices)

    @classmethod
    def from_landmarks(cls, landmarks: Any, timestamp_ms: float = 0.0) -> "PoseFrame":
        """
        Build a frame from any landmark payload accepted by Landmark.coerce.

        Raises:
            InvalidFrameError: if the payload is not a sequence of landmarks
                or the timestamp is not a finite number.
        """
        try:
            timestamp = float(timestamp_ms)
        except (TypeError, ValueError) as e:
            raise InvalidFrameError(f"Invalid timestamp {timestamp_ms!r}") from e
        if not math.isfinite(timestamp):
            raise InvalidFrameError(f"Timestamp is not finite: {timestamp}")

        if isinstance(landmarks, PoseFrame):
            items = landmarks.landmarks
        elif landmarks is None or isinstance(landmarks, (str, bytes)):
            raise InvalidFrameError("Landmark payload must be a sequence")
        else:
            try:
                items = list(landmarks)
            except TypeError as e:
                raise InvalidFrameError(f"Landmark payload is not iterable: {e}") from e
        return cls([Landmark.coerce(item) for item in items], timestamp)


@dataclass(frozen=True)
class FaceRatios:
    """
    Camera-distance-invariant facial measurements of one frame.

    All ratios except inter_eye_distance are normalized by the
    distance between the eye centers.
    """
    inter_eye_distance: float
    eye_nose_ratio: float
    eye_narrowing_ratio: float
    mouth_nose_ratio: float
    mouth_width_ratio: float


@dataclass(frozen=True)
class CalibrationBaseline:
    """Personal neutral-face measurements, fixed for the whole session."""
    inter_eye_distance: float
    eye_nose_ratio: float
    eye_narrowing_ratio: float
    mouth_nose_ratio: float
    mouth_width_ratio: float

    @classmethod
    def from_samples(cls, samples: Sequence[FaceRatios]) -> "CalibrationBaseline":
        """Arithmetic mean of every ratio over the collected samples."""
        matrix = np.array([
            [s.inter_eye_distance, s.eye_nose_ratio, s.eye_narrowing_ratio,
             s.mouth_nose_ratio, s.mouth_width_ratio]
            for s in samples
        ], dtype=np.float64)
        means = matrix.mean(axis=0)
        return cls(*(float(v) for v in means))


# Used when calibration collected no usable face sample. Each ratio is
# population threshold / relaxation factor, so the calibrated formula lands
# exactly on the population thresholds.
DEFAULT_BASELINE = CalibrationBaseline(
    inter_eye_distance=0.06,
    eye_nose_ratio=0.60 / 0.88,
    eye_narrowing_ratio=0.25 / 0.88,
    mouth_nose_ratio=0.85 / 0.90,
    mouth_width_ratio=1.05 / 1.15,
)


@dataclass(frozen=True)
class PainAnalysis:
    """FACS-inspired pain verdict for one frame."""
    pain_detected: bool = False
    confidence_score: float = 0.0
    primary_action_units: List[str] = field(default_factory=list)
    intensity_level: IntensityLevel = IntensityLevel.LOW
    recommended_action: RecommendedAction = RecommendedAction.CONTINUE
    pain_score_raw: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pain_detected": self.pain_detected,
            "confidence_score": self.confidence_score,
            "primary_action_units": list(self.primary_action_units),
            "intensity_level": self.intensity_level.value,
            "recommended_action": self.recommended_action.value,
            "pain_score_raw": self.pain_score_raw,
        }


@dataclass(frozen=True)
class JointStress:
    joint_id: PoseLandmark
    stress_level: StressLevel
    message: Optional[str] = None


@dataclass
class BiometricSnapshot:
    """
    Per-frame biomechanical reading.

    Attributes:
        joint_angles: Joint name → degrees, UNRELIABLE_ANGLE when not observed.
        angular_velocities: Joint name → degrees/second, only for joints
            reliable in both frames.
        symmetry_scores: Joint group → 0-100.
        overall_symmetry: Average of symmetry_scores.
        pain_analysis: Face-based pain verdict.
    """
    joint_angles: Dict[str, float] = field(default_factory=dict)
    angular_velocities: Dict[str, float] = field(default_factory=dict)
    symmetry_scores: Dict[str, int] = field(default_factory=dict)
    overall_symmetry: int = 100
    pain_analysis: PainAnalysis = field(default_factory=PainAnalysis)

    @property
    def pain_score(self) -> float:
        """Raw pain score mapped to 0-100."""
        return self.pain_analysis.pain_score_raw * 10


@dataclass
class SafetyLog:
    """Human-facing summary of the safety policy's current verdict."""
    status: SafetyStatus = SafetyStatus.CALIBRATING
    pain_level: int = 0
    ui_message: str = ""
    system_command: Optional[SystemCommand] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "pain_level": self.pain_level,
            "ui_message": self.ui_message,
            "system_command": self.system_command.value if self.system_command else None,
        }


@dataclass
class ExerciseState:
    """
    Externally visible record of an exercise session.

    Mutated once per processed frame by the engine.
    """
    exercise_id: str
    phase: ExercisePhase = ExercisePhase.IDLE
    rep_count: int = 0
    current_angle: float = 0.0
    form_score: int = 100
    symmetry_score: int = 100
    angular_velocity: float = 0.0
    joint_stress: List[JointStress] = field(default_factory=list)
    pain_score: float = 0.0
    pain_analysis: PainAnalysis = field(default_factory=PainAnalysis)
    safety_log: SafetyLog = field(default_factory=SafetyLog)
    is_calibrating: bool = True
    calibration_progress: int = 0
    is_holding: bool = False
    hold_start_time: Optional[float] = None
    start_time: float = 0.0
    last_rep_time: Optional[float] = None

    def copy(self) -> "ExerciseState":
        """Detached copy safe to hand to the presentation layer."""
        return ExerciseState(
            exercise_id=self.exercise_id,
            phase=self.phase,
            rep_count=self.rep_count,
            current_angle=self.current_angle,
            form_score=self.form_score,
            symmetry_score=self.symmetry_score,
            angular_velocity=self.angular_velocity,
            joint_stress=list(self.joint_stress),
            pain_score=self.pain_score,
            pain_analysis=replace(
                self.pain_analysis,
                primary_action_units=list(self.pain_analysis.primary_action_units),
            ),
            safety_log=SafetyLog(**asdict_shallow(self.safety_log)),
            is_calibrating=self.is_calibrating,
            calibration_progress=self.calibration_progress,
            is_holding=self.is_holding,
            hold_start_time=self.hold_start_time,
            start_time=self.start_time,
            last_rep_time=self.last_rep_time,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "exercise_id": self.exercise_id,
            "phase": self.phase.value,
            "rep_count": self.rep_count,
            "current_angle": self.current_angle,
            "form_score": self.form_score,
            "symmetry_score": self.symmetry_score,
            "angular_velocity": self.angular_velocity,
            "joint_stress": [
                {
                    "joint_id": int(js.joint_id),
                    "stress_level": js.stress_level.value,
                    "message": js.message,
                }
                for js in self.joint_stress
            ],
            "pain_score": self.pain_score,
            "pain_analysis": self.pain_analysis.to_dict(),
            "safety_log": self.safety_log.to_dict(),
            "is_calibrating": self.is_calibrating,
            "calibration_progress": self.calibration_progress,
            "is_holding": self.is_holding,
            "hold_start_time": self.hold_start_time,
            "start_time": self.start_time,
            "last_rep_time": self.last_rep_time,
        }


def asdict_shallow(obj: Any) -> Dict[str, Any]:
    """Field dict of a dataclass without recursing into nested values."""
    return {name: getattr(obj, name) for name in obj.__dataclass_fields__}
