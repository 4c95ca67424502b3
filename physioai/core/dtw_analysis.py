"""
DTW Analysis Module for PHYSIOAI.

Dynamic Time Warping comparison of a user's landmark sequence against a
recorded reference ("gold standard") sequence.

Why DTW instead of a frame-by-frame comparison?
    - Users move at a different speed than the reference
    - They may pause in the middle of a repetition
    - DTW stretches time to find the best alignment

The cost of one cell is the mean per-landmark Euclidean distance between
two frames. The quality score decays exponentially with the distance
normalized by the longer sequence, so near-identical movements score close
to 100 while clear deviations drop quickly.

Author: PHYSIOAI Team
Version: 1.0.0
"""

from collections import deque
from dataclasses import dataclass, field
from typing import Deque, List, Optional, Sequence, Tuple, Union
import logging
import numpy as np
from scipy.ndimage import uniform_filter1d

from .data_types import ExercisePhase, Landmark, PoseFrame
from .kinematics import round_half_up

logger = logging.getLogger(__name__)

FrameLike = Union[PoseFrame, Sequence[Landmark]]


@dataclass
class DTWResult:
    """
    Result of a DTW comparison.

    Attributes:
        distance: Accumulated DTW cost (lower is better).
        normalized_distance: distance / max(n, m).
        alignment_path: Optimal path [(user_index, reference_index), ...].
        quality_score: 0-100, 100 for an identical movement.
    """
    distance: float
    normalized_distance: float
    alignment_path: List[Tuple[int, int]] = field(default_factory=list)
    quality_score: int = 0

    @property
    def rhythm_quality(self) -> str:
        return evaluate_rhythm_quality(self.quality_score)


@dataclass
class GoldStandardFrame:
    landmarks: List[Landmark]
    phase: ExercisePhase = ExercisePhase.IDLE
    timestamp: float = 0.0


@dataclass
class GoldStandardSequence:
    """A recorded reference movement for one exercise."""
    exercise_id: str
    frames: List[GoldStandardFrame]
    duration: float = 0.0

    @classmethod
    def from_frames(cls, exercise_id: str, frames: Sequence[FrameLike]) -> "GoldStandardSequence":
        """Build a reference from captured frames, keeping their timestamps."""
        gold_frames = []
        for index, frame in enumerate(frames):
            if isinstance(frame, PoseFrame):
                gold_frames.append(GoldStandardFrame(list(frame.landmarks), timestamp=frame.timestamp_ms))
            else:
                gold_frames.append(GoldStandardFrame(list(frame), timestamp=float(index)))
        duration = gold_frames[-1].timestamp - gold_frames[0].timestamp if gold_frames else 0.0
        return cls(exercise_id=exercise_id, frames=gold_frames, duration=duration)


def _landmarks_of(frame: Union[FrameLike, GoldStandardFrame]) -> Sequence[Landmark]:
    if isinstance(frame, (PoseFrame, GoldStandardFrame)):
        return frame.landmarks
    return frame


def _to_matrix(landmarks: Sequence[Landmark]) -> np.ndarray:
    if not landmarks:
        return np.zeros((0, 3))
    return np.array([[lm.x, lm.y, lm.z] for lm in landmarks], dtype=np.float64)


def frame_distance(frame1: Sequence[Landmark], frame2: Sequence[Landmark]) -> float:
    """
    Mean per-landmark Euclidean distance between two frames.

    Frames of different length are incomparable (infinite distance).
    """
    if len(frame1) != len(frame2):
        return float('inf')
    if len(frame1) == 0:
        return 0.0
    diff = _to_matrix(frame1) - _to_matrix(frame2)
    return float(np.mean(np.linalg.norm(diff, axis=1)))


def _cost_matrix(user_frames: List[Sequence[Landmark]], ref_frames: List[Sequence[Landmark]]) -> np.ndarray:
    """Pairwise frame distances, vectorized when every frame has the same size."""
    lengths = {len(f) for f in user_frames} | {len(f) for f in ref_frames}
    if len(lengths) == 1 and 0 not in lengths:
        user = np.stack([_to_matrix(f) for f in user_frames])   # (n, L, 3)
        ref = np.stack([_to_matrix(f) for f in ref_frames])     # (m, L, 3)
        diff = user[:, None, :, :] - ref[None, :, :, :]
        return np.linalg.norm(diff, axis=3).mean(axis=2)

    costs = np.empty((len(user_frames), len(ref_frames)))
    for i, uf in enumerate(user_frames):
        for j, rf in enumerate(ref_frames):
            costs[i, j] = frame_distance(uf, rf)
    return costs


def _accumulate(costs: np.ndarray) -> np.ndarray:
    """Classic DTW accumulation over an (n+1, m+1) matrix seeded with infinity."""
    n, m = costs.shape
    dtw_matrix = np.full((n + 1, m + 1), np.inf)
    dtw_matrix[0, 0] = 0.0

    for i in range(1, n + 1):
        for j in range(1, m + 1):
            dtw_matrix[i, j] = costs[i - 1, j - 1] + min(
                dtw_matrix[i - 1, j],      # Insertion
                dtw_matrix[i, j - 1],      # Deletion
                dtw_matrix[i - 1, j - 1],  # Match
            )
    return dtw_matrix


def _backtrack(dtw_matrix: np.ndarray) -> List[Tuple[int, int]]:
    """Walk from (n, m) back to the origin along the cheapest neighbour."""
    path = []
    i, j = dtw_matrix.shape[0] - 1, dtw_matrix.shape[1] - 1
    while i > 0 and j > 0:
        path.append((i - 1, j - 1))
        diag = dtw_matrix[i - 1, j - 1]
        left = dtw_matrix[i, j - 1]
        up = dtw_matrix[i - 1, j]
        if diag <= left and diag <= up:
            i -= 1
            j -= 1
        elif left <= up:
            j -= 1
        else:
            i -= 1
    path.reverse()
    return path


def _quality_score(normalized_distance: float) -> int:
    if not np.isfinite(normalized_distance):
        return 0
    score = 100.0 * np.exp(-5.0 * normalized_distance)
    return max(0, min(100, round_half_up(score)))


def _empty_result() -> DTWResult:
    return DTWResult(
        distance=float('inf'),
        normalized_distance=float('inf'),
        alignment_path=[],
        quality_score=0,
    )


def compute_dtw(
    user_sequence: Sequence[FrameLike],
    gold_sequence: Union[GoldStandardSequence, Sequence[FrameLike]],
) -> DTWResult:
    """
    Compare a user landmark sequence with a reference sequence.

    Complexity is O(n*m); long recordings should go through StreamingDTW.

    Args:
        user_sequence: User frames (PoseFrame or landmark lists).
        gold_sequence: Reference sequence or plain list of frames.

    Returns:
        DTWResult: distance, normalized distance, path and quality score.
    """
    ref_items = gold_sequence.frames if isinstance(gold_sequence, GoldStandardSequence) else gold_sequence
    user_frames = [list(_landmarks_of(f)) for f in user_sequence]
    ref_frames = [list(_landmarks_of(f)) for f in ref_items]

    n, m = len(user_frames), len(ref_frames)
    if n == 0 or m == 0:
        return _empty_result()

    dtw_matrix = _accumulate(_cost_matrix(user_frames, ref_frames))
    distance = float(dtw_matrix[n, m])
    normalized = distance / max(n, m)

    return DTWResult(
        distance=distance,
        normalized_distance=normalized,
        alignment_path=_backtrack(dtw_matrix),
        quality_score=_quality_score(normalized),
    )


def preprocess_sequence(
    sequence: Union[List[float], np.ndarray],
    smooth_window: int = 5,
    normalize: bool = True,
) -> np.ndarray:
    """
    Prepare a 1D angle sequence for DTW.

    Steps:
        1. Moving-average smoothing (noise reduction)
        2. Min-max normalization to [0, 1]

    Args:
        sequence: Raw angles.
        smooth_window: Smoothing window size.
        normalize: Whether to rescale to [0, 1].

    Returns:
        np.ndarray: Processed sequence.
    """
    arr = np.array(sequence, dtype=np.float64)

    if len(arr) == 0:
        return arr

    if smooth_window > 1 and len(arr) >= smooth_window:
        arr = uniform_filter1d(arr, size=smooth_window, mode='nearest')

    if normalize:
        min_val, max_val = arr.min(), arr.max()
        if max_val - min_val > 1e-6:
            arr = (arr - min_val) / (max_val - min_val)

    return arr


def compare_angle_sequences(
    user_angles: Sequence[float],
    reference_angles: Sequence[float],
    preprocess: bool = True,
) -> DTWResult:
    """
    DTW over a single joint-angle trajectory instead of whole frames.

    Args:
        user_angles: User's primary angle over time.
        reference_angles: Reference angle trajectory.
        preprocess: Apply preprocess_sequence to both inputs.

    Returns:
        DTWResult: Same scoring as compute_dtw.
    """
    if len(user_angles) == 0 or len(reference_angles) == 0:
        return _empty_result()

    if preprocess:
        user = preprocess_sequence(user_angles)
        ref = preprocess_sequence(reference_angles)
    else:
        user = np.array(user_angles, dtype=np.float64)
        ref = np.array(reference_angles, dtype=np.float64)

    costs = np.abs(user[:, None] - ref[None, :])
    dtw_matrix = _accumulate(costs)
    n, m = len(user), len(ref)
    distance = float(dtw_matrix[n, m])
    normalized = distance / max(n, m)

    return DTWResult(
        distance=distance,
        normalized_distance=normalized,
        alignment_path=_backtrack(dtw_matrix),
        quality_score=_quality_score(normalized),
    )


def evaluate_rhythm_quality(quality_score: float) -> str:
    """
    Label a quality score.

    Returns:
        str: "excellent", "good", "fair" or "poor".
    """
    if quality_score >= 85:
        return "excellent"
    elif quality_score >= 70:
        return "good"
    elif quality_score >= 50:
        return "fair"
    else:
        return "poor"


class StreamingDTW:
    """
    Sliding-window DTW against a fixed reference.

    Keeps only the most recent window_size frames so the per-frame cost stays
    bounded, and recomputes once at least half a window has accumulated.

    Example:
        >>> streaming = StreamingDTW(reference, window_size=30)
        >>> result = streaming.add_frame(frame.landmarks)
        >>> if result is not None:
        ...     print(result.quality_score)
    """

    def __init__(self, gold_sequence: GoldStandardSequence, window_size: int = 30):
        if window_size < 2:
            raise ValueError("window_size must be at least 2")
        self._gold_sequence = gold_sequence
        self._window_size = window_size
        self._buffer: Deque[List[Landmark]] = deque(maxlen=window_size)
        self._last_result: Optional[DTWResult] = None

    @property
    def window_size(self) -> int:
        return self._window_size

    @property
    def buffered_frames(self) -> int:
        return len(self._buffer)

    def add_frame(self, landmarks: FrameLike) -> Optional[DTWResult]:
        """
        Add a frame and recompute DTW when the buffer holds enough frames.

        Returns:
            The newest result, or the previous one (None before the first).
        """
        self._buffer.append(list(_landmarks_of(landmarks)))

        if len(self._buffer) >= self._window_size // 2:
            self._last_result = compute_dtw(list(self._buffer), self._gold_sequence)
            logger.debug("Streaming DTW quality %s over %d frames",
                         self._last_result.quality_score, len(self._buffer))

        return self._last_result

    def get_current_score(self) -> int:
        return self._last_result.quality_score if self._last_result else 0

    def reset(self) -> None:
        self._buffer.clear()
        self._last_result = None
