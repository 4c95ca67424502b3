import os
from dotenv import load_dotenv
from pydantic_settings import BaseSettings

BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), '../../'))
load_dotenv(os.path.join(BASE_DIR, '.env'))


class Settings(BaseSettings):
    PROJECT_NAME: str = os.getenv('PROJECT_NAME', 'PHYSIOAI CORE')
    LOGGING_CONFIG_FILE: str = os.path.join(BASE_DIR, 'logging.ini')

    # Frame input
    LANDMARK_COUNT: int = 33
    VISIBILITY_THRESHOLD: float = float(os.getenv('VISIBILITY_THRESHOLD', '0.5'))

    # Neutral-face calibration
    CALIBRATION_DURATION_MS: float = float(os.getenv('CALIBRATION_DURATION_MS', '3000'))

    # Primary angle robustness
    ANGLE_LATCH_MS: float = float(os.getenv('ANGLE_LATCH_MS', '300'))
    SMOOTHING_WINDOW: int = int(os.getenv('SMOOTHING_WINDOW', '7'))
    VELOCITY_HISTORY_SIZE: int = int(os.getenv('VELOCITY_HISTORY_SIZE', '10'))
    GLITCH_VELOCITY_DEG_S: float = float(os.getenv('GLITCH_VELOCITY_DEG_S', '1000'))

    # Rep counting
    REP_COOLDOWN_MS: float = float(os.getenv('REP_COOLDOWN_MS', '850'))
    MIN_PHASE_FRAMES: int = int(os.getenv('MIN_PHASE_FRAMES', '4'))
    PLANK_MIN_FORM_SCORE: float = float(os.getenv('PLANK_MIN_FORM_SCORE', '70'))
    PLANK_ALIGNMENT_TOLERANCE: float = float(os.getenv('PLANK_ALIGNMENT_TOLERANCE', '30'))

    # Safety escalation
    ACUTE_PAIN_THRESHOLD: float = float(os.getenv('ACUTE_PAIN_THRESHOLD', '8.5'))
    ACUTE_PAIN_DURATION_MS: float = float(os.getenv('ACUTE_PAIN_DURATION_MS', '2500'))
    PAIN_EMA_ALPHA: float = float(os.getenv('PAIN_EMA_ALPHA', '0.2'))

    # Reference comparison
    DTW_WINDOW_SIZE: int = int(os.getenv('DTW_WINDOW_SIZE', '30'))


settings = Settings()
