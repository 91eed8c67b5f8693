"""
Configuration settings for the Player Position Predictor.

All settings are loaded from environment variables with sensible defaults.
Use .env file for local development.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Application ===
    APP_NAME: str = "Player Position Predictor"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"

    # === Model Source ===
    MODEL_SOURCE: str = "local"  # "local" (MODEL_DIR) or "url" (MODEL_URL)
    MODEL_DIR: str = "model"
    MODEL_JSON_FILENAME: str = "my-model.json"
    MODEL_URL: Optional[str] = None  # e.g., "https://cdn.example.com/fc24/my-model.json"
    MODEL_FETCH_TIMEOUT: float = 10.0  # seconds
    LOAD_MODEL_ON_STARTUP: bool = True
    MAX_UPLOAD_BYTES: int = 20 * 1024 * 1024  # per uploaded file

    # === Features & Labels ===
    FEATURE_NAMES: list[str] = ["pace", "shooting", "passing"]  # add "defending" for 4-input models
    POSITION_LABELS: list[str] = [
        "GK", "RB", "RWB", "CB", "LB", "LWB", "CDM", "CM",
        "CAM", "RM", "LM", "RW", "LW", "CF", "ST", "SW",
    ]

    # === Prediction ===
    TOP_K: int = 3
    PROBABILITY_SUM_TOLERANCE: float = 0.05
    WARMUP_VALUE: float = 70.0
    INPUT_SCALE: float = 1.0  # inputs are divided by this before predict

    # === Sliders ===
    ATTRIBUTE_MIN: float = 0.0
    ATTRIBUTE_MAX: float = 100.0
    ATTRIBUTE_DEFAULT: float = 70.0

    # === Monitoring ===
    PROMETHEUS_ENABLED: bool = True


# Global settings instance
settings = Settings()
