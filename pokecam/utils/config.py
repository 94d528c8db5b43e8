"""Configuration and settings management."""

from typing import Optional
from pydantic_settings import BaseSettings
from pydantic import field_validator
from pathlib import Path

from ..core.constants import CAMERA_TARGET_SIZE, DEFAULT_IDENTIFY_URL, DEFAULT_NUM_CLASSES


class Settings(BaseSettings):
    # Logging
    LOG_LEVEL: str = "INFO"

    # Detector model
    MODEL_PATH: str = "model/model.onnx"
    MODEL_CACHE_DIR: str = "cache/model"
    NUM_CLASSES: int = DEFAULT_NUM_CLASSES

    # Camera settings
    CAMERA_INDEX: int = 0
    CAMERA_WIDTH: int = CAMERA_TARGET_SIZE
    CAMERA_HEIGHT: int = CAMERA_TARGET_SIZE
    FRAME_INTERVAL_S: float = 1.0 / 60.0

    # Identify service
    IDENTIFY_URL: str = DEFAULT_IDENTIFY_URL
    UPLOAD_TIMEOUT_S: float = 30.0

    # Exported crops
    OUTPUT_DIR: str = "output"

    @field_validator('LOG_LEVEL', mode='before')
    @classmethod
    def validate_log_level(cls, v):
        """Convert empty/whitespace strings to default."""
        if isinstance(v, str) and not v.strip():
            return "INFO"
        return v

    @field_validator('MODEL_PATH', mode='before')
    @classmethod
    def validate_model_path(cls, v):
        """Convert empty/whitespace strings to default."""
        if isinstance(v, str) and not v.strip():
            return "model/model.onnx"
        return v

    @field_validator('IDENTIFY_URL', mode='before')
    @classmethod
    def validate_identify_url(cls, v):
        """Convert empty/whitespace strings to default."""
        if isinstance(v, str) and not v.strip():
            return DEFAULT_IDENTIFY_URL
        return v

    @field_validator('NUM_CLASSES')
    @classmethod
    def validate_num_classes(cls, v):
        if v < 1:
            raise ValueError("NUM_CLASSES must be at least 1")
        return v

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore"
    }

# Global settings instance
settings = Settings()


def ensure_output_dir(output_dir: Optional[str] = None) -> Path:
    """Ensure the crop output directory exists and return it."""
    path = Path(output_dir or settings.OUTPUT_DIR)
    path.mkdir(parents=True, exist_ok=True)
    return path


def ensure_model_cache_dir() -> Path:
    """Ensure the downloaded-model cache directory exists and return it."""
    path = Path(settings.MODEL_CACHE_DIR)
    path.mkdir(parents=True, exist_ok=True)
    return path
