"""Application settings loaded from the environment."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Default data directory
DATA_DIR = Path(__file__).parent.parent.parent / "data"


class Settings(BaseSettings):
    data_dir: Path = Field(default=DATA_DIR)
    db_filename: str = Field(default="phasewise.db")
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=False)
    autosave_debounce_seconds: float = Field(default=1.5, ge=0)
    # Share of a phase's scheduled days required before reassessment passes
    phase_completion_threshold: float = Field(default=0.0, ge=0, le=1)
    default_weeks_per_phase: int = Field(default=4, ge=2, le=8)
    # A pause longer than this restarts the program on resume
    pause_reset_days: int = Field(default=14, ge=1)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="PHASEWISE_",
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        value = value.upper()
        if value not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {value}")
        return value

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_filename


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
