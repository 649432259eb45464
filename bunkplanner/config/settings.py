from pathlib import Path

from loguru import logger
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_default_term_file() -> str:
    """Get the bundled sample term snapshot, resolved relative to the repo root."""
    term_path = Path(__file__).parent.parent.parent / "data" / "sample_term.json"
    return str(term_path.resolve())


class Settings(BaseSettings):
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_file: str = Field(default="", validation_alias="LOG_FILE")
    term_file: str = Field(
        default_factory=get_default_term_file,
        validation_alias="TERM_FILE",
    )

    # Decision thresholds
    travel_time_minutes: int = Field(default=240, ge=0, validation_alias="TRAVEL_TIME_MINUTES")
    at_risk_ratio: float = Field(default=0.8, ge=0, validation_alias="AT_RISK_RATIO")
    large_gap_minutes: int = Field(default=180, ge=0, validation_alias="LARGE_GAP_MINUTES")
    warning_margin: float = Field(default=5.0, ge=0, validation_alias="WARNING_MARGIN")
    projection_horizon_days: int = Field(default=30, ge=0, validation_alias="PROJECTION_HORIZON_DAYS")

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Validate that log level is one of the standard logging levels."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_value = value.upper()
        if upper_value not in valid_levels:
            logger.warning(f"Invalid LOG_LEVEL '{value}'. Valid levels are: {', '.join(sorted(valid_levels))}. Defaulting to INFO.")
            return "INFO"
        return upper_value

    @field_validator("travel_time_minutes")
    @classmethod
    def validate_travel_time(cls, value: int) -> int:
        """Warn when travel time is zero, since efficiency ratios become meaningless."""
        if value == 0:
            logger.warning("TRAVEL_TIME_MINUTES is 0. Efficiency remarks and confidence adjustments are disabled.")
        return value


settings = Settings()
