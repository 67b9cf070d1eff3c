from loguru import logger
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_file: str | None = Field(default=None, validation_alias="LOG_FILE")
    log_json: bool = Field(default=False, validation_alias="LOG_JSON")
    redis_url: str = Field(default="redis://localhost:6379/0", validation_alias="REDIS_URL")
    undo_backend: str = Field(
        default="memory",
        validation_alias="UNDO_BACKEND",
        description="Where the active undo batch is kept: 'memory' or 'redis'",
    )
    undo_storage_key: str = Field(default="bulk-edit-undo-data", validation_alias="UNDO_STORAGE_KEY")
    undo_ttl_minutes: int = Field(default=10, validation_alias="UNDO_TTL_MINUTES", gt=0)
    default_session_time: str = Field(default="16:00", validation_alias="DEFAULT_SESSION_TIME")
    default_session_duration_minutes: int = Field(
        default=60,
        validation_alias="DEFAULT_SESSION_DURATION_MINUTES",
        gt=0,
        description="Fixed session length used for overlap scanning",
    )
    conflict_warning_gap_minutes: int = Field(
        default=15,
        validation_alias="CONFLICT_WARNING_GAP_MINUTES",
        ge=0,
        description="Sessions closer than this (but not overlapping) are flagged as warnings",
    )
    day_change_tolerance_minutes: int = Field(
        default=30,
        validation_alias="DAY_CHANGE_TOLERANCE_MINUTES",
        ge=0,
        description="How far a session's time may drift from the day-change source time and still match",
    )
    include_same_student_conflicts: bool = Field(
        default=True,
        validation_alias="INCLUDE_SAME_STUDENT_CONFLICTS",
        description="Treat overlap with the same student's other sessions as a blocking conflict",
    )
    batch_aware_conflicts: bool = Field(
        default=False,
        validation_alias="BATCH_AWARE_CONFLICTS",
        description="Evaluate sessions moving in the same batch at their new slot",
    )
    week_starts_on: int = Field(
        default=6,
        validation_alias="WEEK_STARTS_ON",
        ge=0,
        le=6,
        description="First day of a named week period (Monday=0 ... Sunday=6)",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Validate that log level is one of the standard logging levels."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_value = value.upper()
        if upper_value not in valid_levels:
            logger.warning(f"Invalid LOG_LEVEL '{value}'. Valid levels are: {', '.join(valid_levels)}. Defaulting to INFO.")
            return "INFO"
        return upper_value

    @field_validator("undo_backend")
    @classmethod
    def validate_undo_backend(cls, value: str) -> str:
        """Fall back to the in-memory undo slot for unknown backends."""
        lower_value = value.strip().lower()
        if lower_value not in {"memory", "redis"}:
            logger.warning(f"Unknown UNDO_BACKEND '{value}'. Defaulting to memory.")
            return "memory"
        return lower_value

    @field_validator("default_session_time")
    @classmethod
    def validate_default_session_time(cls, value: str) -> str:
        """Require an HH:MM default time."""
        parts = value.strip().split(":")
        if len(parts) != 2 or not all(part.isdigit() for part in parts):
            raise ValueError(f"DEFAULT_SESSION_TIME must be HH:MM, got: {value}")
        hour, minute = int(parts[0]), int(parts[1])
        if not (0 <= hour < 24 and 0 <= minute < 60):
            raise ValueError(f"DEFAULT_SESSION_TIME out of range: {value}")
        return f"{hour:02d}:{minute:02d}"

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()
