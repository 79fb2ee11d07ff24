"""
Application configuration with environment variables.
"""
from pydantic_settings import BaseSettings
from pydantic import ConfigDict, field_validator
from typing import List


class Settings(BaseSettings):
    model_config = ConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "Proposal Decision Engine"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database (external data store collaborator)
    DATABASE_URL: str = "sqlite:///./proposal_engine.db"

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:5173", "http://localhost:3000"]

    # =========================================
    # Normalization defaults (data-quality guards)
    # =========================================

    # Reported and computed totals closer than this are considered equal
    TOTAL_MATCH_TOLERANCE: float = 0.01
    DEFAULT_DELIVERY_TIME_DAYS: int = 7
    DEFAULT_WARRANTY_MONTHS: int = 12
    DEFAULT_DELIVERY_SCORE: float = 50.0
    DEFAULT_REPUTATION: float = 3.0

    # =========================================
    # Decision matrix
    # =========================================

    MIN_PROPOSALS_FOR_MATRIX: int = 2
    DEFAULT_WEIGHT_PRESET: str = "balanced"

    @field_validator('TOTAL_MATCH_TOLERANCE')
    @classmethod
    def validate_tolerance(cls, v: float) -> float:
        if v < 0:
            raise ValueError("TOTAL_MATCH_TOLERANCE must not be negative")
        return v

    @field_validator('MIN_PROPOSALS_FOR_MATRIX')
    @classmethod
    def validate_min_proposals(cls, v: int) -> int:
        """A ranking needs at least two proposals to compare."""
        if v < 2:
            raise ValueError("MIN_PROPOSALS_FOR_MATRIX must be at least 2")
        return v

    @field_validator('DEFAULT_WEIGHT_PRESET')
    @classmethod
    def validate_default_preset(cls, v: str) -> str:
        known = {"balanced", "price_focused", "quality_focused", "urgent"}
        if v not in known:
            raise ValueError(
                f"DEFAULT_WEIGHT_PRESET must be one of: {', '.join(sorted(known))}"
            )
        return v


settings = Settings()
