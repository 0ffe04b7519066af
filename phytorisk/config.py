"""
Application configuration using Pydantic settings.
"""
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Leaf Photo Quality Gate
    leaf_min_width: int = Field(
        default=480,
        description="Minimum photo width in pixels"
    )
    leaf_min_height: int = Field(
        default=480,
        description="Minimum photo height in pixels"
    )
    leaf_max_file_mb: float = Field(
        default=8.0,
        description="Maximum upload size in megabytes"
    )
    leaf_min_coverage: float = Field(
        default=0.18,
        description="Minimum fraction of leaf-like pixels"
    )
    leaf_min_detail: float = Field(
        default=35.0,
        description="Minimum Laplacian variance before a photo counts as blurry"
    )
    leaf_max_aspect: float = Field(
        default=2.3,
        description="Maximum width/height (or height/width) ratio"
    )

    # Risk Scoring Weights
    risk_weight_dose: float = Field(
        default=0.22,
        description="Weight of the dose score in the base risk"
    )
    risk_weight_decay: float = Field(
        default=0.28,
        description="Weight of the residue decay score in the base risk"
    )
    risk_weight_weather: float = Field(
        default=0.18,
        description="Weight of the weather score in the base risk"
    )
    risk_weight_moisture: float = Field(
        default=0.14,
        description="Weight of the moisture score in the base risk"
    )
    risk_weight_ph: float = Field(
        default=0.10,
        description="Weight of the pH score in the base risk"
    )
    risk_ai_cap: float = Field(
        default=0.25,
        description="Hard ceiling on the photo stress contribution"
    )

    # Scan Policy
    block_rejected_photos: bool = Field(
        default=False,
        description="Refuse combined scans whose photo fails the quality gate"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )

    # CORS Configuration
    cors_origins: list[str] = Field(
        default=["*"],
        description="Allowed CORS origins (use specific origins in production)"
    )

    # Rate Limiting
    rate_limit_requests: int = Field(
        default=100,
        description="Maximum requests per minute per client"
    )

    # Application Settings
    app_name: str = Field(
        default="PhytoRisk Leaf Scan API",
        description="Application name"
    )
    app_version: str = Field(
        default="1.0.0",
        description="Application version"
    )
    debug: bool = Field(
        default=False,
        description="Debug mode"
    )

    class Config:
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()
