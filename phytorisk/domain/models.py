"""
Domain models for leaf photo and phytotoxic risk assessments.

These models represent the core domain entities and should be independent
of any infrastructure concerns (HTTP, image decoding, storage, etc.).
Field names are snake_case in Python and camelCase on the wire.
"""
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field


class VisualFeatureSet(BaseModel):
    """Color/texture metrics measured on one leaf photo."""
    leaf_coverage_ratio: float = Field(alias="leafCoverageRatio", ge=0.0, le=1.0)
    green_ratio: float = Field(alias="greenRatio", ge=0.0, le=1.0)
    yellow_ratio: float = Field(alias="yellowRatio", ge=0.0, le=1.0)
    brown_ratio: float = Field(alias="brownRatio", ge=0.0, le=1.0)
    dark_spot_ratio: float = Field(alias="darkSpotRatio", ge=0.0, le=1.0)
    edge_burn_ratio: float = Field(alias="edgeBurnRatio", ge=0.0, le=1.0)
    low_saturation_ratio: float = Field(alias="lowSaturationRatio", ge=0.0, le=1.0)
    detail_variance: float = Field(
        alias="detailVariance",
        ge=0.0,
        description="Variance of the Laplacian (sharpness proxy)"
    )
    width: int = Field(description="Source image width in pixels")
    height: int = Field(description="Source image height in pixels")
    aspect_ratio: float = Field(alias="aspectRatio")
    file_size_mb: float = Field(alias="fileSizeMB")

    class Config:
        populate_by_name = True
        frozen = True


class StressAssessment(BaseModel):
    """Verdict of the visual stress analyzer for one photo."""
    accepted: bool = Field(alias="ok", description="Whether the photo passed the quality gate")
    reasons: List[str] = Field(default_factory=list)
    metrics: Optional[VisualFeatureSet] = Field(
        default=None,
        description="Missing when the image could not be decoded"
    )
    stress_score: int = Field(alias="imageStress", ge=0, le=100)
    symptoms: List[str] = Field(default_factory=list)

    class Config:
        populate_by_name = True
        frozen = True


class AgronomicInputs(BaseModel):
    """Canonical agronomic fields after alias resolution."""
    applied_dose: Optional[float] = Field(default=None, alias="appliedDose")
    recommended_dose: Optional[float] = Field(default=None, alias="recommendedDose")
    days_since_spray: Optional[float] = Field(default=None, alias="daysSinceSpray")
    half_life_days: Optional[float] = Field(default=None, alias="halfLifeDays")
    leaf_ph: Optional[float] = Field(default=None, alias="leafPh")
    soil_ph: Optional[float] = Field(default=None, alias="soilPh")
    moisture: Optional[float] = Field(default=None, description="Moisture in percent (0-100)")

    class Config:
        populate_by_name = True
        frozen = True


class WeatherSample(BaseModel):
    """Canonical weather fields after alias resolution."""
    temp_c: Optional[float] = Field(default=None, alias="tempC")
    humidity: Optional[float] = Field(default=None, description="Relative humidity in percent")
    rainfall_mm: Optional[float] = Field(default=None, alias="rainfallMm")
    wind_kph: Optional[float] = Field(default=None, alias="windKph")

    class Config:
        populate_by_name = True
        frozen = True


class AiSignal(BaseModel):
    """Photo stress signal fed into the scoring engine."""
    stress_score: Optional[float] = Field(default=None, alias="stressScore")
    confidence: float = Field(default=50.0, description="Confidence in percent (0-100)")

    class Config:
        populate_by_name = True
        frozen = True


class RiskPayload(BaseModel):
    """Canonical scoring payload produced once at the boundary."""
    inputs: AgronomicInputs = Field(default_factory=AgronomicInputs)
    weather: WeatherSample = Field(default_factory=WeatherSample)
    ai: AiSignal = Field(default_factory=AiSignal)

    class Config:
        frozen = True


class RiskLevel(str, Enum):
    """Qualitative risk level."""
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class ComponentScoreSet(BaseModel):
    """Explainable breakdown of a risk score."""
    dose_score: float = Field(alias="doseScore", ge=0.0, le=1.0)
    decay_score: float = Field(alias="decayScore", ge=0.0, le=1.0)
    weather_score: float = Field(alias="weatherScore", ge=0.0, le=1.0)
    moisture_score: float = Field(alias="moistureScore", ge=0.0, le=1.0)
    ph_score: float = Field(alias="phScore", ge=0.0, le=1.0)
    ai_contribution: float = Field(alias="aiContribution", ge=0.0, le=1.0)
    base_score: float = Field(alias="baseScore", ge=0.0, le=1.0)
    total_score: float = Field(alias="totalScore", ge=0.0, le=1.0)

    class Config:
        populate_by_name = True
        frozen = True


class RiskAssessment(BaseModel):
    """Final phytotoxic risk assessment."""
    risk_percent: int = Field(alias="riskPercent", ge=0, le=100)
    level: RiskLevel
    breakdown: ComponentScoreSet
    tips: List[str] = Field(default_factory=list)

    class Config:
        populate_by_name = True
        frozen = True


class ScanResult(BaseModel):
    """Combined outcome of a photo analysis and the risk score it fed into."""
    risk: RiskAssessment
    photo: Optional[StressAssessment] = None

    class Config:
        frozen = True
