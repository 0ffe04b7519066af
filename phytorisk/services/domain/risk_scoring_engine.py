"""
Domain service: Phytotoxic risk scoring.

Fuses agronomic, weather and photo-stress signals into a single risk
percentage using:
- Saturating component curves (dose, residue decay, pH, moisture, weather)
- A weighted base score
- A bounded photo-stress contribution
- Post-hoc sanity rules that can only lower the result
"""
from typing import Optional
from dataclasses import dataclass
import logging
import math

from phytorisk.domain.models import (
    AgronomicInputs,
    ComponentScoreSet,
    RiskAssessment,
    RiskLevel,
    RiskPayload,
    WeatherSample,
)
from phytorisk.utils.numeric import clamp, parse_number, to_percent
from phytorisk.config import settings

logger = logging.getLogger(__name__)

NEUTRAL_PH = 7.0
PH_SPAN = 3.0
MISSING_PH_DISTANCE = 0.25
MISSING_PH_SCORE = 0.25
UNKNOWN_HALF_LIFE_SCORE = 0.5
MISSING_MOISTURE_SCORE = 0.35
WEATHER_BASELINE = 0.35
DEFAULT_AI_CONFIDENCE = 50.0

TIP_HIGH_RISK = "High risk: follow label intervals and consider waiting before harvest."
TIP_RECENT_SPRAY = "Recent spray: residue is likely higher in the first few days."
TIP_OVERDOSE = (
    "Applied dose looks higher than recommended. Verify dilution and nozzle calibration."
)
TIP_HUMIDITY = "High humidity can increase plant stress; confirm with field conditions."
TIP_LEAF_STRESS = "Leaf stress detected: inspect for pests, disease, or nutrient stress too."


@dataclass
class ScoringConfig:
    """Configuration for risk fusion, photo-stress influence and sanity rules."""

    # Base weights
    weight_dose: float = 0.22
    weight_decay: float = 0.28
    weight_weather: float = 0.18
    weight_moisture: float = 0.14
    weight_ph: float = 0.10

    # Photo stress contribution
    ai_cap: float = 0.25
    """Hard ceiling on the photo-stress share of the total"""

    ai_min_confidence: float = 0.3
    """Confidence floor so the photo signal is never fully silenced"""

    ai_recent_days: float = 7.0
    ai_stale_days: float = 14.0
    ai_mid_time_factor: float = 0.65
    ai_stale_time_factor: float = 0.4
    ai_low_stress: float = 0.4
    ai_mid_stress: float = 0.7
    ai_low_soften: float = 0.7
    ai_mid_soften: float = 0.85

    # Sanity rules
    long_ago_days: float = 20.0
    long_ago_min_percent: int = 60
    long_ago_min_ai: float = 0.15
    long_ago_cap: int = 55
    residue_floor_score: float = 0.2
    residue_floor_cap: int = 45
    unsure_stress: float = 80.0
    unsure_confidence: float = 40.0
    unsure_penalty: int = 10

    # Levels
    low_max_percent: int = 30
    medium_max_percent: int = 60

    # Tips
    high_risk_tip_percent: int = 61
    recent_spray_days: float = 3.0
    overdose_ratio: float = 1.05
    humid_percent: float = 80.0
    leaf_stress_tip_score: float = 75.0

    @classmethod
    def from_settings(cls) -> "ScoringConfig":
        return cls(
            weight_dose=settings.risk_weight_dose,
            weight_decay=settings.risk_weight_decay,
            weight_weather=settings.risk_weight_weather,
            weight_moisture=settings.risk_weight_moisture,
            weight_ph=settings.risk_weight_ph,
            ai_cap=settings.risk_ai_cap,
        )


def dose_score(applied_dose, recommended_dose) -> float:
    """
    Dose score from the applied/recommended ratio.

    Rises linearly from 0.15 to 0.70 up to the label dose, then saturates
    towards (but never reaches) 1.0 for overdoses.

    Args:
        applied_dose: Amount applied
        recommended_dose: Label-recommended amount

    Returns:
        Score in [0, 1]; 0 when there is no usable recommendation
    """
    recommended = parse_number(recommended_dose, 0.0)
    if recommended <= 0:
        return 0.0

    applied = max(0.0, parse_number(applied_dose, 0.0))
    ratio = applied / recommended

    if ratio <= 1:
        score = 0.15 + 0.55 * ratio
    else:
        score = 0.70 + 0.30 * math.tanh(1.2 * (ratio - 1))

    return clamp(score)


def decay_score(days_since_spray, half_life_days) -> float:
    """
    Fraction of residue left after first-order decay.

    Returns:
        ``exp(-ln2 * days / half_life)`` in [0, 1], or 0.5 when the
        half-life is unknown
    """
    half_life = parse_number(half_life_days, 0.0)
    if half_life <= 0:
        return UNKNOWN_HALF_LIFE_SCORE

    days = max(0.0, parse_number(days_since_spray, 0.0))
    return clamp(math.exp(-math.log(2) * days / half_life))


def ph_score(leaf_ph, soil_ph) -> float:
    """Mild penalty for leaf/soil pH away from neutral."""
    leaf = parse_number(leaf_ph)
    soil = parse_number(soil_ph)

    if leaf is None and soil is None:
        return MISSING_PH_SCORE

    def distance(ph: Optional[float]) -> float:
        if ph is None:
            return MISSING_PH_DISTANCE
        return min(abs(ph - NEUTRAL_PH) / PH_SPAN, 1.0)

    return clamp(0.2 + 0.6 * (0.5 * distance(leaf) + 0.5 * distance(soil)))


def moisture_score(moisture) -> float:
    """Monotonic moisture score; wetter conditions raise uptake."""
    value = parse_number(moisture)
    if value is None:
        return MISSING_MOISTURE_SCORE
    return clamp(0.25 + 0.55 * clamp(value / 100))


def weather_score(temp_c=None, humidity=None, rainfall_mm=None, wind_kph=None) -> float:
    """
    Weather adjustment around a 0.35 baseline.

    The three temperature bands are independent additive terms, so the
    score steps from +0.10 to +0.12 just above 35 C.

    Returns:
        Score in [0, 1]
    """
    score = WEATHER_BASELINE

    temp = parse_number(temp_c)
    if temp is not None:
        if 18 <= temp <= 35:
            score += 0.10
        if temp > 35:
            score += 0.12
        if temp < 12:
            score -= 0.06

    humid = parse_number(humidity)
    if humid is not None:
        score += 0.18 * clamp(humid / 100)

    rain = parse_number(rainfall_mm)
    if rain is not None:
        # wash-off saturates at 20 mm
        score -= 0.20 * clamp(rain / 20)

    wind = parse_number(wind_kph)
    if wind is not None:
        score += 0.06 * clamp(wind / 35)

    return clamp(score)


def ai_contribution(
    stress_score,
    confidence=DEFAULT_AI_CONFIDENCE,
    days_since_spray=None,
    config: Optional[ScoringConfig] = None,
) -> float:
    """
    Bounded contribution of the photo stress score to the total risk.

    Mid-range stress is softened to limit false alarms, the signal is
    scaled by confidence (floored) and fades as the spray gets older.

    Args:
        stress_score: Photo stress on 0-100, or None when no photo was analyzed
        confidence: Confidence in the stress score on 0-100
        days_since_spray: Days since application
        config: Scoring configuration

    Returns:
        Contribution in [0, config.ai_cap]
    """
    config = config or ScoringConfig()

    raw_stress = parse_number(stress_score)
    if raw_stress is None:
        return 0.0

    stress = clamp(raw_stress / 100)
    conf = clamp(
        parse_number(confidence, DEFAULT_AI_CONFIDENCE) / 100,
        config.ai_min_confidence,
        1.0,
    )

    days = parse_number(days_since_spray, 0.0)
    if days >= config.ai_stale_days:
        time_factor = config.ai_stale_time_factor
    elif days >= config.ai_recent_days:
        time_factor = config.ai_mid_time_factor
    else:
        time_factor = 1.0

    if stress < config.ai_low_stress:
        softened = stress * config.ai_low_soften
    elif stress < config.ai_mid_stress:
        softened = stress * config.ai_mid_soften
    else:
        softened = stress

    return clamp(min(softened * conf * time_factor * config.ai_cap, config.ai_cap))


class RiskScoringEngine:
    """
    Domain service computing the phytotoxic risk assessment.

    Pure and total: every input may be missing or malformed and still
    yields a clamped, finite result. Identical inputs always produce
    identical assessments.
    """

    def __init__(self, config: Optional[ScoringConfig] = None):
        self.config = config or ScoringConfig.from_settings()

    def score_payload(self, payload: RiskPayload) -> RiskAssessment:
        """Score a canonical payload produced by ``normalize_payload``."""
        return self.score(
            agronomic=payload.inputs,
            weather=payload.weather,
            ai_stress=payload.ai.stress_score,
            ai_confidence=payload.ai.confidence,
        )

    def score(
        self,
        agronomic: Optional[AgronomicInputs] = None,
        weather: Optional[WeatherSample] = None,
        ai_stress=None,
        ai_confidence=DEFAULT_AI_CONFIDENCE,
    ) -> RiskAssessment:
        """
        Compute the risk assessment.

        Args:
            agronomic: Dose, timing, pH and moisture inputs
            weather: Weather sample at spray time
            ai_stress: Photo stress score (0-100), or None
            ai_confidence: Confidence in the stress score (0-100)

        Returns:
            RiskAssessment with breakdown and tips
        """
        agronomic = agronomic or AgronomicInputs()
        weather = weather or WeatherSample()
        config = self.config

        confidence = parse_number(ai_confidence, DEFAULT_AI_CONFIDENCE)
        days = max(0.0, parse_number(agronomic.days_since_spray, 0.0))

        # Step 1: Component scores
        s_dose = dose_score(agronomic.applied_dose, agronomic.recommended_dose)
        s_decay = decay_score(days, agronomic.half_life_days)
        s_ph = ph_score(agronomic.leaf_ph, agronomic.soil_ph)
        s_moisture = moisture_score(agronomic.moisture)
        s_weather = weather_score(
            temp_c=weather.temp_c,
            humidity=weather.humidity,
            rainfall_mm=weather.rainfall_mm,
            wind_kph=weather.wind_kph,
        )
        s_ai = ai_contribution(ai_stress, confidence, days, config)

        # Step 2: Weighted fusion
        base = clamp(
            config.weight_dose * s_dose
            + config.weight_decay * s_decay
            + config.weight_weather * s_weather
            + config.weight_moisture * s_moisture
            + config.weight_ph * s_ph
        )
        total = clamp(base + s_ai)
        risk_percent = to_percent(total)

        logger.debug(
            f"Component scores: dose={s_dose:.3f}, decay={s_decay:.3f}, "
            f"weather={s_weather:.3f}, moisture={s_moisture:.3f}, ph={s_ph:.3f}, "
            f"ai={s_ai:.3f}, base={base:.3f}"
        )

        # Step 3: Sanity rules
        risk_percent = self._apply_sanity_rules(
            risk_percent=risk_percent,
            days=days,
            s_dose=s_dose,
            s_decay=s_decay,
            s_ai=s_ai,
            raw_stress=parse_number(ai_stress, 0.0),
            confidence=confidence,
        )

        level = self._level(risk_percent)
        logger.info(f"Risk scored: {risk_percent}% ({level.value})")

        breakdown = ComponentScoreSet(
            dose_score=s_dose,
            decay_score=s_decay,
            weather_score=s_weather,
            moisture_score=s_moisture,
            ph_score=s_ph,
            ai_contribution=s_ai,
            base_score=base,
            total_score=clamp(risk_percent / 100),
        )

        return RiskAssessment(
            risk_percent=risk_percent,
            level=level,
            breakdown=breakdown,
            tips=self._tips(risk_percent, days, agronomic, weather, ai_stress),
        )

    def _apply_sanity_rules(
        self,
        risk_percent: int,
        days: float,
        s_dose: float,
        s_decay: float,
        s_ai: float,
        raw_stress: float,
        confidence: float,
    ) -> int:
        """
        Apply the post-fusion overrides, in order. Each can only lower the risk.

        Returns:
            Adjusted risk percentage
        """
        config = self.config
        fused = risk_percent

        # Old spray: photo stress alone cannot keep the risk high
        if (
            days >= config.long_ago_days
            and risk_percent > config.long_ago_min_percent
            and s_ai > config.long_ago_min_ai
        ):
            risk_percent = min(risk_percent, config.long_ago_cap)

        # Light application that has mostly decayed cannot be High
        if s_dose < config.residue_floor_score and s_decay < config.residue_floor_score:
            risk_percent = min(risk_percent, config.residue_floor_cap)

        # Strong stress reading with low confidence
        if raw_stress > config.unsure_stress and confidence < config.unsure_confidence:
            risk_percent = max(risk_percent - config.unsure_penalty, 0)

        if risk_percent != fused:
            logger.info(f"Sanity rules lowered risk from {fused}% to {risk_percent}%")

        return risk_percent

    def _level(self, risk_percent: int) -> RiskLevel:
        if risk_percent <= self.config.low_max_percent:
            return RiskLevel.LOW
        if risk_percent <= self.config.medium_max_percent:
            return RiskLevel.MEDIUM
        return RiskLevel.HIGH

    def _tips(
        self,
        risk_percent: int,
        days: float,
        agronomic: AgronomicInputs,
        weather: WeatherSample,
        ai_stress,
    ) -> list[str]:
        """Ordered advisory strings gated on fixed thresholds."""
        config = self.config
        tips = []

        if risk_percent >= config.high_risk_tip_percent:
            tips.append(TIP_HIGH_RISK)

        if days < config.recent_spray_days:
            tips.append(TIP_RECENT_SPRAY)

        applied = parse_number(agronomic.applied_dose)
        recommended = parse_number(agronomic.recommended_dose)
        if applied is not None and recommended is not None and recommended > 0:
            if applied / recommended > config.overdose_ratio:
                tips.append(TIP_OVERDOSE)

        if parse_number(weather.humidity, 0.0) >= config.humid_percent:
            tips.append(TIP_HUMIDITY)

        stress = parse_number(ai_stress)
        if stress is not None and stress >= config.leaf_stress_tip_score:
            tips.append(TIP_LEAF_STRESS)

        return tips
