"""
Canonical normalization of scoring payloads.

Clients have sent the same field under several names over time. All alias
resolution and numeric coercion happens here, once, so the scoring engine
only ever sees a ``RiskPayload``.
"""
from typing import Any, Mapping, Optional

from phytorisk.domain.models import AgronomicInputs, AiSignal, RiskPayload, WeatherSample
from phytorisk.utils.numeric import parse_number

DEFAULT_AI_CONFIDENCE = 50.0

# Canonical field -> accepted keys, in lookup order
INPUT_ALIASES: dict[str, tuple[str, ...]] = {
    "applied_dose": ("appliedDose", "dose", "userDose"),
    "recommended_dose": ("recommendedDose", "recDose", "recommended"),
    "days_since_spray": ("daysSinceSpray", "days", "sprayDays"),
    "half_life_days": ("halfLifeDays", "halfLife", "halflife"),
    "leaf_ph": ("leafPh", "leafPH"),
    "soil_ph": ("soilPh", "soilPH"),
    "moisture": ("moisture", "soilMoisture"),
}

WEATHER_ALIASES: dict[str, tuple[str, ...]] = {
    "temp_c": ("tempC", "temperatureC", "temperature"),
    "humidity": ("humidity", "humidityPct"),
    "rainfall_mm": ("rainfallMm", "rainMm", "rain", "rainMm24h"),
    "wind_kph": ("windKph", "windSpeedKph", "wind"),
}

AI_STRESS_ALIASES = ("stressScore", "imageStress")


def _group(payload: Mapping[str, Any], key: str) -> Optional[Mapping[str, Any]]:
    value = payload.get(key)
    return value if isinstance(value, Mapping) else None


def resolve_number(source: Mapping[str, Any], keys: tuple[str, ...]) -> Optional[float]:
    """
    Return the first alias that holds a usable number.

    Args:
        source: Mapping to search
        keys: Accepted keys, in priority order

    Returns:
        Parsed float, or None when no key yields a finite number
    """
    for key in keys:
        number = parse_number(source.get(key))
        if number is not None:
            return number
    return None


def normalize_payload(payload: Optional[Mapping[str, Any]]) -> RiskPayload:
    """
    Build a canonical ``RiskPayload`` from a raw request body.

    Accepts the grouped form ``{inputs, weather, ai}`` as well as a flat
    payload where the agronomic fields sit at the top level; the flat form is
    only read when there is no ``inputs`` object, even an empty one. A
    ``weather`` group nested under ``inputs`` is used when there is no
    top-level one, and ``inputs.imageStress`` is honoured as a legacy
    stress source.

    Args:
        payload: Raw payload (any alias form); None is treated as empty

    Returns:
        RiskPayload with every field parsed or left as None
    """
    payload = payload if isinstance(payload, Mapping) else {}

    # A present group wins even when empty
    inputs = _group(payload, "inputs")
    if inputs is None:
        inputs = payload
    weather = _group(payload, "weather")
    if weather is None:
        weather = _group(inputs, "weather") or {}
    ai = _group(payload, "ai") or {}

    agronomic = AgronomicInputs(
        **{field: resolve_number(inputs, keys) for field, keys in INPUT_ALIASES.items()}
    )
    sample = WeatherSample(
        **{field: resolve_number(weather, keys) for field, keys in WEATHER_ALIASES.items()}
    )

    stress = resolve_number(ai, AI_STRESS_ALIASES)
    if stress is None:
        stress = parse_number(inputs.get("imageStress"))

    signal = AiSignal(
        stress_score=stress,
        confidence=parse_number(ai.get("confidence"), DEFAULT_AI_CONFIDENCE),
    )

    return RiskPayload(inputs=agronomic, weather=sample, ai=signal)
