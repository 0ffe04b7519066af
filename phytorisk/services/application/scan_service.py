"""
Application service: Orchestration layer for leaf scans.
"""
from typing import Any, List, Mapping, Optional
import logging

from phytorisk.domain.models import RiskAssessment, RiskPayload, ScanResult, StressAssessment
from phytorisk.domain.payload import normalize_payload
from phytorisk.infrastructure.image_decoder import (
    ImageDecodeError,
    decode_base64_image,
    decode_image,
)
from phytorisk.services.domain.risk_scoring_engine import RiskScoringEngine
from phytorisk.services.domain.visual_stress_analyzer import VisualStressAnalyzer

logger = logging.getLogger(__name__)

RECOMMENDED_DOSE_REQUIRED = "recommendedDose is required and must be > 0"


class InvalidPayloadError(ValueError):
    """Raised when a scoring payload is missing a structurally required field."""
    pass


class PhotoRejectedError(ValueError):
    """Raised when a scan is refused because its photo failed the quality gate."""

    def __init__(self, reasons: List[str]):
        super().__init__("; ".join(reasons) or "Photo rejected")
        self.reasons = reasons


class ScanService:
    """
    Application service for leaf scan operations.

    Coordinates image decoding, photo analysis and risk scoring.
    Follows the application layer pattern - no scoring logic here,
    only coordination between infrastructure and domain layers.
    """

    def __init__(
        self,
        analyzer: VisualStressAnalyzer,
        engine: RiskScoringEngine,
        block_rejected_photos: bool = False,
    ):
        """
        Initialize the service with dependencies.

        Args:
            analyzer: Visual stress analyzer for leaf photos
            engine: Risk scoring engine
            block_rejected_photos: Refuse scans whose photo fails the quality gate
        """
        self.analyzer = analyzer
        self.engine = engine
        self.block_rejected_photos = block_rejected_photos

    def analyze_photo(self, data: bytes, mime_type: Optional[str] = None) -> StressAssessment:
        """
        Decode and analyze an uploaded photo.

        Undecodable bytes yield the analyzer's neutral fail-safe assessment
        instead of an error.

        Args:
            data: Raw image bytes
            mime_type: MIME type declared by the client

        Returns:
            StressAssessment for the photo
        """
        try:
            image = decode_image(data, mime_type, self.analyzer.config.max_side)
        except ImageDecodeError:
            return self.analyzer.unreadable()

        return self.analyzer.analyze(
            image.pixels, image.width, image.height, image.mime_type, image.size_bytes
        )

    def analyze_base64_photo(self, text: str) -> StressAssessment:
        """Decode and analyze a base64 (or data URL) encoded photo."""
        try:
            image = decode_base64_image(text, self.analyzer.config.max_side)
        except ImageDecodeError:
            return self.analyzer.unreadable()

        return self.analyzer.analyze(
            image.pixels, image.width, image.height, image.mime_type, image.size_bytes
        )

    def score_risk(self, payload: Optional[Mapping[str, Any]]) -> RiskAssessment:
        """
        Normalize and score a raw payload.

        Raises:
            InvalidPayloadError: If recommendedDose is missing or not positive
        """
        canonical = normalize_payload(payload)
        self._require_recommended_dose(canonical)
        return self.engine.score_payload(canonical)

    def scan(self, payload: Optional[Mapping[str, Any]]) -> ScanResult:
        """
        Run a full scan: analyze the optional photo, then score once.

        The photo's stress score replaces any stress score in the payload.

        Args:
            payload: Raw payload with optional ``image`` (base64) and the
                ``inputs``/``weather``/``ai`` groups

        Returns:
            ScanResult with the risk assessment and the photo assessment

        Raises:
            InvalidPayloadError: If recommendedDose is missing or not positive
            PhotoRejectedError: If photo blocking is enabled and the photo failed
        """
        payload = payload if isinstance(payload, Mapping) else {}
        canonical = normalize_payload(payload)
        self._require_recommended_dose(canonical)

        photo = None
        image = payload.get("image")
        if isinstance(image, str) and image.strip():
            photo = self.analyze_base64_photo(image)

            if self.block_rejected_photos and not photo.accepted:
                logger.warning(f"Scan refused, photo rejected: {photo.reasons}")
                raise PhotoRejectedError(photo.reasons)

            canonical = canonical.model_copy(
                update={"ai": canonical.ai.model_copy(update={"stress_score": float(photo.stress_score)})}
            )

        risk = self.engine.score_payload(canonical)
        return ScanResult(risk=risk, photo=photo)

    @staticmethod
    def _require_recommended_dose(payload: RiskPayload) -> None:
        recommended = payload.inputs.recommended_dose
        if recommended is None or recommended <= 0:
            logger.warning(f"Rejected payload: recommendedDose={recommended}")
            raise InvalidPayloadError(RECOMMENDED_DOSE_REQUIRED)
