"""
Domain service: Visual stress analysis of leaf photos.

This module turns a decoded leaf photo into a 0-100 stress score using:
- Metadata validation (type, size, dimensions, aspect ratio)
- Bounded downsampling
- HSV color classification with an edge band
- Laplacian detail variance
- A quality gate and threshold-based symptom tags
"""
from typing import Optional
from dataclasses import dataclass
import logging

from phytorisk.domain.models import StressAssessment, VisualFeatureSet
from phytorisk.utils.color_features import (
    as_rgb_array,
    classify_pixels,
    downsample,
    laplacian_variance,
    luminance,
)
from phytorisk.utils.numeric import clamp, parse_number, to_percent
from phytorisk.config import settings

logger = logging.getLogger(__name__)

BYTES_PER_MB = 1024 * 1024

# Neutral score returned when the photo could not be read
UNREADABLE_STRESS_SCORE = 50
UNREADABLE_REASON = "Could not read image. Try another photo."

SYMPTOM_YELLOWING = "Yellowing (chlorosis)"
SYMPTOM_BROWNING = "Browning / necrosis"
SYMPTOM_EDGE_BURN = "Edge burn"
SYMPTOM_SPOTS = "Spots / lesions"
SYMPTOM_HEALTHY = "Mostly healthy green"


@dataclass
class AnalyzerConfig:
    """Configuration for the leaf photo quality gate and stress heuristics."""

    # Metadata checks
    min_width: int = 480
    min_height: int = 480
    max_file_mb: float = 8.0
    max_aspect: float = 2.3

    # Quality gate
    min_leaf_coverage: float = 0.18
    min_detail: float = 35.0
    max_low_saturation: float = 0.65

    # Sampling
    max_side: int = 360
    """Longer side after downsampling; bounds per-call pixel work"""

    edge_band_fraction: float = 0.10

    # Stress weights
    yellow_weight: float = 1.8
    brown_weight: float = 2.2
    dark_spot_weight: float = 1.6
    edge_burn_weight: float = 1.8
    green_weight: float = 0.8

    low_detail_factor: float = 1.6
    """Photos below ``min_detail * low_detail_factor`` get the caution penalty"""

    low_detail_penalty: float = 0.08

    # Symptom thresholds
    yellowing_threshold: float = 0.08
    browning_threshold: float = 0.05
    edge_burn_threshold: float = 0.08
    spots_threshold: float = 0.03
    healthy_green_threshold: float = 0.20

    @classmethod
    def from_settings(cls) -> "AnalyzerConfig":
        return cls(
            min_width=settings.leaf_min_width,
            min_height=settings.leaf_min_height,
            max_file_mb=settings.leaf_max_file_mb,
            max_aspect=settings.leaf_max_aspect,
            min_leaf_coverage=settings.leaf_min_coverage,
            min_detail=settings.leaf_min_detail,
        )


class VisualStressAnalyzer:
    """
    Domain service estimating visible leaf stress from a photo.

    The analyzer only reports: it annotates a photo with reasons and an
    accept/reject verdict, while the decision to block a rejected photo
    belongs to the caller. It never raises for malformed metadata.
    """

    def __init__(self, config: Optional[AnalyzerConfig] = None):
        self.config = config or AnalyzerConfig.from_settings()

    def analyze(
        self,
        pixels,
        width,
        height,
        mime_type: Optional[str],
        size_bytes,
        config: Optional[AnalyzerConfig] = None,
    ) -> StressAssessment:
        """
        Analyze a decoded leaf photo.

        Args:
            pixels: Decoded pixel buffer, ``(H, W, 3|4)`` or ``(H, W)``;
                None signals that decoding failed upstream
            width: Source image width in pixels
            height: Source image height in pixels
            mime_type: Declared MIME type of the upload
            size_bytes: Upload size in bytes
            config: Per-call override of the analyzer configuration

        Returns:
            StressAssessment for the photo
        """
        config = config or self.config

        if pixels is None:
            return self.unreadable()

        try:
            rgb = as_rgb_array(pixels)
        except ValueError as e:
            logger.warning(f"Unusable pixel buffer: {e}")
            return self.unreadable()

        if rgb.size == 0:
            return self.unreadable()

        # Step 1: Metadata validation (annotates only)
        width_px = int(max(0.0, parse_number(width, 0.0)))
        height_px = int(max(0.0, parse_number(height, 0.0)))
        size = max(0.0, parse_number(size_bytes, 0.0))
        aspect = width_px / height_px if width_px > 0 and height_px > 0 else 0.0

        reasons = self._validate_metadata(width_px, height_px, aspect, mime_type, size, config)

        # Step 2: Downsample to bound the per-photo work
        sampled = downsample(rgb, config.max_side)

        # Step 3: Color classification
        counts = classify_pixels(sampled, config.edge_band_fraction)

        # Step 4: Detail variance
        detail = laplacian_variance(luminance(sampled))

        metrics = VisualFeatureSet(
            leaf_coverage_ratio=counts.ratio(counts.leaf_like),
            green_ratio=counts.ratio(counts.green),
            yellow_ratio=counts.ratio(counts.yellow),
            brown_ratio=counts.ratio(counts.brown),
            dark_spot_ratio=counts.ratio(counts.dark_spot),
            edge_burn_ratio=counts.edge_burn_ratio,
            low_saturation_ratio=counts.ratio(counts.low_saturation),
            detail_variance=detail,
            width=width_px,
            height=height_px,
            aspect_ratio=aspect,
            file_size_mb=size / BYTES_PER_MB,
        )

        logger.debug(
            f"Leaf metrics: coverage={metrics.leaf_coverage_ratio:.3f}, "
            f"green={metrics.green_ratio:.3f}, yellow={metrics.yellow_ratio:.3f}, "
            f"brown={metrics.brown_ratio:.3f}, spots={metrics.dark_spot_ratio:.3f}, "
            f"edge_burn={metrics.edge_burn_ratio:.3f}, detail={detail:.1f}"
        )

        # Step 5: Quality gate
        reasons.extend(self._quality_reasons(metrics, config))

        # Steps 6-7: Stress score and symptoms
        stress_score = self._stress_score(metrics, config)
        symptoms = self._symptoms(metrics, config)

        accepted = not reasons
        logger.info(f"Leaf analysis: stress={stress_score}, accepted={accepted}, "
                    f"symptoms={symptoms}")

        return StressAssessment(
            accepted=accepted,
            reasons=reasons,
            metrics=metrics,
            stress_score=stress_score,
            symptoms=symptoms,
        )

    def unreadable(self) -> StressAssessment:
        """
        Fail-safe assessment for a photo that could not be decoded.

        Uses a neutral stress score so that a decode failure is never
        mistaken for a healthy leaf.
        """
        return StressAssessment(
            accepted=False,
            reasons=[UNREADABLE_REASON],
            metrics=None,
            stress_score=UNREADABLE_STRESS_SCORE,
            symptoms=[],
        )

    def _validate_metadata(
        self,
        width: int,
        height: int,
        aspect: float,
        mime_type: Optional[str],
        size_bytes: float,
        config: AnalyzerConfig,
    ) -> list[str]:
        """
        Check upload metadata against the configured limits.

        Returns:
            Human-readable reasons for every failed check
        """
        reasons = []

        if not isinstance(mime_type, str) or not mime_type.lower().startswith("image/"):
            reasons.append("Please upload a real photo (JPG/PNG/WebP).")

        if size_bytes > config.max_file_mb * BYTES_PER_MB:
            reasons.append(f"Image too large (max {config.max_file_mb:g}MB).")

        if width < config.min_width or height < config.min_height:
            reasons.append(
                f"Image too small. Use at least {config.min_width}x{config.min_height}."
            )

        if aspect > config.max_aspect or aspect < 1 / config.max_aspect:
            reasons.append("Weird aspect ratio. Avoid screenshots/collages.")

        if reasons:
            logger.debug(f"Metadata checks failed: {reasons}")

        return reasons

    def _quality_reasons(self, metrics: VisualFeatureSet, config: AnalyzerConfig) -> list[str]:
        reasons = []

        if metrics.leaf_coverage_ratio < config.min_leaf_coverage:
            reasons.append(
                "Leaf not clearly visible. Move closer and fill the frame with the leaf."
            )
        if metrics.detail_variance < config.min_detail:
            reasons.append("Photo looks too blurry. Hold steady and use better lighting.")
        if metrics.low_saturation_ratio > config.max_low_saturation:
            reasons.append("Photo looks like a screenshot/graphic. Upload a real leaf photo.")

        return reasons

    def _stress_score(self, metrics: VisualFeatureSet, config: AnalyzerConfig) -> int:
        """
        Weighted color-ratio stress, with a flat penalty for low-detail photos.

        Returns:
            Stress score in [0, 100]
        """
        raw = (
            config.yellow_weight * metrics.yellow_ratio
            + config.brown_weight * metrics.brown_ratio
            + config.dark_spot_weight * metrics.dark_spot_ratio
            + config.edge_burn_weight * metrics.edge_burn_ratio
            - config.green_weight * metrics.green_ratio
        )
        raw = clamp(raw)

        if metrics.detail_variance < config.min_detail * config.low_detail_factor:
            raw = clamp(raw + config.low_detail_penalty)

        return to_percent(raw)

    def _symptoms(self, metrics: VisualFeatureSet, config: AnalyzerConfig) -> list[str]:
        symptoms = []

        if metrics.yellow_ratio > config.yellowing_threshold:
            symptoms.append(SYMPTOM_YELLOWING)
        if metrics.brown_ratio > config.browning_threshold:
            symptoms.append(SYMPTOM_BROWNING)
        if metrics.edge_burn_ratio > config.edge_burn_threshold:
            symptoms.append(SYMPTOM_EDGE_BURN)
        if metrics.dark_spot_ratio > config.spots_threshold:
            symptoms.append(SYMPTOM_SPOTS)

        if not symptoms and metrics.green_ratio > config.healthy_green_threshold:
            symptoms.append(SYMPTOM_HEALTHY)

        return symptoms
