"""
Shared pytest fixtures for all tests.

This module provides common fixtures including:
- Synthetic leaf photos (healthy, edge-burned, flat gray)
- Sample scoring payloads
- Engine, analyzer and service instances
- FastAPI test client
"""
from io import BytesIO

import numpy as np
import pytest
from fastapi.testclient import TestClient
from PIL import Image

from phytorisk.main import app
from phytorisk.middleware.rate_limit import limiter
from phytorisk.services.application.scan_service import ScanService
from phytorisk.services.domain.risk_scoring_engine import RiskScoringEngine, ScoringConfig
from phytorisk.services.domain.visual_stress_analyzer import AnalyzerConfig, VisualStressAnalyzer

LEAF_GREEN = (40, 140, 40)
LEAF_BROWN = (140, 70, 30)


def encode_png(pixels: np.ndarray) -> bytes:
    """Encode an RGB array as PNG bytes."""
    buffer = BytesIO()
    Image.fromarray(pixels).save(buffer, format="PNG")
    return buffer.getvalue()


def textured_green(height: int, width: int, seed: int = 0) -> np.ndarray:
    """Green leaf tissue with per-pixel noise so it has fine detail."""
    rng = np.random.default_rng(seed)
    noise = rng.integers(-20, 21, size=(height, width, 3))
    return np.clip(np.array(LEAF_GREEN) + noise, 0, 255).astype(np.uint8)


# ============================================================
# Synthetic Image Fixtures
# ============================================================

@pytest.fixture
def healthy_leaf() -> np.ndarray:
    """A sharp, fully green 480x480 leaf photo."""
    return textured_green(480, 480)


@pytest.fixture
def edge_burned_leaf() -> np.ndarray:
    """A green leaf with a solid brown outer ring (10% of the side)."""
    pixels = textured_green(480, 480, seed=1)
    band = 48
    pixels[:band, :] = LEAF_BROWN
    pixels[-band:, :] = LEAF_BROWN
    pixels[:, :band] = LEAF_BROWN
    pixels[:, -band:] = LEAF_BROWN
    return pixels


@pytest.fixture
def gray_image() -> np.ndarray:
    """A uniform mid-gray 600x600 image."""
    return np.full((600, 600, 3), 128, dtype=np.uint8)


@pytest.fixture
def healthy_leaf_png(healthy_leaf) -> bytes:
    return encode_png(healthy_leaf)


@pytest.fixture
def edge_burned_leaf_png(edge_burned_leaf) -> bytes:
    return encode_png(edge_burned_leaf)


@pytest.fixture
def gray_image_png(gray_image) -> bytes:
    return encode_png(gray_image)


# ============================================================
# Payload Fixtures
# ============================================================

@pytest.fixture
def label_dose_payload() -> dict:
    """Label dose sprayed today, no weather or photo signal."""
    return {
        "inputs": {
            "appliedDose": 1,
            "recommendedDose": 1,
            "daysSinceSpray": 0,
            "halfLifeDays": 5,
        }
    }


# ============================================================
# Service Fixtures
# ============================================================

@pytest.fixture
def engine() -> RiskScoringEngine:
    return RiskScoringEngine(config=ScoringConfig())


@pytest.fixture
def analyzer() -> VisualStressAnalyzer:
    return VisualStressAnalyzer(config=AnalyzerConfig())


@pytest.fixture
def scan_service(analyzer, engine) -> ScanService:
    return ScanService(analyzer=analyzer, engine=engine)


# ============================================================
# FastAPI Test Client Fixtures
# ============================================================

@pytest.fixture(autouse=True)
def reset_rate_limits():
    """Start every test with fresh rate-limit counters."""
    limiter.reset()
    yield


@pytest.fixture
def test_client() -> TestClient:
    """Create a synchronous test client for FastAPI."""
    return TestClient(app)
