"""
Integration tests for API endpoints.

Tests the full HTTP request/response cycle through the real services.
"""
import base64

import pytest

from phytorisk.main import app
from phytorisk.api.dependencies import get_scan_service
from phytorisk.services.application.scan_service import RECOMMENDED_DOSE_REQUIRED, ScanService


def as_data_url(png: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(png).decode("ascii")


# ============================================================
# Health Check Tests
# ============================================================

class TestHealthEndpoints:
    """Tests for health check endpoints."""

    def test_root_endpoint(self, test_client):
        """Root endpoint should return healthy status."""
        response = test_client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "service" in data
        assert "version" in data

    def test_health_endpoint(self, test_client):
        """Health endpoint should return healthy status."""
        response = test_client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


# ============================================================
# Risk Endpoint Tests
# ============================================================

class TestRiskEndpoint:
    """Tests for the risk scoring endpoint."""

    def test_label_dose_scenario(self, test_client, label_dose_payload):
        """Should relay the engine's assessment with camelCase keys."""
        response = test_client.post("/api/v1/risk", json=label_dose_payload)

        assert response.status_code == 200
        data = response.json()
        assert data["riskPercent"] == 57
        assert data["level"] == "Medium"
        assert set(data["breakdown"]) == {
            "doseScore", "decayScore", "weatherScore", "moistureScore",
            "phScore", "aiContribution", "baseScore", "totalScore",
        }
        assert data["breakdown"]["totalScore"] == pytest.approx(0.57)
        assert data["tips"] == ["Recent spray: residue is likely higher in the first few days."]

    def test_legacy_flat_payload(self, test_client):
        """Flat legacy payloads should score like grouped ones."""
        response = test_client.post(
            "/api/v1/risk",
            json={"dose": "1", "recDose": "1", "sprayDays": 0, "halflife": 5},
        )

        assert response.status_code == 200
        assert response.json()["riskPercent"] == 57

    @pytest.mark.parametrize(
        "payload",
        [
            {"inputs": {"appliedDose": 1}},
            {"inputs": {"recommendedDose": 0}},
        ],
    )
    def test_missing_recommended_dose(self, test_client, payload):
        """Should return 400 when recommendedDose is missing or not positive."""
        response = test_client.post("/api/v1/risk", json=payload)

        assert response.status_code == 400
        assert response.json()["detail"] == RECOMMENDED_DOSE_REQUIRED

    def test_non_object_body(self, test_client):
        """Should return 422 when the body is not a JSON object."""
        response = test_client.post("/api/v1/risk", json=[1, 2, 3])

        assert response.status_code == 422


# ============================================================
# Leaf Analysis Endpoint Tests
# ============================================================

class TestLeafAnalysisEndpoint:
    """Tests for the leaf photo endpoint."""

    def test_healthy_leaf(self, test_client, healthy_leaf_png):
        response = test_client.post(
            "/api/v1/leaf-analysis",
            content=healthy_leaf_png,
            headers={"Content-Type": "image/png"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["ok"] is True
        assert data["imageStress"] == 0
        assert data["symptoms"] == ["Mostly healthy green"]
        assert data["metrics"]["width"] == 480
        assert "leafCoverageRatio" in data["metrics"]
        assert "fileSizeMB" in data["metrics"]

    def test_rejected_photo_reasons(self, test_client, gray_image_png):
        response = test_client.post(
            "/api/v1/leaf-analysis",
            content=gray_image_png,
            headers={"Content-Type": "image/png"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["ok"] is False
        assert len(data["reasons"]) == 3

    def test_garbage_body_is_neutral(self, test_client):
        """Undecodable uploads are reported, not raised."""
        response = test_client.post(
            "/api/v1/leaf-analysis",
            content=b"not an image",
            headers={"Content-Type": "image/jpeg"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["ok"] is False
        assert data["imageStress"] == 50
        assert data["metrics"] is None


# ============================================================
# Combined Scan Endpoint Tests
# ============================================================

class TestScanEndpoint:
    """Tests for the combined photo + risk endpoint."""

    def test_scan_with_photo(self, test_client, label_dose_payload, edge_burned_leaf_png):
        payload = dict(label_dose_payload, image=as_data_url(edge_burned_leaf_png))

        response = test_client.post("/api/v1/scan", json=payload)

        assert response.status_code == 200
        data = response.json()
        assert data["photo"]["imageStress"] >= 90
        assert data["risk"]["riskPercent"] > 57
        assert data["risk"]["breakdown"]["aiContribution"] > 0

    def test_scan_without_photo(self, test_client, label_dose_payload):
        response = test_client.post("/api/v1/scan", json=label_dose_payload)

        assert response.status_code == 200
        data = response.json()
        assert data["photo"] is None
        assert data["risk"]["riskPercent"] == 57

    def test_scan_missing_dose(self, test_client):
        response = test_client.post("/api/v1/scan", json={"inputs": {}})

        assert response.status_code == 400

    def test_scan_blocked_photo(self, test_client, label_dose_payload, gray_image_png,
                                analyzer, engine):
        """Should return 422 with reasons when blocking is enabled."""
        def override_service():
            return ScanService(analyzer=analyzer, engine=engine, block_rejected_photos=True)

        app.dependency_overrides[get_scan_service] = override_service

        try:
            response = test_client.post(
                "/api/v1/scan",
                json=dict(label_dose_payload, image=as_data_url(gray_image_png)),
            )

            assert response.status_code == 422
            detail = response.json()["detail"]
            assert detail["error"] == "Photo rejected"
            assert len(detail["reasons"]) == 3
        finally:
            app.dependency_overrides.clear()


# ============================================================
# Error Handling Middleware Tests
# ============================================================

class FailingScanService:
    """Scan service stand-in whose scoring raises the given error."""

    def __init__(self, error: Exception):
        self.error = error

    def score_risk(self, payload):
        raise self.error


class TestErrorHandling:
    """Tests for errors that escape the routers."""

    @pytest.fixture
    def failing_service(self):
        def install(error: Exception):
            app.dependency_overrides[get_scan_service] = lambda: FailingScanService(error)

        yield install
        app.dependency_overrides.clear()

    def test_unexpected_error_is_500(self, test_client, failing_service, label_dose_payload):
        """Unexpected errors should return a generic 500 without internals."""
        failing_service(RuntimeError("engine exploded"))

        response = test_client.post("/api/v1/risk", json=label_dose_payload)

        assert response.status_code == 500
        assert response.json() == {"detail": "An unexpected error occurred"}

    def test_stray_value_error_is_400(self, test_client, failing_service, label_dose_payload):
        """A ValueError the route does not handle should return 400 with its message."""
        failing_service(ValueError("weights must sum to one"))

        response = test_client.post("/api/v1/risk", json=label_dose_payload)

        assert response.status_code == 400
        assert response.json() == {"detail": "weights must sum to one"}


# ============================================================
# Response Format Tests
# ============================================================

class TestResponseFormats:
    """Tests for API response formats."""

    def test_openapi_schema_available(self, test_client):
        """OpenAPI schema should be available."""
        response = test_client.get("/openapi.json")

        assert response.status_code == 200
        data = response.json()
        assert "openapi" in data
        assert "/api/v1/risk" in data["paths"]
        assert "/api/v1/leaf-analysis" in data["paths"]
        assert "/api/v1/scan" in data["paths"]

    def test_docs_endpoint_available(self, test_client):
        """Swagger docs should be available."""
        response = test_client.get("/docs")

        assert response.status_code == 200


# ============================================================
# CORS Tests
# ============================================================

class TestCORS:
    """Tests for CORS configuration."""

    def test_cors_preflight(self, test_client):
        """CORS preflight should succeed for any origin by default."""
        response = test_client.options(
            "/api/v1/risk",
            headers={
                "Origin": "http://example.com",
                "Access-Control-Request-Method": "POST",
            }
        )

        assert response.status_code == 200
        assert "access-control-allow-origin" in response.headers


# ============================================================
# Rate Limiting Tests
# ============================================================

class TestRateLimiting:
    """Tests for rate limiting functionality."""

    def test_rate_limit_documented_in_openapi(self, test_client):
        """Rate limit should be documented in OpenAPI."""
        paths = test_client.get("/openapi.json").json()["paths"]

        for path in ("/api/v1/risk", "/api/v1/leaf-analysis", "/api/v1/scan"):
            assert "429" in paths[path]["post"]["responses"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
