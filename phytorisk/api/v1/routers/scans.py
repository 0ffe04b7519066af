"""
API router for leaf scan endpoints.
"""
from typing import Annotated, Any
from fastapi import APIRouter, Body, HTTPException, Request
from starlette.concurrency import run_in_threadpool

from phytorisk.api.dependencies import ScanServiceDep
from phytorisk.api.v1.models.responses import ErrorResponse, PhotoRejectedResponse
from phytorisk.domain.models import RiskAssessment, ScanResult, StressAssessment
from phytorisk.middleware.rate_limit import SCAN_RATE_LIMIT, limiter
from phytorisk.services.application.scan_service import (
    InvalidPayloadError,
    PhotoRejectedError,
)


router = APIRouter(
    tags=["scans"],
)

RISK_PAYLOAD_EXAMPLE = {
    "inputs": {
        "appliedDose": 1.2,
        "recommendedDose": 1.0,
        "daysSinceSpray": 2,
        "halfLifeDays": 5,
        "leafPh": 6.4,
        "soilPh": 7.2,
        "moisture": 40,
    },
    "weather": {"tempC": 29, "humidity": 72, "rainfallMm": 0, "windKph": 8},
    "ai": {"stressScore": 35, "confidence": 60},
}

RATE_LIMITED = {"description": "Rate limit exceeded"}


@router.post(
    "/risk",
    response_model=RiskAssessment,
    summary="Score phytotoxic risk",
    description="""
    Compute the phytotoxic risk for one spray event.

    Accepts the grouped payload `{inputs, weather, ai}` (or flat inputs) and
    the legacy field names older clients send, e.g. `dose`/`userDose` for
    `appliedDose`. `recommendedDose` must be present and positive.
    """,
    responses={
        400: {"model": ErrorResponse, "description": "recommendedDose missing or not positive"},
        429: RATE_LIMITED,
    }
)
@limiter.limit(SCAN_RATE_LIMIT)
async def score_risk(
    request: Request,
    scan_service: ScanServiceDep,
    payload: Annotated[dict[str, Any], Body(examples=[RISK_PAYLOAD_EXAMPLE])],
) -> RiskAssessment:
    """
    Score a risk payload.

    Args:
        request: Incoming request (used for rate limiting)
        scan_service: Scan service (injected dependency)
        payload: Raw scoring payload

    Returns:
        RiskAssessment, relayed verbatim from the scoring engine

    Raises:
        HTTPException: If recommendedDose is missing or not positive
    """
    try:
        return scan_service.score_risk(payload)
    except InvalidPayloadError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post(
    "/leaf-analysis",
    response_model=StressAssessment,
    summary="Analyze a leaf photo",
    description="""
    Analyze a leaf photo sent as the raw request body.

    The `Content-Type` header is taken as the photo's MIME type. The response
    reports the photo stress score, symptom tags and quality-gate verdict;
    a photo that cannot be decoded yields `ok=false` with a neutral score
    of 50 rather than an error.
    """,
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {
                "image/jpeg": {"schema": {"type": "string", "format": "binary"}},
                "image/png": {"schema": {"type": "string", "format": "binary"}},
                "image/webp": {"schema": {"type": "string", "format": "binary"}},
            },
        }
    },
    responses={429: RATE_LIMITED},
)
@limiter.limit(SCAN_RATE_LIMIT)
async def analyze_leaf(
    request: Request,
    scan_service: ScanServiceDep,
) -> StressAssessment:
    """
    Analyze an uploaded leaf photo.

    Args:
        request: Incoming request carrying the image bytes
        scan_service: Scan service (injected dependency)

    Returns:
        StressAssessment for the photo
    """
    data = await request.body()
    content_type = request.headers.get("content-type")
    mime_type = content_type.split(";", 1)[0].strip() if content_type else None

    return await run_in_threadpool(scan_service.analyze_photo, data, mime_type)


@router.post(
    "/scan",
    response_model=ScanResult,
    summary="Analyze a photo and score risk",
    description="""
    Run a complete scan in one call.

    When `image` (base64 or a data URL) is present the photo is analyzed
    first and its stress score is merged into `ai.stressScore` before the
    risk is scored once.
    """,
    responses={
        400: {"model": ErrorResponse, "description": "recommendedDose missing or not positive"},
        422: {"model": PhotoRejectedResponse, "description": "Photo failed the quality gate"},
        429: RATE_LIMITED,
    }
)
@limiter.limit(SCAN_RATE_LIMIT)
async def scan(
    request: Request,
    scan_service: ScanServiceDep,
    payload: Annotated[dict[str, Any], Body(examples=[RISK_PAYLOAD_EXAMPLE])],
) -> ScanResult:
    """
    Analyze the optional photo and score the payload.

    Args:
        request: Incoming request (used for rate limiting)
        scan_service: Scan service (injected dependency)
        payload: Raw scoring payload with an optional ``image`` field

    Returns:
        ScanResult with the risk and photo assessments

    Raises:
        HTTPException: If the payload is invalid or the photo is refused
    """
    try:
        return await run_in_threadpool(scan_service.scan, payload)
    except InvalidPayloadError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except PhotoRejectedError as e:
        raise HTTPException(
            status_code=422,
            detail={"error": "Photo rejected", "reasons": e.reasons},
        )
