"""
Dependency injection for FastAPI.
"""
from typing import Annotated
from fastapi import Depends

from phytorisk.config import settings
from phytorisk.services.domain.risk_scoring_engine import RiskScoringEngine
from phytorisk.services.domain.visual_stress_analyzer import VisualStressAnalyzer
from phytorisk.services.application.scan_service import ScanService


def get_visual_stress_analyzer() -> VisualStressAnalyzer:
    """
    Dependency factory for VisualStressAnalyzer.

    Returns:
        VisualStressAnalyzer instance
    """
    return VisualStressAnalyzer()


def get_risk_scoring_engine() -> RiskScoringEngine:
    """
    Dependency factory for RiskScoringEngine.

    Returns:
        RiskScoringEngine instance
    """
    return RiskScoringEngine()


def get_scan_service(
    analyzer: Annotated[VisualStressAnalyzer, Depends(get_visual_stress_analyzer)],
    engine: Annotated[RiskScoringEngine, Depends(get_risk_scoring_engine)],
) -> ScanService:
    """
    Dependency factory for ScanService.

    Args:
        analyzer: Visual stress analyzer (injected)
        engine: Risk scoring engine (injected)

    Returns:
        ScanService instance
    """
    return ScanService(
        analyzer=analyzer,
        engine=engine,
        block_rejected_photos=settings.block_rejected_photos,
    )


# Type aliases for cleaner route signatures
ScanServiceDep = Annotated[ScanService, Depends(get_scan_service)]
