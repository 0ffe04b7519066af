"""
API response models using Pydantic.
"""
from typing import List
from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Error body for rejected requests."""
    detail: str = Field(
        description="Why the request was rejected",
        examples=["recommendedDose is required and must be > 0"]
    )


class PhotoRejection(BaseModel):
    """Details of a scan refused because its photo failed the quality gate."""
    error: str = Field(
        description="Short error summary",
        examples=["Photo rejected"]
    )
    reasons: List[str] = Field(
        description="Quality gate reasons reported by the photo analyzer"
    )


class PhotoRejectedResponse(BaseModel):
    """Response model for refused scans."""
    detail: PhotoRejection

    class Config:
        json_schema_extra = {
            "example": {
                "detail": {
                    "error": "Photo rejected",
                    "reasons": [
                        "Photo looks too blurry. Hold steady and use better lighting.",
                    ]
                }
            }
        }
