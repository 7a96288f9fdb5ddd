"""
API Request and Response Models.

Pydantic models for FastAPI response validation and OpenAPI documentation.
Dashboard payload models live in ``adpulse.services.models``; this module
holds the API-only envelopes.
"""

from pydantic import BaseModel, Field
from typing import Optional, Dict, List
from datetime import datetime

from ..services.models import CampaignAdReport


# ============================================================================
# Creative Report Models
# ============================================================================

class CreativesResponse(BaseModel):
    """Ad-level report for one campaign."""
    creatives: List[CampaignAdReport] = Field(
        default_factory=list,
        description="One entry per ad with insights in the requested range"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "creatives": [
                    {
                        "ad_id": "120210000000000001",
                        "ad_name": "Spring promo - video A",
                        "creative_id": "120210000000000101",
                        "thumbnailUrl": "https://scontent.xx.fbcdn.net/thumb.jpg",
                        "metrics": {
                            "impressions": 12000,
                            "clicks": 340,
                            "spend": 150.0,
                            "ctr": 0.0283,
                            "resultQty": 25,
                            "costPerResult": 6.0
                        }
                    }
                ]
            }
        }


# ============================================================================
# System Models
# ============================================================================

class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service status (healthy/degraded)")
    version: str = Field(..., description="API version")
    timestamp: datetime = Field(default_factory=datetime.now)
    services: Dict[str, str] = Field(
        default_factory=dict,
        description="Status of dependent services"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "status": "healthy",
                "version": "1.0.0",
                "timestamp": "2025-01-18T12:00:00Z",
                "services": {
                    "supabase": "configured",
                    "token_cipher": "configured"
                }
            }
        }


class ErrorResponse(BaseModel):
    """Standard error response model."""
    error: str = Field(..., description="Error message")
    detail: Optional[str] = Field(None, description="Detailed error information")
    timestamp: datetime = Field(default_factory=datetime.now)

    class Config:
        json_schema_extra = {
            "example": {
                "error": "Provide startDate and endDate together, or neither",
                "detail": "ValidationError",
                "timestamp": "2025-01-18T12:00:00Z"
            }
        }
