"""
Admin API Response Models
=========================

Response models for the operator endpoints.
"""

from pydantic import BaseModel, Field


class CacheClearResponse(BaseModel):
    """Result of DELETE /api/cache/clear."""

    success: bool = Field(..., description="Whether the clear completed")
    message: str = Field(..., description="Human-readable outcome")
    pattern: str | None = Field(default=None, description="Substring pattern that was cleared, if any")
    removed: int | None = Field(
        default=None, ge=0, description="Keys removed across both tiers (pattern clears only)"
    )
