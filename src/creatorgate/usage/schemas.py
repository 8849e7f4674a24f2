"""Pydantic schemas for usage endpoints."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class FeatureUsageResponse(BaseModel):
    feature: str
    limit: int
    used: int
    remaining: int
    entitled: bool
    reset_at: Optional[datetime] = None

    @classmethod
    def from_usage(cls, usage) -> "FeatureUsageResponse":
        return cls(
            feature=usage.feature.value,
            limit=usage.limit,
            used=usage.used,
            remaining=usage.remaining,
            entitled=usage.entitled,
            reset_at=usage.reset_at,
        )


class UsageSummaryResponse(BaseModel):
    user_id: str
    tier: str
    features: list[FeatureUsageResponse]


class IncrementResponse(BaseModel):
    success: bool
    outcome: str
    feature: str
    remaining: Optional[int] = None


class ResetResponse(BaseModel):
    user_id: str
    reset: bool = True
