"""Pydantic schemas for entitlement endpoints."""

from typing import Optional

from pydantic import BaseModel


class GateDecisionResponse(BaseModel):
    state: str
    allowed: bool
    feature: str
    tier: Optional[str] = None
    limit: int = 0
    remaining: int = 0
    redirect: Optional[str] = None
    redirect_url: Optional[str] = None
    reason: str = ""
    message: str = ""
    action: Optional[str] = None
    ledger_error: bool = False

    @classmethod
    def from_decision(cls, decision) -> "GateDecisionResponse":
        return cls(
            state=decision.state.value,
            allowed=decision.allowed,
            feature=decision.feature.value,
            tier=decision.tier.value if decision.tier else None,
            limit=decision.limit,
            remaining=decision.remaining,
            redirect=decision.redirect,
            redirect_url=decision.redirect_url,
            reason=decision.reason,
            message=decision.message,
            action=decision.action,
            ledger_error=decision.ledger_error,
        )


class CatalogResponse(BaseModel):
    tiers: list[str]
    features: list[str]
    limits: dict[str, dict[str, int]]
