"""Entitlement API router."""

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from creatorgate.catalog.tiers import FeatureKey, Tier, quota_table
from creatorgate.common.security import CurrentUser, require_api_key, resolve_current_user
from creatorgate.entitlements.schemas import CatalogResponse, GateDecisionResponse

router = APIRouter(dependencies=[Depends(require_api_key)])


def _get_gate():
    from creatorgate.deps import get_entitlement_gate
    return get_entitlement_gate()


@router.get("/catalog", response_model=CatalogResponse)
async def get_catalog():
    table = quota_table()
    return CatalogResponse(
        tiers=[t.value for t in Tier],
        features=[f.value for f in FeatureKey],
        limits={
            tier.value: {feature.value: limit for feature, limit in row.items()}
            for tier, row in table.items()
        },
    )


@router.get("/entitlements/{feature}", response_model=GateDecisionResponse)
async def check_entitlement(
    feature: str,
    user: Optional[CurrentUser] = Depends(resolve_current_user),
):
    decision = await _get_gate().check(user, feature)
    body = GateDecisionResponse.from_decision(decision)
    if decision.ledger_error:
        return JSONResponse(status_code=503, content=body.model_dump(mode="json"))
    return body
