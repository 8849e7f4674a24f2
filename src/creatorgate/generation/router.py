"""Generation API router — gated proxy to the generative-language API."""

from typing import Optional

from fastapi import APIRouter, Depends

from creatorgate.common.security import CurrentUser, require_api_key, resolve_current_user
from creatorgate.generation.schemas import GenerateRequest, GenerateResponse
from creatorgate.usage.ledger import IncrementOutcome

router = APIRouter(dependencies=[Depends(require_api_key)])


def _get_generator():
    from creatorgate.deps import get_guarded_generator
    return get_guarded_generator()


@router.post("/generate/{feature}", response_model=GenerateResponse)
async def generate(
    feature: str,
    body: GenerateRequest,
    user: Optional[CurrentUser] = Depends(resolve_current_user),
):
    result = await _get_generator().run(user, feature, body.prompt)
    return GenerateResponse(
        feature=result.feature.value,
        content=result.content,
        usage_recorded=result.outcome is IncrementOutcome.APPLIED,
        accounting_error=result.accounting_error,
        overage=result.overage,
        remaining=result.remaining,
    )
