"""Pydantic schemas for generation endpoints."""

from typing import Optional

from pydantic import BaseModel, Field


class GenerateRequest(BaseModel):
    prompt: str = Field(..., min_length=1, max_length=4000)


class GenerateResponse(BaseModel):
    feature: str
    content: str
    usage_recorded: bool
    accounting_error: bool = False
    overage: bool = False
    remaining: Optional[int] = None
