"""Shared Pydantic schemas for Creatorgate."""

from typing import Optional

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str = "ok"
    database: str = "ok"
    version: str = "0.1.0"
    service: str = "creatorgate"


class ErrorResponse(BaseModel):
    error: str
    code: str
    detail: str = ""
    redirect: Optional[str] = None
