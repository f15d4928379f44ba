"""Cron endpoint Pydantic schemas."""

from pydantic import BaseModel


class TokenSweepResponse(BaseModel):
    """Response schema for the token refresh sweep endpoint."""

    status: str
    due: int = 0
    refreshed: int = 0
    failed: int = 0
    errors: list[str] = []
    timestamp: str
