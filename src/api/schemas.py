"""API-facing Pydantic models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: str = "ok"
    environment: str
    hub_running: bool


class OnlineUser(BaseModel):
    username: str
    id: str = Field(description="Connection id the name is bound to.")


class CallSummary(BaseModel):
    caller: str
    callee: str
    phase: str
    created_at: datetime
    updated_at: datetime


class RelayStatsResponse(BaseModel):
    received: int
    relayed: int
    dropped: dict[str, int]
    online_users: int
    calls: int
