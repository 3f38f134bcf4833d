"""Read-only HTTP views over the signaling state."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from api.dependencies import get_hub
from api.schemas import CallSummary, HealthResponse, OnlineUser, RelayStatsResponse
from config.settings import get_settings
from signaling.hub import SignalingHub

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health(hub: SignalingHub = Depends(get_hub)) -> HealthResponse:
    return HealthResponse(environment=get_settings().environment, hub_running=hub.running)


@router.get("/signaling/users", response_model=dict[str, OnlineUser])
async def list_online_users(hub: SignalingHub = Depends(get_hub)) -> dict[str, OnlineUser]:
    return {name: OnlineUser(**fields) for name, fields in hub.registry.snapshot().items()}


@router.get("/signaling/calls", response_model=list[CallSummary])
async def list_calls(hub: SignalingHub = Depends(get_hub)) -> list[CallSummary]:
    return [
        CallSummary(
            caller=session.caller,
            callee=session.callee,
            phase=session.phase.value,
            created_at=session.created_at,
            updated_at=session.updated_at,
        )
        for session in hub.tracker.sessions()
    ]


@router.get("/signaling/stats", response_model=RelayStatsResponse)
async def relay_stats(hub: SignalingHub = Depends(get_hub)) -> RelayStatsResponse:
    stats = hub.relay.stats
    return RelayStatsResponse(
        received=stats.received,
        relayed=stats.relayed,
        dropped=dict(stats.dropped),
        online_users=len(hub.registry),
        calls=len(hub.tracker),
    )
