# src/chefstake/api/routes_public.py
from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Request, Response

from chefstake.api.errors import ApiError
from chefstake.api.schemas import (
    ConfigOut,
    EventOut,
    MultiplierOut,
    PendingOut,
    PoolOut,
    PoolsOut,
    PositionOut,
)
from chefstake.runtime.metrics import format_prometheus, metrics_enabled
from chefstake.runtime.registry import PoolRegistry

Json = Dict[str, Any]

router = APIRouter()


def _registry(request: Request) -> PoolRegistry:
    reg = getattr(request.app.state, "registry", None)
    if reg is None:
        raise ApiError.internal("not_ready", "registry not attached to app.state", {})
    return reg


def _pool_out(index: int, pool) -> PoolOut:
    return PoolOut(pool_index=index, **pool.to_json())


@router.get("/health")
def health(request: Request) -> Json:
    reg = getattr(request.app.state, "registry", None)
    return {"ok": True, "ready": reg is not None}


@router.get("/config", response_model=ConfigOut)
def config(request: Request) -> ConfigOut:
    return ConfigOut(**_registry(request).config().to_json())


@router.get("/pools", response_model=PoolsOut)
def pools(request: Request) -> PoolsOut:
    reg = _registry(request)
    return PoolsOut(now=reg.now(), pools=[_pool_out(i, p) for i, p in enumerate(reg.pools())])


@router.get("/pools/{pool_index}", response_model=PoolOut)
def pool(pool_index: int, request: Request) -> PoolOut:
    return _pool_out(pool_index, _registry(request).pool(pool_index))


@router.get("/pools/{pool_index}/positions/{user}", response_model=PositionOut)
def position(pool_index: int, user: str, request: Request) -> PositionOut:
    pos = _registry(request).position(pool_index, user)
    if pos is None:
        return PositionOut(pool_index=pool_index, user=user, exists=False)
    return PositionOut(pool_index=pool_index, user=user, exists=True, **pos.to_json())


@router.get("/pools/{pool_index}/pending/{user}", response_model=PendingOut)
def pending(pool_index: int, user: str, request: Request) -> PendingOut:
    reg = _registry(request)
    now = reg.now()
    return PendingOut(pool_index=pool_index, user=user, now=now, pending=reg.pending_reward(pool_index, user, now))


@router.get("/multiplier", response_model=MultiplierOut)
def multiplier(from_time: int, to_time: int, request: Request) -> MultiplierOut:
    m = _registry(request).multiplier(from_time, to_time)
    return MultiplierOut(from_time=from_time, to_time=to_time, multiplier=m)


@router.get("/events", response_model=List[EventOut])
def events(request: Request, limit: int = 100) -> List[EventOut]:
    if limit <= 0 or limit > 1000:
        raise ApiError.bad_request("bad_limit", "limit must be 1..1000", {"limit": limit})
    evs = _registry(request).events.all()[-limit:]
    return [EventOut(**e.to_json()) for e in evs]


@router.get("/metrics")
def metrics() -> Response:
    """Prometheus-style metrics. Disabled unless CHEFSTAKE_METRICS_ENABLED=1."""
    if not metrics_enabled():
        return Response(status_code=404, content="not_found\n", media_type="text/plain")
    return Response(content=format_prometheus(), media_type="text/plain")
