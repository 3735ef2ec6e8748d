from __future__ import annotations

"""Pydantic response schemas for the query API.

These mirror the ledger records one-to-one; they exist for HTTP output
validation and a stable OpenAPI surface.
"""

from typing import List, Optional

from pydantic import BaseModel, Field


class ConfigOut(BaseModel):
    reward_asset: str
    reward_rate: int = Field(..., ge=0, description="Reward units per time-unit across all pools")
    start_time: int
    total_alloc_weight: int
    reserved_alloc_weight: int
    admin: str
    custody_account: str


class PoolOut(BaseModel):
    pool_index: int
    staked_asset: str
    alloc_weight: int
    last_settled_time: int
    acc_reward_per_share: int = Field(..., description="Scaled by 1e12")
    total_staked: int


class PoolsOut(BaseModel):
    ok: bool = True
    now: int
    pools: List[PoolOut]


class PositionOut(BaseModel):
    ok: bool = True
    pool_index: int
    user: str
    exists: bool
    amount: int = 0
    reward_debt: int = 0


class PendingOut(BaseModel):
    ok: bool = True
    pool_index: int
    user: str
    now: int
    pending: int = Field(..., ge=0)


class MultiplierOut(BaseModel):
    ok: bool = True
    from_time: int
    to_time: int
    multiplier: int


class EventOut(BaseModel):
    name: str
    actor: str
    pool_index: Optional[int] = None
    amount: int
    time: int
    extra: Optional[dict] = None
