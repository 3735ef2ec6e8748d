"""chefstake.ledger.types

Record types held by the pool registry:
  - GlobalConfig: emission parameters (one per registry)
  - Pool: per-asset accrual state, append-only and addressed by index
  - UserPosition: per (pool, user) principal and reward-debt checkpoint

All records are plain mutable dataclasses. Only the registry mutates them,
under its lock; everything handed out to readers is a copy or a JSON dict.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict

Json = Dict[str, Any]


@dataclass
class GlobalConfig:
    reward_asset: str
    reward_rate: int
    start_time: int
    # reserved_alloc_weight + sum(pool.alloc_weight)
    total_alloc_weight: int
    reserved_alloc_weight: int
    admin: str
    custody_account: str

    def to_json(self) -> Json:
        return asdict(self)


@dataclass
class Pool:
    staked_asset: str
    alloc_weight: int
    last_settled_time: int
    # scaled by SCALE, never decreases
    acc_reward_per_share: int = 0
    total_staked: int = 0

    def to_json(self) -> Json:
        return asdict(self)


@dataclass
class UserPosition:
    amount: int = 0
    reward_debt: int = 0

    def to_json(self) -> Json:
        return asdict(self)


__all__ = ["GlobalConfig", "Json", "Pool", "UserPosition"]
