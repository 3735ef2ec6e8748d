# src/chefstake/runtime/chef_config.py
from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from chefstake.ledger.constants import (
    DEFAULT_ADMIN_ACCOUNT,
    DEFAULT_CUSTODY_ACCOUNT,
    DEFAULT_RESERVED_ALLOC_WEIGHT,
    DEFAULT_REWARD_ASSET,
    DEFAULT_REWARD_RATE,
    DEFAULT_START_TIME,
)
from chefstake.ledger.types import GlobalConfig

Json = Dict[str, Any]


def _as_int(v: Any, default: int) -> int:
    if v is None or isinstance(v, bool):
        return int(default)
    try:
        return int(v)
    except (TypeError, ValueError):
        return int(default)


def _as_str(v: Any, default: str) -> str:
    if v is None:
        return str(default)
    s = str(v)
    return s if s.strip() else str(default)


@dataclass(frozen=True)
class ChefConfig:
    reward_asset: str
    reward_rate: int
    start_time: int
    reserved_alloc_weight: int

    admin: str
    custody_account: str

    api_host: str
    api_port: int

    log_level: str

    def global_config(self) -> GlobalConfig:
        return GlobalConfig(
            reward_asset=self.reward_asset,
            reward_rate=int(self.reward_rate),
            start_time=int(self.start_time),
            total_alloc_weight=int(self.reserved_alloc_weight),
            reserved_alloc_weight=int(self.reserved_alloc_weight),
            admin=self.admin,
            custody_account=self.custody_account,
        )


def validate_chef_config(cfg: ChefConfig) -> None:
    """Fail-fast validation for operator config."""

    for name, v in (
        ("reward_asset", cfg.reward_asset),
        ("admin", cfg.admin),
        ("custody_account", cfg.custody_account),
    ):
        if not isinstance(v, str) or not v.strip():
            raise ValueError(f"{name} must be a non-empty string")

    if cfg.admin == cfg.custody_account:
        raise ValueError("admin and custody_account must be distinct accounts")

    if int(cfg.reward_rate) < 0:
        raise ValueError(f"reward_rate must be >= 0; got: {cfg.reward_rate}")

    if int(cfg.start_time) < 0:
        raise ValueError(f"start_time must be >= 0; got: {cfg.start_time}")

    # Total weight must never be zero while pools exist.
    if int(cfg.reserved_alloc_weight) <= 0:
        raise ValueError(f"reserved_alloc_weight must be > 0; got: {cfg.reserved_alloc_weight}")

    if int(cfg.api_port) <= 0 or int(cfg.api_port) > 65535:
        raise ValueError(f"api_port must be 1..65535; got: {cfg.api_port}")


def default_chef_config() -> ChefConfig:
    return ChefConfig(
        reward_asset=DEFAULT_REWARD_ASSET,
        reward_rate=DEFAULT_REWARD_RATE,
        start_time=DEFAULT_START_TIME,
        reserved_alloc_weight=DEFAULT_RESERVED_ALLOC_WEIGHT,
        admin=DEFAULT_ADMIN_ACCOUNT,
        custody_account=DEFAULT_CUSTODY_ACCOUNT,
        api_host="127.0.0.1",
        api_port=8080,
        log_level="INFO",
    )


def chef_config_from_dict(raw: Json) -> ChefConfig:
    if not isinstance(raw, dict):
        raise ValueError("chef config must be a JSON object")

    d = default_chef_config()

    cfg = ChefConfig(
        reward_asset=_as_str(raw.get("reward_asset"), d.reward_asset),
        reward_rate=_as_int(raw.get("reward_rate"), d.reward_rate),
        start_time=_as_int(raw.get("start_time"), d.start_time),
        reserved_alloc_weight=_as_int(raw.get("reserved_alloc_weight"), d.reserved_alloc_weight),
        admin=_as_str(raw.get("admin"), d.admin),
        custody_account=_as_str(raw.get("custody_account"), d.custody_account),
        api_host=_as_str(raw.get("api_host"), d.api_host),
        api_port=_as_int(raw.get("api_port"), d.api_port),
        log_level=_as_str(raw.get("log_level"), d.log_level),
    )

    validate_chef_config(cfg)
    return cfg


def read_chef_config_file(path: str) -> ChefConfig:
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    return chef_config_from_dict(raw)


def load_chef_config(*, config_path: Optional[str] = None) -> ChefConfig:
    p = config_path or os.environ.get("CHEFSTAKE_CONFIG_PATH")
    if p:
        return read_chef_config_file(p)

    cfg = default_chef_config()
    validate_chef_config(cfg)
    return cfg


def apply_chef_config_to_env(cfg: ChefConfig) -> None:
    validate_chef_config(cfg)
    os.environ["CHEFSTAKE_REWARD_ASSET"] = cfg.reward_asset
    os.environ["CHEFSTAKE_REWARD_RATE"] = str(int(cfg.reward_rate))
    os.environ["CHEFSTAKE_START_TIME"] = str(int(cfg.start_time))
    os.environ["CHEFSTAKE_API_HOST"] = cfg.api_host
    os.environ["CHEFSTAKE_API_PORT"] = str(int(cfg.api_port))
    os.environ["CHEFSTAKE_LOG_LEVEL"] = cfg.log_level
