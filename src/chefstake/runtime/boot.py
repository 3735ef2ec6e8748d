# src/chefstake/runtime/boot.py

from __future__ import annotations

import logging
from typing import Optional

from chefstake.ledger.assets import InMemoryAssetLedger
from chefstake.runtime.chef_config import ChefConfig, load_chef_config
from chefstake.runtime.clock import Clock, WallClock
from chefstake.runtime.registry import PoolRegistry
from chefstake.util.structured_logging import log_event

_log = logging.getLogger("chefstake.boot")


def build_reward_ledger(cfg: ChefConfig) -> InMemoryAssetLedger:
    """Create the reward asset and hand its minting capability to custody.

    The capability is granted once here and never revoked.
    """
    ledger = InMemoryAssetLedger(cfg.reward_asset, owner=cfg.admin)
    ledger.transfer_ownership(cfg.admin, cfg.custody_account)
    return ledger


def build_registry(cfg: Optional[ChefConfig] = None, *, clock: Optional[Clock] = None) -> PoolRegistry:
    """
    Build a PoolRegistry from an explicit config or, if omitted, from
    CHEFSTAKE_CONFIG_PATH / defaults. The clock defaults to wall-clock seconds.
    """
    c = cfg or load_chef_config()
    registry = PoolRegistry(
        config=c.global_config(),
        reward_ledger=build_reward_ledger(c),
        clock=clock or WallClock(),
    )
    log_event(
        _log,
        "registry_booted",
        reward_asset=c.reward_asset,
        reward_rate=int(c.reward_rate),
        start_time=int(c.start_time),
        reserved_alloc_weight=int(c.reserved_alloc_weight),
    )
    return registry
