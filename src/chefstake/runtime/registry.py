# src/chefstake/runtime/registry.py
from __future__ import annotations

"""
Pool registry: the stateful side of the staking ledger.

Owns the global emission config, the append-only pool list and every user
position, and sequences each entry point as

    settle affected pool(s) -> compute pending -> move balances -> re-checkpoint

All entry points run under one re-entrant lock and are all-or-nothing:
internal records are captured on entry and restored on any failure, and
transfers already performed against an asset ledger are compensated in
reverse order. Reward minted into custody is always the last fallible
external step, so it never needs compensating.
"""

import copy
import logging
import threading
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from chefstake.ledger.assets import AssetLedger
from chefstake.ledger.types import GlobalConfig, Json, Pool, UserPosition
from chefstake.runtime import events as ev
from chefstake.runtime.accrual import AccrualEngine, checked_add, reward_debt
from chefstake.runtime.clock import Clock
from chefstake.runtime.errors import (
    ChefError,
    ClockRegressionError,
    InsufficientStakeError,
    UnknownPoolError,
    invalid_amount,
    unauthorized,
)
from chefstake.runtime.metrics import inc_counter, set_gauge
from chefstake.util.structured_logging import log_event

_log = logging.getLogger("chefstake.registry")

PositionKey = Tuple[int, str]
Undo = List[Callable[[], None]]


def _as_amount(v: Any, *, field: str = "amount") -> int:
    if isinstance(v, bool) or not isinstance(v, int):
        raise invalid_amount(f"{field}_not_int", value=repr(v))
    if v < 0:
        raise invalid_amount(f"negative_{field}", value=v)
    return v


class PoolRegistry:
    def __init__(
        self,
        *,
        config: GlobalConfig,
        reward_ledger: AssetLedger,
        clock: Clock,
        events: Optional[ev.EventLog] = None,
    ) -> None:
        if reward_ledger.asset_id != config.reward_asset:
            raise ValueError(
                f"reward ledger asset {reward_ledger.asset_id!r} does not match config.reward_asset {config.reward_asset!r}"
            )
        if int(config.total_alloc_weight) != int(config.reserved_alloc_weight):
            raise ValueError("a fresh registry must start with total_alloc_weight == reserved_alloc_weight")

        self._cfg = config
        self._engine = AccrualEngine(self._cfg)
        self._reward = reward_ledger
        self._clock = clock
        self._pools: List[Pool] = []
        self._ledgers: List[AssetLedger] = []
        self._positions: Dict[PositionKey, UserPosition] = {}
        self._high_water: Optional[int] = None
        self._lock = threading.RLock()
        self.events = events if events is not None else ev.EventLog()

    # ----------------------------
    # Transaction plumbing
    # ----------------------------

    def _capture(self) -> Tuple[GlobalConfig, List[Pool], Dict[PositionKey, UserPosition], List[AssetLedger]]:
        return (
            copy.deepcopy(self._cfg),
            copy.deepcopy(self._pools),
            copy.deepcopy(self._positions),
            list(self._ledgers),
        )

    def _restore(self, saved) -> None:
        cfg, pools, positions, ledgers = saved
        self._cfg = cfg
        self._engine.config = cfg
        self._pools = pools
        self._positions = positions
        self._ledgers = ledgers

    @contextmanager
    def _atomic(self, op: str) -> Iterator[Undo]:
        with self._lock:
            saved = self._capture()
            undo: Undo = []
            try:
                yield undo
            except Exception as e:
                for fn in reversed(undo):
                    fn()
                self._restore(saved)
                inc_counter("ops_failed_total")
                if isinstance(e, ChefError):
                    log_event(_log, "op_failed", op=op, code=e.code, reason=e.reason)
                raise

    def _now(self) -> int:
        t = int(self._clock.now())
        if self._high_water is not None and t < self._high_water:
            raise ClockRegressionError(
                "clock_regression", "clock_moved_backwards", {"now": t, "high_water": self._high_water}
            )
        self._high_water = t
        return t

    def _require_admin(self, caller: str, op: str) -> None:
        if str(caller) != self._cfg.admin:
            inc_counter("unauthorized_total")
            raise unauthorized("admin_only", op=op, caller=str(caller))

    def _pool_at(self, pool_index: int) -> Pool:
        if isinstance(pool_index, bool) or not isinstance(pool_index, int) or not 0 <= pool_index < len(self._pools):
            raise UnknownPoolError("not_found", "unknown_pool", {"pool_index": pool_index, "pool_count": len(self._pools)})
        return self._pools[pool_index]

    def _pull(self, undo: Undo, ledger: AssetLedger, user: str, amount: int) -> None:
        if amount <= 0:
            return
        custody = self._cfg.custody_account
        ledger.transfer(custody, user, custody, amount)
        undo.append(lambda: ledger.transfer(custody, custody, user, amount))

    def _push(self, undo: Undo, ledger: AssetLedger, user: str, amount: int) -> None:
        if amount <= 0:
            return
        custody = self._cfg.custody_account
        ledger.transfer(custody, custody, user, amount)
        undo.append(lambda: ledger.transfer(user, user, custody, amount))

    def _mint_reward(self, reward: int) -> None:
        if reward <= 0:
            return
        custody = self._cfg.custody_account
        self._reward.mint_to(custody, custody, reward)
        inc_counter("reward_minted_total", reward)

    def _pay_reward(self, undo: Undo, user: str, pending: int) -> int:
        """Pay pending reward from custody, capped at what custody holds."""
        if pending <= 0:
            return 0
        amt = min(int(pending), self._reward.balance_of(self._cfg.custody_account))
        self._push(undo, self._reward, user, amt)
        if amt > 0:
            inc_counter("reward_paid_total", amt)
        return amt

    def _settle_all(self, now: int) -> int:
        total = 0
        for pool in self._pools:
            total += self._engine.settle(pool, now)
        return total

    # ----------------------------
    # Admin operations
    # ----------------------------

    def add_pool(self, caller: str, staked_ledger: AssetLedger, alloc_weight: int) -> int:
        """Append a pool for `staked_ledger`. Multiple pools may share an asset."""
        self._require_admin(caller, "add_pool")
        weight = _as_amount(alloc_weight, field="alloc_weight")

        with self._atomic("add_pool"):
            now = self._now()
            reward = self._settle_all(now)
            new_total = checked_add(self._cfg.total_alloc_weight, weight, "alloc_weight_overflow")

            self._mint_reward(reward)

            pool = Pool(
                staked_asset=staked_ledger.asset_id,
                alloc_weight=weight,
                last_settled_time=max(now, int(self._cfg.start_time)),
            )
            self._pools.append(pool)
            self._ledgers.append(staked_ledger)
            self._cfg.total_alloc_weight = new_total
            index = len(self._pools) - 1

            set_gauge("pools", len(self._pools))
            self.events.emit(
                ev.POOL_ADDED,
                actor=caller,
                pool_index=index,
                amount=weight,
                time=now,
                staked_asset=pool.staked_asset,
                alloc_weight=weight,
            )
            return index

    def set_pool_weight(self, caller: str, pool_index: int, alloc_weight: int) -> None:
        self._require_admin(caller, "set_pool_weight")
        weight = _as_amount(alloc_weight, field="alloc_weight")

        with self._atomic("set_pool_weight"):
            pool = self._pool_at(pool_index)
            now = self._now()
            reward = self._settle_all(now)
            new_total = checked_add(self._cfg.total_alloc_weight - int(pool.alloc_weight), weight, "alloc_weight_overflow")

            self._mint_reward(reward)

            pool.alloc_weight = weight
            self._cfg.total_alloc_weight = new_total
            self.events.emit(ev.POOL_WEIGHT_SET, actor=caller, pool_index=pool_index, amount=weight, time=now)

    def set_reward_rate(self, caller: str, reward_rate: int) -> None:
        """Switch the emission rate. Time already elapsed is settled at the old rate."""
        self._require_admin(caller, "set_reward_rate")
        rate = _as_amount(reward_rate, field="reward_rate")

        with self._atomic("set_reward_rate"):
            now = self._now()
            self._mint_reward(self._settle_all(now))
            self._cfg.reward_rate = rate
            self.events.emit(ev.REWARD_RATE_SET, actor=caller, pool_index=None, amount=rate, time=now)

    # ----------------------------
    # Settlement
    # ----------------------------

    def update_pool(self, pool_index: int) -> int:
        with self._atomic("update_pool"):
            pool = self._pool_at(pool_index)
            reward = self._engine.settle(pool, self._now())
            self._mint_reward(reward)
            return reward

    def mass_update_pools(self) -> int:
        with self._atomic("mass_update_pools"):
            reward = self._settle_all(self._now())
            self._mint_reward(reward)
            return reward

    # ----------------------------
    # User operations
    # ----------------------------

    def deposit(self, caller: str, pool_index: int, amount: int) -> int:
        """Stake `amount` and harvest pending reward. Returns the reward paid."""
        amt = _as_amount(amount)
        user = str(caller)

        with self._atomic("deposit") as undo:
            pool = self._pool_at(pool_index)
            now = self._now()
            reward = self._engine.settle(pool, now)

            key = (pool_index, user)
            pos = self._positions.get(key)
            if pos is None:
                pos = UserPosition()
                self._positions[key] = pos

            acc = int(pool.acc_reward_per_share)
            pending = self._engine.pending_at(pos, acc) if pos.amount > 0 else 0
            new_amount = checked_add(pos.amount, amt, "stake_overflow")
            new_total = checked_add(pool.total_staked, amt, "stake_overflow")
            new_debt = reward_debt(new_amount, acc)

            self._pull(undo, self._ledgers[pool_index], user, amt)
            self._mint_reward(reward)
            paid = self._pay_reward(undo, user, pending)

            pos.amount = new_amount
            pos.reward_debt = new_debt
            pool.total_staked = new_total

            inc_counter("deposits_total")
            self.events.emit(ev.DEPOSIT, actor=user, pool_index=pool_index, amount=amt, time=now, reward=paid)
            return paid

    def withdraw(self, caller: str, pool_index: int, amount: int) -> int:
        """Unstake `amount` and harvest pending reward. amount=0 only harvests."""
        amt = _as_amount(amount)
        user = str(caller)

        with self._atomic("withdraw") as undo:
            pool = self._pool_at(pool_index)
            pos = self._positions.get((pool_index, user)) or UserPosition()
            if amt > pos.amount:
                raise InsufficientStakeError(
                    "insufficient_stake",
                    "withdraw_exceeds_position",
                    {"pool_index": pool_index, "amount": amt, "staked": pos.amount},
                )

            now = self._now()
            reward = self._engine.settle(pool, now)

            acc = int(pool.acc_reward_per_share)
            pending = self._engine.pending_at(pos, acc)
            new_amount = pos.amount - amt
            new_debt = reward_debt(new_amount, acc)

            self._push(undo, self._ledgers[pool_index], user, amt)
            self._mint_reward(reward)
            paid = self._pay_reward(undo, user, pending)

            pos.amount = new_amount
            pos.reward_debt = new_debt
            pool.total_staked = int(pool.total_staked) - amt

            inc_counter("withdrawals_total")
            self.events.emit(ev.WITHDRAW, actor=user, pool_index=pool_index, amount=amt, time=now, reward=paid)
            return paid

    def emergency_withdraw(self, caller: str, pool_index: int) -> int:
        """Return the whole principal without settling. Pending reward is forfeited."""
        user = str(caller)

        with self._atomic("emergency_withdraw") as undo:
            pool = self._pool_at(pool_index)
            pos = self._positions.get((pool_index, user)) or UserPosition()
            amt = int(pos.amount)

            self._push(undo, self._ledgers[pool_index], user, amt)

            pool.total_staked = int(pool.total_staked) - amt
            pos.amount = 0
            pos.reward_debt = 0

            inc_counter("emergency_withdrawals_total")
            self.events.emit(
                ev.EMERGENCY_WITHDRAW, actor=user, pool_index=pool_index, amount=amt, time=self._now()
            )
            return amt

    # ----------------------------
    # Queries
    # ----------------------------

    def config(self) -> GlobalConfig:
        with self._lock:
            return copy.copy(self._cfg)

    def pool_count(self) -> int:
        with self._lock:
            return len(self._pools)

    def pool(self, pool_index: int) -> Pool:
        with self._lock:
            return copy.copy(self._pool_at(pool_index))

    def pools(self) -> List[Pool]:
        with self._lock:
            return [copy.copy(p) for p in self._pools]

    def staked_ledger(self, pool_index: int) -> AssetLedger:
        with self._lock:
            self._pool_at(pool_index)
            return self._ledgers[pool_index]

    @property
    def reward_ledger(self) -> AssetLedger:
        return self._reward

    def position(self, pool_index: int, user: str) -> Optional[UserPosition]:
        with self._lock:
            self._pool_at(pool_index)
            pos = self._positions.get((pool_index, str(user)))
            return copy.copy(pos) if pos is not None else None

    def positions(self, pool_index: int) -> Dict[str, UserPosition]:
        with self._lock:
            self._pool_at(pool_index)
            return {u: copy.copy(p) for (i, u), p in self._positions.items() if i == pool_index}

    def pending_reward(self, pool_index: int, user: str, now: Optional[int] = None) -> int:
        with self._lock:
            pool = self._pool_at(pool_index)
            t = int(self._clock.now()) if now is None else int(now)
            return self._engine.pending_reward(pool, self._positions.get((pool_index, str(user))), t)

    def multiplier(self, from_time: int, to_time: int) -> int:
        with self._lock:
            return self._engine.multiplier(from_time, to_time)

    def now(self) -> int:
        return int(self._clock.now())

    def snapshot(self) -> Json:
        with self._lock:
            return {
                "config": self._cfg.to_json(),
                "pools": [p.to_json() for p in self._pools],
                "positions": {f"{i}:{u}": p.to_json() for (i, u), p in sorted(self._positions.items())},
            }


__all__ = ["PoolRegistry"]
