# src/chefstake/runtime/accrual.py
from __future__ import annotations

"""
Accrual engine.

Keeps each pool's acc_reward_per_share equal to what continuous, real-time
distribution would have produced, while only running when something touches
the pool:

    reward = multiplier * reward_rate * alloc_weight // total_alloc_weight
    acc   += reward * SCALE // total_staked

    pending(user) = user.amount * acc // SCALE - user.reward_debt

Floor division everywhere: fractional reward is systematically under-paid,
never over-paid. Arithmetic is checked against the unsigned 256-bit range and
raises ArithmeticOverflowError instead of wrapping.

The engine only moves accumulators. Minting the settled reward and paying
users is the registry's job.
"""

from typing import Optional

from chefstake.ledger.constants import MAX_UINT256, SCALE
from chefstake.ledger.types import GlobalConfig, Pool, UserPosition
from chefstake.runtime.errors import ArithmeticOverflowError, ClockRegressionError


def _checked(v: int, what: str) -> int:
    if v < 0 or v > MAX_UINT256:
        raise ArithmeticOverflowError("arithmetic_overflow", what, {"value_bits": int(v).bit_length()})
    return v


def checked_mul(a: int, b: int, what: str = "mul_overflow") -> int:
    return _checked(int(a) * int(b), what)


def checked_add(a: int, b: int, what: str = "add_overflow") -> int:
    return _checked(int(a) + int(b), what)


def multiplier(from_time: int, to_time: int, *, start_time: int) -> int:
    """Effective elapsed time-units in [from_time, to_time), clipped at start_time."""
    f, t, s = int(from_time), int(to_time), int(start_time)
    if t <= s:
        return 0
    return max(t - max(f, s), 0)


def reward_debt(amount: int, acc_reward_per_share: int) -> int:
    return checked_mul(amount, acc_reward_per_share, "reward_debt_overflow") // SCALE


class AccrualEngine:
    def __init__(self, config: GlobalConfig) -> None:
        self.config = config

    def multiplier(self, from_time: int, to_time: int) -> int:
        return multiplier(from_time, to_time, start_time=self.config.start_time)

    def _advances(self, pool: Pool, now: int) -> bool:
        """True if `now` is past the pool's last settlement.

        A pool added before start_time sits at last_settled_time == start_time;
        earlier clock values are then simply "not yet", not a regression.
        """
        t, last = int(now), int(pool.last_settled_time)
        if t < last and last > int(self.config.start_time):
            raise ClockRegressionError(
                "clock_regression",
                "now_before_last_settlement",
                {"now": t, "last_settled_time": last},
            )
        return t > last

    def pool_reward(self, pool: Pool, now: int) -> int:
        """Reward the pool earned since its last settlement (not yet minted)."""
        cfg = self.config
        total_weight = int(cfg.total_alloc_weight)
        if total_weight <= 0:
            return 0
        m = self.multiplier(max(int(pool.last_settled_time), int(cfg.start_time)), now)
        gross = checked_mul(checked_mul(m, cfg.reward_rate, "reward_overflow"), pool.alloc_weight, "reward_overflow")
        return gross // total_weight

    def _acc_increment(self, pool: Pool, reward: int) -> int:
        return checked_mul(reward, SCALE, "acc_overflow") // int(pool.total_staked)

    def settle(self, pool: Pool, now: int) -> int:
        """Bring pool up to `now`. Returns the reward to realize (0 for a no-op)."""
        if not self._advances(pool, now):
            return 0
        t = int(now)

        if int(pool.total_staked) == 0:
            # emission while empty is not banked
            pool.last_settled_time = t
            return 0

        reward = self.pool_reward(pool, t)
        acc = checked_add(pool.acc_reward_per_share, self._acc_increment(pool, reward), "acc_overflow")

        pool.acc_reward_per_share = acc
        pool.last_settled_time = t
        return reward

    def projected_acc(self, pool: Pool, now: int) -> int:
        if not self._advances(pool, now) or int(pool.total_staked) == 0:
            return int(pool.acc_reward_per_share)
        reward = self.pool_reward(pool, int(now))
        return checked_add(pool.acc_reward_per_share, self._acc_increment(pool, reward), "acc_overflow")

    def pending_reward(self, pool: Pool, position: Optional[UserPosition], now: int) -> int:
        """What settle-then-harvest would pay at `now`, without mutating anything."""
        acc = self.projected_acc(pool, now)
        if position is None:
            return 0
        return self.pending_at(position, acc)

    @staticmethod
    def pending_at(position: UserPosition, acc_reward_per_share: int) -> int:
        return reward_debt(position.amount, acc_reward_per_share) - int(position.reward_debt)


__all__ = [
    "AccrualEngine",
    "checked_add",
    "checked_mul",
    "multiplier",
    "reward_debt",
]
