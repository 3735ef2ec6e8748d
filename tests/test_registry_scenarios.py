from __future__ import annotations

import pytest

from chefstake.ledger.constants import SCALE
from chefstake.runtime import events as ev
from chefstake.runtime.errors import UnauthorizedError
from chefstake.testing.world import make_world

DEPOSIT = 10_000_000_000_000


def test_fresh_registry_config() -> None:
    w = make_world(reserved_alloc_weight=1000)
    cfg = w.registry.config()

    assert cfg.reward_asset == "STAKE"
    assert cfg.reward_rate == 100_000
    assert cfg.start_time == 10
    assert cfg.total_alloc_weight == 1000
    assert w.registry.pool_count() == 0


def test_reward_asset_minting_capability_belongs_to_custody() -> None:
    w = make_world()
    assert w.registry.reward_ledger.owner == w.custody  # type: ignore[attr-defined]


def test_add_pool_records_pool_and_event() -> None:
    w = make_world(now=25)
    pid = w.add_pool(100)

    pool = w.registry.pool(pid)
    assert pid == 0
    assert pool.staked_asset == "LP"
    assert pool.alloc_weight == 100
    assert pool.last_settled_time == 25
    assert pool.acc_reward_per_share == 0
    assert pool.total_staked == 0
    assert w.registry.config().total_alloc_weight == 1000

    added = w.registry.events.named(ev.POOL_ADDED)
    assert len(added) == 1
    assert added[0].pool_index == 0
    assert added[0].extra == {"staked_asset": "LP", "alloc_weight": 100}


def test_add_pool_before_start_settles_from_start() -> None:
    w = make_world(now=3, start_time=10)
    pid = w.add_pool(100)
    assert w.registry.pool(pid).last_settled_time == 10


def test_deposit_moves_principal_into_custody() -> None:
    w = make_world()
    pid = w.add_pool(100)
    before = w.lp.balance_of("alice")

    w.clock.mine(1)
    w.stake("alice", pid, DEPOSIT)

    pos = w.registry.position(pid, "alice")
    pool = w.registry.pool(pid)
    assert w.lp.balance_of("alice") == before - DEPOSIT
    assert w.lp.balance_of(w.custody) == DEPOSIT
    assert pos is not None
    assert pos.amount == DEPOSIT
    assert pos.reward_debt == pool.acc_reward_per_share * DEPOSIT // SCALE
    assert [e.name for e in w.registry.events.all()] == [ev.POOL_ADDED, ev.DEPOSIT]


def test_second_deposit_after_time_harvests_reward() -> None:
    w = make_world()
    pid = w.add_pool(100)
    w.clock.mine(1)
    w.stake("alice", pid, DEPOSIT)

    w.clock.mine(1000)
    before = w.reward_of("alice")
    paid = w.stake("alice", pid, DEPOSIT)

    assert paid > 0
    assert w.reward_of("alice") == before + paid


def test_scenario_withdraw_half_after_1000_units() -> None:
    w = make_world(reserved_alloc_weight=900)
    pid = w.add_pool(100)
    assert w.registry.config().total_alloc_weight == 1000

    w.clock.mine(1)
    w.stake("alice", pid, DEPOSIT)
    t = w.registry.now()
    dep_pool = w.registry.pool(pid)
    dep_pos = w.registry.position(pid, "alice")

    w.clock.mine(1000)
    paid = w.registry.withdraw("alice", pid, DEPOSIT // 2)

    m = w.registry.multiplier(t, t + 1000)
    reward = m * 100_000 * 100 // 1000
    expected_acc = dep_pool.acc_reward_per_share + reward * SCALE // DEPOSIT

    pool = w.registry.pool(pid)
    pos = w.registry.position(pid, "alice")
    assert m == 1000
    assert pool.acc_reward_per_share == expected_acc
    assert paid == DEPOSIT * expected_acc // SCALE - dep_pos.reward_debt
    assert paid == 10_000_000
    assert w.reward_of("alice") == paid
    assert pos.amount == DEPOSIT // 2
    assert pos.reward_debt == (DEPOSIT // 2) * pool.acc_reward_per_share // SCALE

    withdraws = w.registry.events.named(ev.WITHDRAW)
    assert len(withdraws) == 1
    assert (withdraws[0].actor, withdraws[0].pool_index, withdraws[0].amount) == ("alice", pid, DEPOSIT // 2)


def test_scenario_back_to_back_deposits_pay_nothing() -> None:
    w = make_world()
    pid = w.add_pool(100)
    w.stake("alice", pid, DEPOSIT)
    w.clock.mine(100)
    w.stake("alice", pid, DEPOSIT)
    reward_before = w.reward_of("alice")

    # Same time: multiplier is zero, nothing pending.
    assert w.registry.pending_reward(pid, "alice") == 0
    paid = w.stake("alice", pid, 3 * DEPOSIT)

    pool = w.registry.pool(pid)
    pos = w.registry.position(pid, "alice")
    assert paid == 0
    assert w.reward_of("alice") == reward_before
    assert pool.acc_reward_per_share > 0
    assert pos.amount == 5 * DEPOSIT
    assert pos.reward_debt == 5 * DEPOSIT * pool.acc_reward_per_share // SCALE


def test_scenario_non_admin_cannot_add_pool() -> None:
    w = make_world()
    total = w.registry.config().total_alloc_weight

    with pytest.raises(UnauthorizedError) as e:
        w.registry.add_pool("bob", w.lp, 100)

    assert e.value.code == "unauthorized"
    assert w.registry.config().total_alloc_weight == total
    assert w.registry.pool_count() == 0
    assert w.registry.events.all() == []


def test_two_stakers_share_proportionally() -> None:
    w = make_world()
    pid = w.add_pool(100)
    w.clock.mine(1)
    w.stake("alice", pid, DEPOSIT)
    w.clock.mine(10)
    w.stake("bob", pid, DEPOSIT)
    w.clock.mine(10)

    # 10 units alone, then 10 units split evenly; 10_000 reward per unit.
    assert w.registry.pending_reward(pid, "alice") == 150_000
    assert w.registry.pending_reward(pid, "bob") == 50_000

    assert w.registry.withdraw("alice", pid, DEPOSIT) == 150_000
    assert w.registry.withdraw("bob", pid, DEPOSIT) == 50_000


def test_weights_split_emission_across_pools() -> None:
    w = make_world(reserved_alloc_weight=600)
    other = w.new_asset("LP2")
    p0 = w.add_pool(100)
    p1 = w.add_pool(300, other)
    assert w.registry.config().total_alloc_weight == 1000

    w.stake("alice", p0, DEPOSIT)
    w.stake("bob", p1, DEPOSIT)
    w.clock.mine(10)

    assert w.registry.pending_reward(p0, "alice") == 10 * 100_000 * 100 // 1000
    assert w.registry.pending_reward(p1, "bob") == 10 * 100_000 * 300 // 1000


def test_withdraw_zero_harvests_only() -> None:
    w = make_world()
    pid = w.add_pool(100)
    w.stake("alice", pid, DEPOSIT)
    w.clock.mine(5)

    pending = w.registry.pending_reward(pid, "alice")
    paid = w.registry.withdraw("alice", pid, 0)

    assert paid == pending == 50_000
    assert w.registry.position(pid, "alice").amount == DEPOSIT
    assert w.registry.pending_reward(pid, "alice") == 0


def test_zero_position_persists_after_full_withdraw() -> None:
    w = make_world()
    pid = w.add_pool(100)
    w.stake("alice", pid, DEPOSIT)
    w.clock.mine(5)
    w.registry.withdraw("alice", pid, DEPOSIT)

    pos = w.registry.position(pid, "alice")
    assert pos is not None
    assert pos.amount == 0
    assert pos.reward_debt == 0
    assert w.registry.pool(pid).total_staked == 0


def test_duplicate_asset_pools_are_allowed() -> None:
    w = make_world(reserved_alloc_weight=800)
    p0 = w.add_pool(100)
    p1 = w.add_pool(100)

    assert p0 != p1
    assert w.registry.pool(p0).staked_asset == w.registry.pool(p1).staked_asset == "LP"
    assert w.registry.config().total_alloc_weight == 1000


def test_no_accrual_before_start() -> None:
    w = make_world(now=0, start_time=100)
    pid = w.add_pool(100)
    w.stake("alice", pid, DEPOSIT)
    w.clock.mine(50)

    assert w.registry.pending_reward(pid, "alice") == 0
    assert w.registry.withdraw("alice", pid, 0) == 0

    w.clock.set(110)
    assert w.registry.pending_reward(pid, "alice") == 10 * 10_000
