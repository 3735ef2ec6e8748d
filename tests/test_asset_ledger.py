from __future__ import annotations

import pytest

from chefstake.ledger.assets import AssetLedger, InMemoryAssetLedger
from chefstake.ledger.constants import MAX_UINT256
from chefstake.runtime.errors import (
    ArithmeticOverflowError,
    InsufficientBalanceOrAllowanceError,
    InvalidAmountError,
    UnauthorizedError,
)


def _token() -> InMemoryAssetLedger:
    t = InMemoryAssetLedger("LP", owner="ADMIN")
    t.mint_to("ADMIN", "alice", 100)
    return t


def test_in_memory_ledger_satisfies_protocol() -> None:
    assert isinstance(_token(), AssetLedger)


def test_owner_mints_and_supply_tracks() -> None:
    t = _token()
    assert t.balance_of("alice") == 100
    assert t.total_supply() == 100


def test_non_owner_cannot_mint() -> None:
    t = _token()
    with pytest.raises(UnauthorizedError) as e:
        t.mint_to("alice", "alice", 1)
    assert e.value.reason == "not_minter"
    assert t.total_supply() == 100


def test_direct_transfer() -> None:
    t = _token()
    t.transfer("alice", "alice", "bob", 40)
    assert (t.balance_of("alice"), t.balance_of("bob")) == (60, 40)


def test_transfer_rejects_overdraft() -> None:
    t = _token()
    with pytest.raises(InsufficientBalanceOrAllowanceError) as e:
        t.transfer("alice", "alice", "bob", 101)
    assert e.value.reason == "insufficient_balance"
    assert t.balance_of("alice") == 100


def test_operator_transfer_spends_allowance() -> None:
    t = _token()
    t.approve("alice", "CHEF", 70)

    t.transfer("CHEF", "alice", "CHEF", 50)
    assert t.allowance("alice", "CHEF") == 20
    assert t.balance_of("CHEF") == 50

    with pytest.raises(InsufficientBalanceOrAllowanceError) as e:
        t.transfer("CHEF", "alice", "CHEF", 21)
    assert e.value.reason == "insufficient_allowance"
    assert t.balance_of("alice") == 50


def test_ownership_transfer_moves_minting_capability() -> None:
    t = _token()
    t.transfer_ownership("ADMIN", "CHEF")

    with pytest.raises(UnauthorizedError):
        t.mint_to("ADMIN", "alice", 1)
    t.mint_to("CHEF", "alice", 1)
    assert t.balance_of("alice") == 101

    with pytest.raises(UnauthorizedError):
        t.transfer_ownership("ADMIN", "ADMIN")


def test_supply_cannot_overflow() -> None:
    t = _token()
    with pytest.raises(ArithmeticOverflowError):
        t.mint_to("ADMIN", "bob", MAX_UINT256)


def test_negative_amounts_rejected() -> None:
    t = _token()
    with pytest.raises(InvalidAmountError):
        t.transfer("alice", "alice", "bob", -1)
    with pytest.raises(InvalidAmountError):
        t.approve("alice", "bob", -5)
