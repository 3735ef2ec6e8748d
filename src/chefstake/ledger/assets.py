# src/chefstake/ledger/assets.py
from __future__ import annotations

"""Asset ledger collaborator.

The registry never owns balances itself. It talks to one AssetLedger per
asset (the reward asset plus every staked asset) through a narrow surface:

  - balance_of(account)
  - transfer(operator, frm, to, amount)   operator is frm, or spends an allowance
  - mint_to(caller, account, amount)      caller must hold the minting capability

InMemoryAssetLedger is the reference implementation used by tests and by the
local API runtime. It is a plain allowance-based token: the owner mints,
anyone holding a balance transfers, approvals let a third party pull funds.
"""

import threading
from typing import Dict, Protocol, Tuple, runtime_checkable

from chefstake.ledger.constants import MAX_UINT256
from chefstake.runtime.errors import (
    ArithmeticOverflowError,
    InsufficientBalanceOrAllowanceError,
    invalid_amount,
    unauthorized,
)


@runtime_checkable
class AssetLedger(Protocol):
    asset_id: str

    def balance_of(self, account: str) -> int: ...

    def transfer(self, operator: str, frm: str, to: str, amount: int) -> None: ...

    def mint_to(self, caller: str, account: str, amount: int) -> None: ...


def _as_amount(amount: int) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise invalid_amount("amount_not_int", amount=repr(amount))
    if amount < 0:
        raise invalid_amount("negative_amount", amount=amount)
    return amount


class InMemoryAssetLedger:
    """Allowance-based token kept in process memory."""

    def __init__(self, asset_id: str, *, owner: str) -> None:
        self.asset_id = str(asset_id)
        self.owner = str(owner)
        self._balances: Dict[str, int] = {}
        self._allowances: Dict[Tuple[str, str], int] = {}
        self._supply = 0
        self._lock = threading.Lock()

    # ----------------------------
    # Reads
    # ----------------------------

    def balance_of(self, account: str) -> int:
        with self._lock:
            return int(self._balances.get(str(account), 0))

    def allowance(self, holder: str, spender: str) -> int:
        with self._lock:
            return int(self._allowances.get((str(holder), str(spender)), 0))

    def total_supply(self) -> int:
        with self._lock:
            return int(self._supply)

    # ----------------------------
    # Writes
    # ----------------------------

    def approve(self, holder: str, spender: str, amount: int) -> None:
        amt = _as_amount(amount)
        with self._lock:
            self._allowances[(str(holder), str(spender))] = amt

    def transfer(self, operator: str, frm: str, to: str, amount: int) -> None:
        amt = _as_amount(amount)
        op, src, dst = str(operator), str(frm), str(to)
        with self._lock:
            bal = int(self._balances.get(src, 0))
            if bal < amt:
                raise InsufficientBalanceOrAllowanceError(
                    "transfer_rejected",
                    "insufficient_balance",
                    {"asset": self.asset_id, "account": src, "balance": bal, "amount": amt},
                )

            if op != src:
                allowed = int(self._allowances.get((src, op), 0))
                if allowed < amt:
                    raise InsufficientBalanceOrAllowanceError(
                        "transfer_rejected",
                        "insufficient_allowance",
                        {"asset": self.asset_id, "holder": src, "spender": op, "allowance": allowed, "amount": amt},
                    )
                self._allowances[(src, op)] = allowed - amt

            self._balances[src] = bal - amt
            self._balances[dst] = int(self._balances.get(dst, 0)) + amt

    def mint_to(self, caller: str, account: str, amount: int) -> None:
        amt = _as_amount(amount)
        with self._lock:
            if str(caller) != self.owner:
                raise unauthorized("not_minter", asset=self.asset_id, caller=str(caller))
            if self._supply + amt > MAX_UINT256:
                raise ArithmeticOverflowError(
                    "arithmetic_overflow", "supply_overflow", {"asset": self.asset_id, "amount": amt}
                )
            self._supply += amt
            acct = str(account)
            self._balances[acct] = int(self._balances.get(acct, 0)) + amt

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        with self._lock:
            if str(caller) != self.owner:
                raise unauthorized("not_owner", asset=self.asset_id, caller=str(caller))
            self.owner = str(new_owner)


__all__ = ["AssetLedger", "InMemoryAssetLedger"]
