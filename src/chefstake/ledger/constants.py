# src/chefstake/ledger/constants.py
from __future__ import annotations

"""Accrual constants.

- Accumulator fixed-point scale: 1e12
- Integer range: unsigned 256-bit (arithmetic beyond it must fail, never wrap)
- Seeded allocation weight: 1000 (total weight is never zero while pools exist)
"""

# Fixed-point scale for acc_reward_per_share and reward_debt.
SCALE: int = 10**12

# Largest representable integer in the host ledger.
MAX_UINT256: int = 2**256 - 1

# Weight seeded into total_alloc_weight at init, owned by no pool.
DEFAULT_RESERVED_ALLOC_WEIGHT: int = 1000

# Emission defaults (per time-unit, across all pools).
DEFAULT_REWARD_RATE: int = 100_000
DEFAULT_START_TIME: int = 0

DEFAULT_REWARD_ASSET: str = "STAKE"
DEFAULT_ADMIN_ACCOUNT: str = "ADMIN"
DEFAULT_CUSTODY_ACCOUNT: str = "CHEF"
