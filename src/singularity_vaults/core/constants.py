"""Core constants shared across Singularity modules."""

from __future__ import annotations

from eth_utils import keccak

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
BYTES32_ZERO = b"\x00" * 32

MAX_UINT256 = 2**256 - 1

# Fixed-point scale of share prices.
PRICE_PRECISION = 10**18

# Fixed-point scale of the reward-per-share accumulator (1 wei/block accrues up to 1e36 shares).
REWARD_PRECISION = 10**36

# Mainnet-like block cadence used when advancing the ledger.
SECONDS_PER_BLOCK = 15

# Timelock bookkeeping: an operation with this timestamp has been executed.
DONE_TIMESTAMP = 1
DEFAULT_MIN_DELAY = 86_400

DEFAULT_ADMIN_ROLE = BYTES32_ZERO
TIMELOCK_ADMIN_ROLE = keccak(text="TIMELOCK_ADMIN_ROLE")
PROPOSER_ROLE = keccak(text="PROPOSER_ROLE")
EXECUTOR_ROLE = keccak(text="EXECUTOR_ROLE")
CANCELLER_ROLE = keccak(text="CANCELLER_ROLE")
OWNER_ROLE = keccak(text="OWNER_ROLE")
REWARDS_ROLE = keccak(text="REWARDS_ROLE")

ROLE_NAMES = {
    DEFAULT_ADMIN_ROLE: "DEFAULT_ADMIN_ROLE",
    TIMELOCK_ADMIN_ROLE: "TIMELOCK_ADMIN_ROLE",
    PROPOSER_ROLE: "PROPOSER_ROLE",
    EXECUTOR_ROLE: "EXECUTOR_ROLE",
    CANCELLER_ROLE: "CANCELLER_ROLE",
    OWNER_ROLE: "OWNER_ROLE",
    REWARDS_ROLE: "REWARDS_ROLE",
}

# Pool categories as grouped in the registry table.
POOL_CATEGORIES = ("stablecoin", "chain")

# Symbol of the wrapped native token the ETH bonus is paid in.
WETH_SYMBOL = "WETH"

__all__ = [
    "ZERO_ADDRESS",
    "BYTES32_ZERO",
    "MAX_UINT256",
    "PRICE_PRECISION",
    "REWARD_PRECISION",
    "SECONDS_PER_BLOCK",
    "DONE_TIMESTAMP",
    "DEFAULT_MIN_DELAY",
    "DEFAULT_ADMIN_ROLE",
    "TIMELOCK_ADMIN_ROLE",
    "PROPOSER_ROLE",
    "EXECUTOR_ROLE",
    "CANCELLER_ROLE",
    "OWNER_ROLE",
    "REWARDS_ROLE",
    "ROLE_NAMES",
    "POOL_CATEGORIES",
    "WETH_SYMBOL",
]
