"""Core data structures for :mod:`singularity_vaults`.

This subpackage groups the models, errors and registry table used across the
project so they can be shared without importing the ledger and contracts
exposed in :mod:`singularity_vaults.__init__`.
"""

from __future__ import annotations

from .addresses import derive_address, normalise_address, to_bytes32
from .constants import MAX_UINT256, ZERO_ADDRESS
from .errors import AuthorizationError, SingularityError, StateError, ValidationError
from .models import (
    ClaimResult,
    DepositResult,
    Event,
    Operation,
    PoolEntry,
    Position,
    Receipt,
    WithdrawResult,
)
from .repositories import PoolRegistry

__all__ = [
    "PoolEntry",
    "Position",
    "Event",
    "Receipt",
    "DepositResult",
    "WithdrawResult",
    "ClaimResult",
    "Operation",
    "PoolRegistry",
    "SingularityError",
    "AuthorizationError",
    "StateError",
    "ValidationError",
    "normalise_address",
    "derive_address",
    "to_bytes32",
    "MAX_UINT256",
    "ZERO_ADDRESS",
]
