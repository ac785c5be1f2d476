"""
Singularity: pooled vaults with share accounting, an ETH bonus and timelocked upgrades.

Design goals:
- One router (Singularity) in front of one vault per registered pool
- Share-price accounting: deposits mint, withdrawals burn, value tracks principal
- ETH bonus streamed per block to share holders, claimed as WETH
- Vault implementation changes only through a timelock (schedule, wait, execute)
- In-process ledger with serial, all-or-nothing transactions and block-based time
"""

from __future__ import annotations

import logging

from .access import AccessControl
from .chain import Chain, Contract, encode_function_call
from .core import (
    AuthorizationError,
    ClaimResult,
    DepositResult,
    Event,
    Operation,
    PoolEntry,
    PoolRegistry,
    Position,
    Receipt,
    SingularityError,
    StateError,
    ValidationError,
    WithdrawResult,
)
from .deploy import Deployment, deploy_protocol, deploy_tokens
from .singularity import Singularity
from .sources import RegistryCSVSource, load_registry
from .timelock import TimelockController
from .tokens import ERC20, WETH
from .vault import VaultV1

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

__all__ = [
    "Chain",
    "Contract",
    "AccessControl",
    "ERC20",
    "WETH",
    "VaultV1",
    "Singularity",
    "TimelockController",
    "Deployment",
    "deploy_protocol",
    "deploy_tokens",
    "encode_function_call",
    "PoolEntry",
    "PoolRegistry",
    "RegistryCSVSource",
    "load_registry",
    "Position",
    "Event",
    "Receipt",
    "Operation",
    "DepositResult",
    "WithdrawResult",
    "ClaimResult",
    "SingularityError",
    "AuthorizationError",
    "StateError",
    "ValidationError",
]
