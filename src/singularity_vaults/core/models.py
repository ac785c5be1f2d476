"""Immutable data models used throughout Singularity."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass(frozen=True)
class PoolEntry:
    """Registry row describing a pool and its underlying token."""

    pool: str  # checksummed pool address
    symbol: str
    category: str  # "stablecoin" or "chain"
    decimals: int = 18

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Position:
    """Snapshot of one depositor's position in a vault."""

    pool: str
    account: str
    shares: int
    underlying: int
    principal: int  # deposited minus withdrawn underlying
    reward_per_share_paid: int
    unsettled_rewards: int
    checkpoint_block: int

    @property
    def is_open(self) -> bool:
        return self.shares > 0

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["is_open"] = self.is_open
        return data


@dataclass(frozen=True)
class Event:
    """Log entry emitted by a contract during a committed transaction."""

    name: str
    address: str
    args: dict[str, Any]
    block_number: int
    log_index: int

    def to_dict(self) -> dict[str, Any]:
        data = {
            "name": self.name,
            "address": self.address,
            "block_number": self.block_number,
            "log_index": self.log_index,
        }
        data.update({f"arg_{k}": v for k, v in self.args.items()})
        return data


@dataclass(frozen=True)
class Receipt:
    """Outcome of a committed transaction."""

    block_number: int
    timestamp: int
    sender: str
    events: tuple[Event, ...] = ()
    result: Any = None


@dataclass(frozen=True)
class DepositResult:
    pool: str
    account: str
    amount: int
    shares: int
    block_number: int


@dataclass(frozen=True)
class WithdrawResult:
    pool: str
    account: str
    shares: int
    amount: int
    block_number: int


@dataclass(frozen=True)
class ClaimResult:
    """Settled ETH bonus of a claim, paid out in WETH."""

    pool: str
    account: str
    vault: str
    amount: int
    block_number: int


@dataclass(frozen=True)
class Operation:
    """A call routed through the timelock.

    ``operation_id`` is the keccak hash of the ABI encoded call tuple, as
    computed by :meth:`TimelockController.hash_operation`.
    """

    operation_id: bytes
    targets: tuple[str, ...]
    values: tuple[int, ...]
    payloads: tuple[bytes, ...]
    predecessor: bytes
    salt: bytes
    ready_at: int = field(default=0)

    @property
    def is_batch(self) -> bool:
        return len(self.targets) > 1


__all__ = [
    "PoolEntry",
    "Position",
    "Event",
    "Receipt",
    "DepositResult",
    "WithdrawResult",
    "ClaimResult",
    "Operation",
]
