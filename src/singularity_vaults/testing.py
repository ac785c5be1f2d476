"""Fixture helpers for driving the protocol in tests and scenarios.

Mirrors what integration tests against a forked chain need: token unit
conversion, approvals, funding accounts with WETH or from a large holder,
moving the chain forward and comparing balances within a tolerance.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from decimal import Decimal

from .chain import Chain
from .core.addresses import normalise_address
from .core.constants import MAX_UINT256
from .singularity import Singularity
from .tokens import ERC20, WETH

BURN_ADDRESS = "0x000000000000000000000000000000000000dEaD"


def parse_tokens(amount: int | str | Decimal, decimals: int = 18) -> int:
    """Convert a human amount into base units, e.g. ``parse_tokens(4000, 6)``."""

    return int(Decimal(str(amount)) * (Decimal(10) ** decimals))


def hours_to_seconds(hours: float) -> int:
    return int(hours * 60 * 60)


def check_exact(expected: int, actual: int, tolerance: float, msg: str = "") -> None:
    """Assert ``actual`` lies strictly within ``tolerance`` (a fraction) of ``expected``."""

    difference = abs(expected - actual)
    max_difference = expected * tolerance
    assert difference < max_difference, (
        f"{msg}: expected {expected}, got {actual} (off by {difference}, max {max_difference})"
    )


def use_approval(token: ERC20, spender: str) -> Callable[[str], None]:
    """Return a function granting ``spender`` an unlimited allowance from an account."""

    def approve(account: str) -> None:
        token.approve(spender, MAX_UINT256, sender=account)

    return approve


def get_weth(weth: WETH, account: str, amount: int) -> None:
    weth.deposit(amount, sender=account)


def drain(token: ERC20, holder: str, to: str, amount: int, *, gas_money: int = 10**18) -> None:
    """Move ``amount`` from a large holder to ``to``, sending the holder some ETH first."""

    token.chain.transfer_eth(to, holder, gas_money)
    token.transfer(to, amount, sender=holder)


def burn(token: ERC20, account: str) -> None:
    token.transfer(BURN_ADDRESS, token.balance_of(account), sender=account)


def advance_n_blocks(chain: Chain, n: int) -> int:
    return chain.mine(n)


def advance_time(chain: Chain, seconds: int) -> int:
    return chain.advance_time(seconds)


def underlying_balance_of(singularity: Singularity, pool: str, account: str) -> int:
    return singularity.vault(pool).underlying_balance_of(account)


class AccountPool:
    """Hands out a fresh account to every scenario so positions never overlap."""

    def __init__(self, accounts: Sequence[str]) -> None:
        self._accounts = [normalise_address(a) for a in accounts]
        self._index = 0

    def next(self) -> str:
        if self._index >= len(self._accounts):
            raise IndexError("Account pool exhausted")
        account = self._accounts[self._index]
        self._index += 1
        return account

    def __len__(self) -> int:
        return len(self._accounts) - self._index


__all__ = [
    "BURN_ADDRESS",
    "parse_tokens",
    "hours_to_seconds",
    "check_exact",
    "use_approval",
    "get_weth",
    "drain",
    "burn",
    "advance_n_blocks",
    "advance_time",
    "underlying_balance_of",
    "AccountPool",
]
