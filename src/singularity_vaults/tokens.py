"""ERC20 and WETH token contracts."""

from __future__ import annotations

from .chain import Chain, Contract, external, transaction
from .core.addresses import normalise_address
from .core.constants import MAX_UINT256
from .core.errors import AuthorizationError, StateError, ValidationError


class ERC20(Contract):
    """Fungible token with balances, allowances and a single minter."""

    def __init__(
        self,
        chain: Chain,
        address: str,
        name: str,
        symbol: str,
        decimals: int = 18,
        *,
        deployer: str,
    ) -> None:
        super().__init__(chain, address, deployer=deployer)
        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        self.minter = deployer

    @property
    def total_supply(self) -> int:
        return self._get("total_supply")

    def balance_of(self, account: str) -> int:
        return self._get("balances", normalise_address(account))

    def allowance(self, owner: str, spender: str) -> int:
        return self._get("allowances", normalise_address(owner), normalise_address(spender))

    def _move(self, sender: str, to: str, amount: int) -> None:
        if amount < 0:
            raise ValidationError("Negative token amount")
        to = normalise_address(to)
        available = self.balance_of(sender)
        if available < amount:
            raise StateError(f"{self.symbol}: {sender} holds {available}, needs {amount}")
        self._set(available - amount, "balances", sender)
        self._set(self.balance_of(to) + amount, "balances", to)
        self._emit("Transfer", sender=sender, to=to, value=amount)

    @external("transfer(address,uint256)")
    @transaction
    def transfer(self, to: str, amount: int, *, sender: str) -> bool:
        self._move(sender, to, amount)
        return True

    @external("approve(address,uint256)")
    @transaction
    def approve(self, spender: str, amount: int, *, sender: str) -> bool:
        spender = normalise_address(spender)
        self._set(amount, "allowances", sender, spender)
        self._emit("Approval", owner=sender, spender=spender, value=amount)
        return True

    @external("transferFrom(address,address,uint256)")
    @transaction
    def transfer_from(self, owner: str, to: str, amount: int, *, sender: str) -> bool:
        owner = normalise_address(owner)
        allowed = self.allowance(owner, sender)
        if allowed < amount:
            raise AuthorizationError(
                f"{self.symbol}: {sender} may spend {allowed} of {owner}, needs {amount}"
            )
        if allowed != MAX_UINT256:
            self._set(allowed - amount, "allowances", owner, sender)
        self._move(owner, to, amount)
        return True

    @transaction
    def mint(self, to: str, amount: int, *, sender: str) -> None:
        if sender != self.minter:
            raise AuthorizationError(f"{self.symbol}: only the minter can mint")
        if amount <= 0:
            raise ValidationError("Mint amount must be positive")
        to = normalise_address(to)
        self._set(self.total_supply + amount, "total_supply")
        self._set(self.balance_of(to) + amount, "balances", to)
        self._emit("Transfer", sender=None, to=to, value=amount)


class WETH(ERC20):
    """Wrapped ether: 1:1 claim on the native ETH the contract holds."""

    def __init__(self, chain: Chain, address: str, *, deployer: str) -> None:
        super().__init__(chain, address, "Wrapped Ether", "WETH", 18, deployer=deployer)

    @transaction
    def deposit(self, value: int, *, sender: str) -> None:
        if value <= 0:
            raise ValidationError("Deposit value must be positive")
        self.chain.transfer_eth(sender, self.address, value)
        self._set(self.total_supply + value, "total_supply")
        self._set(self.balance_of(sender) + value, "balances", sender)
        self._emit("Deposit", dst=sender, wad=value)

    @external("withdraw(uint256)")
    @transaction
    def withdraw(self, amount: int, *, sender: str) -> None:
        available = self.balance_of(sender)
        if amount <= 0 or available < amount:
            raise StateError(f"WETH: {sender} holds {available}, needs {amount}")
        self._set(available - amount, "balances", sender)
        self._set(self.total_supply - amount, "total_supply")
        self.chain.transfer_eth(self.address, sender, amount)
        self._emit("Withdrawal", src=sender, wad=amount)


__all__ = ["ERC20", "WETH"]
