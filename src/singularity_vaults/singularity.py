"""Router mapping pools to their vaults.

Depositors only ever talk to :class:`Singularity`; it moves tokens into the
pool's vault and forwards the accounting calls. Administration is split by
role:

- ``OWNER_ROLE`` registers pools and chooses the vault implementation
  (``vault_target``) new pools are cloned from. Deployment hands it to the
  router's own :class:`~singularity_vaults.timelock.TimelockController`, after
  which configuration changes have to be scheduled and wait out the delay.
- ``REWARDS_ROLE`` funds the ETH bonus streams. Its admin is the owner role.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from .access import AccessControl
from .chain import Chain, encode_function_call, external, transaction
from .core import ClaimResult, DepositResult, WithdrawResult
from .core.addresses import normalise_address
from .core.constants import DEFAULT_MIN_DELAY, OWNER_ROLE, REWARDS_ROLE, ZERO_ADDRESS
from .core.errors import AuthorizationError, StateError, ValidationError
from .timelock import TimelockController
from .tokens import ERC20, WETH
from .vault import VaultV1

logger = logging.getLogger(__name__)

SET_VAULT_TARGET = "setVaultTarget(address)"
ADD_POOLS = "addPools(address[],address[])"


class Singularity(AccessControl):
    def __init__(
        self,
        chain: Chain,
        address: str,
        weth: str,
        *,
        deployer: str,
        min_delay: int = DEFAULT_MIN_DELAY,
    ) -> None:
        super().__init__(chain, address, deployer=deployer)
        self.weth = chain.get_contract(weth, WETH).address
        self._set_role_admin(OWNER_ROLE, OWNER_ROLE)
        self._set_role_admin(REWARDS_ROLE, OWNER_ROLE)
        self._grant_role(OWNER_ROLE, deployer)
        self._grant_role(REWARDS_ROLE, deployer)
        self._set(deployer, "owner")
        timelock = chain.deploy(
            TimelockController,
            min_delay,
            [deployer],
            [deployer],
            sender=address,
            admin=deployer,
        )
        self.timelock_controller = timelock.address

    # -----------------
    # Views
    # -----------------

    @property
    def owner(self) -> str:
        return self._get("owner", default=ZERO_ADDRESS)

    @property
    def timelock(self) -> TimelockController:
        return self.chain.get_contract(self.timelock_controller, TimelockController)

    @property
    def vault_target(self) -> str:
        return self._get("vault_target", default=ZERO_ADDRESS)

    def pools(self) -> list[str]:
        return [self._get("pools", i) for i in range(self._get("pool_count"))]

    def get_vault(self, pool: str) -> str:
        vault = self._get("vaults", normalise_address(pool), default=None)
        if vault is None:
            raise ValidationError(f"Unknown pool: {pool}")
        return vault

    def vault(self, pool: str) -> VaultV1:
        return self.chain.get_contract(self.get_vault(pool), VaultV1)

    def underlying_balance_of(self, pool: str, account: str) -> int:
        return self.vault(pool).underlying_balance_of(account)

    def earned_eth(self, pool: str, account: str) -> int:
        return self.vault(pool).earned_eth(account)

    def encode_vault_target(self, target: str) -> bytes:
        """Calldata for a timelocked ``setVaultTarget(target)`` call."""

        return encode_function_call(SET_VAULT_TARGET, [normalise_address(target)])

    def encode_add_pools(self, pools: Sequence[str], tokens: Sequence[str]) -> bytes:
        return encode_function_call(
            ADD_POOLS,
            [[normalise_address(p) for p in pools], [normalise_address(t) for t in tokens]],
        )

    # -----------------
    # Administration
    # -----------------

    @external("transferOwnership(address)")
    @transaction
    def transfer_ownership(self, new_owner: str, *, sender: str) -> None:
        self._check_role(OWNER_ROLE, sender)
        new_owner = normalise_address(new_owner)
        if new_owner == ZERO_ADDRESS:
            raise ValidationError("New owner is the zero address")
        previous = self.owner
        self._revoke_role(OWNER_ROLE, previous)
        self._grant_role(OWNER_ROLE, new_owner)
        self._set(new_owner, "owner")
        self._emit("OwnershipTransferred", previous_owner=previous, new_owner=new_owner)
        logger.info("Ownership of %s transferred to %s", self.address, new_owner)

    @external(SET_VAULT_TARGET)
    @transaction
    def set_vault_target(self, target: str, *, sender: str) -> None:
        self._check_role(OWNER_ROLE, sender)
        implementation = self.chain.get_contract(target, VaultV1)
        if not implementation.is_implementation:
            raise ValidationError(f"{target} is a pool vault, not an implementation")
        previous = self.vault_target
        self._set(implementation.address, "vault_target")
        self._emit("VaultTargetUpdated", previous=previous, target=implementation.address)
        logger.info("Vault target of %s set to %s", self.address, implementation.address)

    @external(ADD_POOLS)
    @transaction
    def add_pools(self, pools: Sequence[str], tokens: Sequence[str], *, sender: str) -> list[str]:
        """Register each pool with a vault cloned from the current target."""

        self._check_role(OWNER_ROLE, sender)
        if not pools or len(pools) != len(tokens):
            raise ValidationError("Pools and tokens must be non-empty and of equal length")
        if self.vault_target == ZERO_ADDRESS:
            raise StateError("Vault target must be set before adding pools")
        implementation = self.chain.get_contract(self.vault_target, VaultV1)
        vaults: list[str] = []
        for pool, token in zip(pools, tokens):
            pool = normalise_address(pool)
            if self._get("vaults", pool, default=None) is not None:
                raise ValidationError(f"Pool already registered: {pool}")
            vault = implementation.clone(pool, token, self.weth, sender=self.address)
            count = self._get("pool_count")
            self._set(vault.address, "vaults", pool)
            self._set(pool, "pools", count)
            self._set(count + 1, "pool_count")
            self._emit("PoolAdded", pool=pool, token=vault.token, vault=vault.address)
            vaults.append(vault.address)
        logger.info("Registered %d pools on %s", len(vaults), self.address)
        return vaults

    @transaction
    def fund_eth_bonus(self, pool: str, amount: int, duration_blocks: int, *, sender: str) -> int:
        """Move ``amount`` WETH from ``sender`` into the pool's vault as a bonus stream."""

        self._check_role(REWARDS_ROLE, sender)
        vault = self.vault(pool)
        self.chain.get_contract(self.weth, ERC20).transfer_from(
            sender, vault.address, amount, sender=self.address
        )
        rate = vault.notify_reward(amount, duration_blocks, sender=self.address)
        self._emit("BonusFunded", pool=vault.pool, amount=amount, duration=duration_blocks)
        return rate

    # -----------------
    # Depositor entry points
    # -----------------

    @transaction
    def deposit(self, pool: str, amount: int, account: str, *, sender: str) -> DepositResult:
        """Pull ``amount`` of the pool's token from ``sender`` and credit ``account``."""

        if amount <= 0:
            raise ValidationError("Deposit amount must be positive")
        account = normalise_address(account)
        vault = self.vault(pool)
        vault.underlying.transfer_from(sender, vault.address, amount, sender=self.address)
        shares = vault.mint(account, amount, sender=self.address)
        self._emit("Deposit", pool=vault.pool, account=account, amount=amount, shares=shares)
        return DepositResult(vault.pool, account, amount, shares, self.chain.block_number)

    @transaction
    def withdraw(self, pool: str, shares: int, account: str, *, sender: str) -> WithdrawResult:
        """Burn ``shares`` of ``account`` and return the underlying to it."""

        account = normalise_address(account)
        if sender != account:
            raise AuthorizationError(f"{sender} cannot withdraw for {account}")
        if shares <= 0:
            raise ValidationError("Share amount must be positive")
        vault = self.vault(pool)
        amount = vault.burn(account, shares, account, sender=self.address)
        self._emit("Withdraw", pool=vault.pool, account=account, shares=shares, amount=amount)
        return WithdrawResult(vault.pool, account, shares, amount, self.chain.block_number)

    @transaction
    def claim_eth(self, pool: str, account: str, *, sender: str) -> ClaimResult:
        """Settle the ETH bonus of ``account`` and pay it out in WETH."""

        account = normalise_address(account)
        if sender != account:
            raise AuthorizationError(f"{sender} cannot claim for {account}")
        vault = self.vault(pool)
        amount = vault.settle_rewards(account, sender=self.address)
        self._emit("ClaimETH", pool=vault.pool, account=account, vault=vault.address, amount=amount)
        logger.debug("%s claimed %d wei from %s", account, amount, vault.pool)
        return ClaimResult(vault.pool, account, vault.address, amount, self.chain.block_number)


__all__ = ["Singularity", "SET_VAULT_TARGET", "ADD_POOLS"]
