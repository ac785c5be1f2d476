"""Per-pool vault accounting.

A vault holds one pool's underlying token and tracks ownership as shares::

    shares  = amount * total_shares // total_underlying   (1:1 for the first deposit)
    value   = shares * total_underlying // total_shares

It also streams an ETH bonus, paid in WETH, to its share holders. The router
funds a stream of ``amount`` over ``duration`` blocks; every block releases
``reward_rate`` wei which is split pro rata by shares through a
reward-per-share accumulator scaled by :data:`REWARD_PRECISION`. An account's
accrual is checkpointed before each change to its shares, so ``earned_eth``
only depends on the current block and stored checkpoints and never decreases
until the account claims.

Vaults are created by cloning an implementation contract; only the router
that created a vault may move its counters.
"""

from __future__ import annotations

import logging

from .chain import Chain, Contract, transaction
from .core import Position
from .core.addresses import normalise_address
from .core.constants import PRICE_PRECISION, REWARD_PRECISION
from .core.errors import AuthorizationError, StateError, ValidationError
from .tokens import ERC20

logger = logging.getLogger(__name__)


class VaultV1(Contract):
    VERSION = 1

    def __init__(
        self,
        chain: Chain,
        address: str,
        *,
        deployer: str,
        pool: str | None = None,
        token: str | None = None,
        reward_token: str | None = None,
        router: str | None = None,
        implementation: str | None = None,
    ) -> None:
        super().__init__(chain, address, deployer=deployer)
        self.pool = normalise_address(pool) if pool else None
        self.token = normalise_address(token) if token else None
        self.reward_token = normalise_address(reward_token) if reward_token else None
        self.router = normalise_address(router) if router else None
        self.implementation = implementation or address

    @property
    def is_implementation(self) -> bool:
        return self.pool is None

    def clone(self, pool: str, token: str, reward_token: str, *, sender: str) -> "VaultV1":
        """Deploy a vault for ``pool`` running this implementation, owned by ``sender``."""

        if not self.is_implementation:
            raise StateError("Only implementation contracts can be cloned")
        self.chain.get_contract(token, ERC20)
        self.chain.get_contract(reward_token, ERC20)
        return self.chain.deploy(
            type(self),
            sender=sender,
            pool=pool,
            token=token,
            reward_token=reward_token,
            router=sender,
            implementation=self.address,
        )

    # -----------------
    # Share accounting
    # -----------------

    @property
    def underlying(self) -> ERC20:
        return self.chain.get_contract(self.token, ERC20)

    @property
    def rewards_asset(self) -> ERC20:
        return self.chain.get_contract(self.reward_token, ERC20)

    @property
    def total_supply(self) -> int:
        return self._get("total_shares")

    @property
    def total_underlying(self) -> int:
        return self._get("total_underlying")

    def balance_of(self, account: str) -> int:
        return self._get("shares", normalise_address(account))

    def principal_of(self, account: str) -> int:
        return self._get("principal", normalise_address(account))

    def convert_to_shares(self, amount: int) -> int:
        supply = self.total_supply
        underlying = self.total_underlying
        if supply == 0 or underlying == 0:
            return amount
        return amount * supply // underlying

    def convert_to_assets(self, shares: int) -> int:
        supply = self.total_supply
        if supply == 0:
            return 0
        return shares * self.total_underlying // supply

    def underlying_balance_of(self, account: str) -> int:
        return self.convert_to_assets(self.balance_of(account))

    @property
    def price_per_share(self) -> int:
        """Underlying per share, scaled by 1e18."""

        supply = self.total_supply
        if supply == 0:
            return PRICE_PRECISION
        return self.total_underlying * PRICE_PRECISION // supply

    def held_underlying(self) -> int:
        """Underlying actually held, excluding WETH reserved for the bonus."""

        held = self.underlying.balance_of(self.address)
        if self.token == self.reward_token:
            held -= self.reward_reserve
        return held

    # -----------------
    # ETH bonus
    # -----------------

    @property
    def reward_rate(self) -> int:
        return self._get("reward_rate")

    @property
    def period_finish(self) -> int:
        return self._get("period_finish")

    @property
    def reward_reserve(self) -> int:
        return self._get("reward_reserve")

    def last_block_reward_applicable(self) -> int:
        return min(self.chain.block_number, self.period_finish)

    def _accumulate(self) -> tuple[int, int]:
        """Reward per share up to now, and the scaled emission not yet divisible by supply."""

        stored = self._get("reward_per_share")
        carry = self._get("reward_carry")
        supply = self.total_supply
        if supply == 0:
            return stored, carry
        blocks = max(0, self.last_block_reward_applicable() - self._get("last_update_block"))
        emitted = blocks * self.reward_rate * REWARD_PRECISION + carry
        return stored + emitted // supply, emitted % supply

    def reward_per_share(self) -> int:
        return self._accumulate()[0]

    def earned_eth(self, account: str) -> int:
        account = normalise_address(account)
        accrued = self.balance_of(account) * (
            self.reward_per_share() - self._get("reward_per_share_paid", account)
        )
        return accrued // REWARD_PRECISION + self._get("rewards", account)

    def position(self, account: str) -> Position:
        account = normalise_address(account)
        return Position(
            pool=self.pool or "",
            account=account,
            shares=self.balance_of(account),
            underlying=self.underlying_balance_of(account),
            principal=self.principal_of(account),
            reward_per_share_paid=self._get("reward_per_share_paid", account),
            unsettled_rewards=self._get("rewards", account),
            checkpoint_block=self._get("checkpoint_block", account),
        )

    def _update_reward(self, account: str | None) -> None:
        stored, carry = self._accumulate()
        self._set(stored, "reward_per_share")
        self._set(carry, "reward_carry")
        self._set(self.last_block_reward_applicable(), "last_update_block")
        if account is not None:
            self._set(self.earned_eth(account), "rewards", account)
            self._set(stored, "reward_per_share_paid", account)
            self._set(self.chain.block_number, "checkpoint_block", account)

    # -----------------
    # Router entry points
    # -----------------

    def _check_router(self, sender: str) -> None:
        if self.is_implementation:
            raise StateError("Implementation contracts hold no positions")
        if sender != self.router:
            raise AuthorizationError(f"Only the router {self.router} may call this vault")

    @transaction
    def mint(self, account: str, amount: int, *, sender: str) -> int:
        """Credit ``account`` with shares for ``amount`` already moved into the vault."""

        self._check_router(sender)
        if amount <= 0:
            raise ValidationError("Deposit amount must be positive")
        account = normalise_address(account)
        shares = self.convert_to_shares(amount)
        if shares == 0:
            raise ValidationError(f"Deposit of {amount} is worth zero shares")
        self._update_reward(account)
        self._set(self.balance_of(account) + shares, "shares", account)
        self._set(self.principal_of(account) + amount, "principal", account)
        self._set(self.total_supply + shares, "total_shares")
        self._set(self.total_underlying + amount, "total_underlying")
        self._emit("Mint", account=account, amount=amount, shares=shares)
        logger.debug("Vault %s minted %d shares to %s", self.address, shares, account)
        return shares

    @transaction
    def burn(self, account: str, shares: int, receiver: str, *, sender: str) -> int:
        """Burn ``shares`` of ``account`` and pay the underlying to ``receiver``."""

        self._check_router(sender)
        if shares <= 0:
            raise ValidationError("Share amount must be positive")
        account = normalise_address(account)
        receiver = normalise_address(receiver)
        held = self.balance_of(account)
        if shares > held:
            raise StateError(f"{account} holds {held} shares, cannot burn {shares}")
        amount = self.convert_to_assets(shares)
        if amount == 0:
            raise ValidationError(f"Burning {shares} shares is worth zero underlying")
        self._update_reward(account)
        self._set(held - shares, "shares", account)
        self._set(max(0, self.principal_of(account) - amount), "principal", account)
        self._set(self.total_supply - shares, "total_shares")
        self._set(self.total_underlying - amount, "total_underlying")
        self.underlying.transfer(receiver, amount, sender=self.address)
        self._emit("Burn", account=account, receiver=receiver, amount=amount, shares=shares)
        logger.debug("Vault %s burned %d shares of %s", self.address, shares, account)
        return amount

    @transaction
    def settle_rewards(self, account: str, *, sender: str) -> int:
        """Pay out everything ``account`` has earned and reset its checkpoint."""

        self._check_router(sender)
        account = normalise_address(account)
        self._update_reward(account)
        reward = self._get("rewards", account)
        if reward == 0:
            raise StateError(f"{account} has no ETH bonus to claim")
        self._set(0, "rewards", account)
        self._set(self.reward_reserve - reward, "reward_reserve")
        self.rewards_asset.transfer(account, reward, sender=self.address)
        self._emit("RewardPaid", account=account, amount=reward)
        return reward

    @transaction
    def notify_reward(self, amount: int, duration_blocks: int, *, sender: str) -> int:
        """Start or extend the bonus stream with ``amount`` already moved into the vault."""

        self._check_router(sender)
        if amount <= 0 or duration_blocks <= 0:
            raise ValidationError("Reward amount and duration must be positive")
        self._update_reward(None)
        current = self.chain.block_number
        if current >= self.period_finish:
            rate = amount // duration_blocks
        else:
            leftover = (self.period_finish - current) * self.reward_rate
            rate = (amount + leftover) // duration_blocks
        if rate == 0:
            raise ValidationError(f"{amount} over {duration_blocks} blocks rounds to a zero rate")
        self._set(rate, "reward_rate")
        self._set(current, "last_update_block")
        self._set(current + duration_blocks, "period_finish")
        self._set(self.reward_reserve + amount, "reward_reserve")
        self._emit("RewardAdded", amount=amount, rate=rate, period_finish=current + duration_blocks)
        return rate


__all__ = ["VaultV1"]
