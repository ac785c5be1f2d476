"""Protocol deployment.

The order in :func:`deploy_protocol` matters: ownership moves to the
timelock last, because afterwards every configuration change has to go
through a scheduled, delayed call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .chain import Chain
from .core import PoolRegistry
from .core.constants import DEFAULT_MIN_DELAY, WETH_SYMBOL
from .core.errors import ValidationError
from .singularity import Singularity
from .timelock import TimelockController
from .tokens import ERC20, WETH
from .vault import VaultV1

logger = logging.getLogger(__name__)


@dataclass
class Deployment:
    """Handles to everything :func:`deploy_protocol` put on the chain."""

    chain: Chain
    deployer: str
    registry: PoolRegistry
    tokens: dict[str, ERC20]
    singularity: Singularity
    vault_implementation: VaultV1
    timelock: TimelockController
    vaults: dict[str, str] = field(default_factory=dict)

    @property
    def weth(self) -> WETH:
        return self.tokens[WETH_SYMBOL]  # type: ignore[return-value]

    def token_for(self, pool: str) -> ERC20:
        return self.tokens[self.registry.get(pool).symbol]

    def pool_for(self, symbol: str) -> str:
        return self.registry.by_symbol(symbol).pool


def deploy_tokens(chain: Chain, registry: PoolRegistry, deployer: str) -> dict[str, ERC20]:
    """Deploy one token per registry symbol, plus WETH which pays the ETH bonus."""

    tokens: dict[str, ERC20] = {WETH_SYMBOL: chain.deploy(WETH, sender=deployer)}
    for entry in registry:
        if entry.symbol in tokens:
            continue
        tokens[entry.symbol] = chain.deploy(
            ERC20, entry.symbol, entry.symbol, entry.decimals, sender=deployer
        )
        logger.debug("Deployed token %s (%d decimals)", entry.symbol, entry.decimals)
    return tokens


def deploy_protocol(
    chain: Chain,
    registry: PoolRegistry,
    *,
    deployer: str | None = None,
    tokens: dict[str, ERC20] | None = None,
    min_delay: int = DEFAULT_MIN_DELAY,
) -> Deployment:
    """Deploy the router and vault implementation, register pools, hand over ownership."""

    if not len(registry):
        raise ValidationError("Registry is empty")
    deployer = deployer or chain.accounts[0]
    if tokens is None:
        tokens = deploy_tokens(chain, registry, deployer)
    if WETH_SYMBOL not in tokens:
        raise ValidationError("A WETH token is required for the ETH bonus")
    missing = sorted({entry.symbol for entry in registry} - set(tokens))
    if missing:
        raise ValidationError(f"No token deployed for registry symbols: {', '.join(missing)}")

    logger.info("Deploying Singularity from %s", deployer)
    singularity = chain.deploy(
        Singularity, tokens[WETH_SYMBOL].address, sender=deployer, min_delay=min_delay
    )
    implementation = chain.deploy(VaultV1, sender=deployer)

    singularity.set_vault_target(implementation.address, sender=deployer)
    logger.info("Vault target set to %s", implementation.address)

    pools = registry.pools
    vaults = singularity.add_pools(
        pools, [tokens[entry.symbol].address for entry in registry], sender=deployer
    )
    logger.info("Registered %d pools", len(vaults))

    singularity.transfer_ownership(singularity.timelock_controller, sender=deployer)
    logger.info("Ownership handed to timelock %s", singularity.timelock_controller)

    return Deployment(
        chain=chain,
        deployer=deployer,
        registry=registry,
        tokens=tokens,
        singularity=singularity,
        vault_implementation=implementation,
        timelock=singularity.timelock,
        vaults=dict(zip(pools, vaults)),
    )


__all__ = ["Deployment", "deploy_tokens", "deploy_protocol"]
