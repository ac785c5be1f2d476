from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass, field
from typing import Any

from singularity_vaults import (
    Chain,
    ClaimResult,
    Deployment,
    deploy_protocol,
    load_registry,
)
from singularity_vaults.config import apply_env_overrides, load_config
from singularity_vaults.core.constants import WETH_SYMBOL
from singularity_vaults.reporting import positions_frame, write_report
from singularity_vaults.testing import (
    AccountPool,
    advance_n_blocks,
    drain,
    get_weth,
    parse_tokens,
    use_approval,
)

logger = logging.getLogger(__name__)


@dataclass
class ScenarioResult:
    deployment: Deployment
    depositors: list[tuple[str, str]] = field(default_factory=list)
    claims: list[ClaimResult] = field(default_factory=list)

    @property
    def accounts(self) -> list[str]:
        return sorted({account for _, account in self.depositors})


def build_chain(cfg: dict[str, Any]) -> Chain:
    chain_cfg = cfg["chain"]
    return Chain(
        chain_id=int(chain_cfg["chain_id"]),
        seconds_per_block=int(chain_cfg["seconds_per_block"]),
        accounts=int(chain_cfg["accounts"]),
        initial_balance=parse_tokens(chain_cfg["initial_balance_eth"]),
    )


def run_scenario(cfg: dict[str, Any]) -> ScenarioResult:
    """Deploy, fund the ETH bonus, deposit, let blocks pass and claim.

    Account 0 deploys, the last account acts as the large token holder the
    depositors are funded from, everyone in between deposits once.
    """

    chain = build_chain(cfg)
    registry = load_registry(cfg["registry"]["path"])
    deployment = deploy_protocol(chain, registry, min_delay=int(cfg["timelock"]["min_delay"]))
    singularity = deployment.singularity
    deployer = deployment.deployer
    result = ScenarioResult(deployment)

    rewards = cfg["rewards"]
    bonus = parse_tokens(rewards["eth_bonus"])
    if bonus:
        get_weth(deployment.weth, deployer, bonus)
        deployment.weth.approve(singularity.address, bonus, sender=deployer)
        singularity.fund_eth_bonus(
            deployment.pool_for(rewards["pool"]),
            bonus,
            int(rewards["duration_blocks"]),
            sender=deployer,
        )

    scenario = cfg["scenario"]
    holder = chain.accounts[-1]
    for symbol, amount in scenario.get("holder_balances", {}).items():
        token = deployment.tokens[symbol]
        token.mint(holder, parse_tokens(amount, token.decimals), sender=deployer)

    accounts = AccountPool(chain.accounts[1:-1])
    for symbol, amount in scenario["deposits"].items():
        entry = registry.by_symbol(symbol)
        token = deployment.tokens[entry.symbol]
        account = accounts.next()
        value = parse_tokens(amount, entry.decimals)
        if entry.symbol == WETH_SYMBOL:
            get_weth(deployment.weth, account, value)
        else:
            drain(token, holder, account, value)
        use_approval(token, singularity.address)(account)
        deposit = singularity.deposit(entry.pool, value, account, sender=account)
        logger.info("%s deposited %s %s for %d shares", account, amount, symbol, deposit.shares)
        result.depositors.append((entry.pool, account))

    advance_n_blocks(chain, int(scenario["blocks"]))

    for pool, account in result.depositors:
        if singularity.earned_eth(pool, account) > 0:
            claim = singularity.claim_eth(pool, account, sender=account)
            logger.info("%s claimed %d wei of ETH bonus", account, claim.amount)
            result.claims.append(claim)
    return result


def main() -> None:
    """Run the scenario using configuration from file or environment variables."""

    cfg_file = os.getenv("SINGULARITY_CONFIG") or (sys.argv[1] if len(sys.argv) > 1 else None)
    cfg = apply_env_overrides(load_config(cfg_file))
    logging.basicConfig(
        level=str(cfg["logging"]["level"]).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    result = run_scenario(cfg)
    singularity = result.deployment.singularity
    print(positions_frame(singularity, result.accounts).to_string(index=False))

    outdir = cfg["output"].get("outdir")
    if outdir:
        paths = write_report(singularity, result.accounts, outdir)
        for name, path in paths.items():
            logger.info("Wrote %s report to %s", name, path)


if __name__ == "__main__":
    main()
