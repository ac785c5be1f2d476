"""Integration scenarios for the router, mirroring the forked-mainnet suite.

Every scenario uses a fresh account from :class:`AccountPool` so positions
from one deposit never leak into another scenario's balances.
"""

from __future__ import annotations

import pytest

from singularity_vaults import (
    AuthorizationError,
    ClaimResult,
    StateError,
    TimelockController,
    ValidationError,
    VaultV1,
)
from singularity_vaults.testing import (
    advance_n_blocks,
    advance_time,
    check_exact,
    drain,
    get_weth,
    hours_to_seconds,
    parse_tokens,
    underlying_balance_of,
    use_approval,
)


@pytest.mark.parametrize("amount", [1, 5])
def test_stake_weth(singularity, weth, weth_pool, accounts, amount) -> None:
    account = accounts.next()
    value = parse_tokens(amount)

    get_weth(weth, account, value)
    use_approval(weth, singularity.address)(account)
    singularity.deposit(weth_pool, value, account, sender=account)

    check_exact(
        value,
        underlying_balance_of(singularity, weth_pool, account),
        0.01,
        "Stake calculation faulty",
    )


def test_stake_and_unstake_half_usdc(singularity, usdc, usdc_pool, holder, accounts) -> None:
    account = accounts.next()
    amount = parse_tokens(4000, 6)

    use_approval(usdc, singularity.address)(account)
    drain(usdc, holder, account, amount)

    singularity.deposit(usdc_pool, amount, account, sender=account)
    check_exact(
        amount,
        underlying_balance_of(singularity, usdc_pool, account),
        0.01,
        "Stake calculation faulty for USDC staking",
    )

    vault = singularity.vault(usdc_pool)
    half_shares = vault.balance_of(account) // 2

    singularity.withdraw(usdc_pool, half_shares, account, sender=account)

    check_exact(
        amount // 2,
        underlying_balance_of(singularity, usdc_pool, account),
        0.01,
        "Stake calculation faulty for USDC unstaking",
    )
    assert usdc.balance_of(account) == amount - vault.underlying_balance_of(account)


def test_claim_earned_eth_from_weth_pool(
    chain, singularity, weth, weth_pool, accounts, eth_bonus
) -> None:
    account = accounts.next()
    amount = parse_tokens(12)

    get_weth(weth, account, amount)
    use_approval(weth, singularity.address)(account)
    singularity.deposit(weth_pool, amount, account, sender=account)
    check_exact(
        amount,
        underlying_balance_of(singularity, weth_pool, account),
        0.01,
        "Stake calculation faulty",
    )

    for _ in range(10):
        advance_n_blocks(chain, 100)

    vault = singularity.vault(weth_pool)
    expected = vault.earned_eth(account)
    initial_weth = weth.balance_of(account)

    result = singularity.claim_eth(weth_pool, account, sender=account)

    (event,) = chain.last_receipt.events[-1:]
    earned = event.args["amount"]
    claimed_weth = weth.balance_of(account)

    assert isinstance(result, ClaimResult)
    assert event.name == "ClaimETH"
    assert claimed_weth != initial_weth, "Didn't receive WETH from ETH bonus"
    assert earned >= expected
    assert claimed_weth - initial_weth == earned == result.amount
    assert vault.earned_eth(account) == 0


def test_update_vault_logic_only_on_timelock_call(chain, singularity, deployer, accounts) -> None:
    other = accounts.next()
    new_vault = chain.deploy(VaultV1, sender=other)

    with pytest.raises(AuthorizationError):
        singularity.set_vault_target(new_vault.address, sender=other)
    with pytest.raises(AuthorizationError):
        singularity.set_vault_target(new_vault.address, sender=deployer)

    timelock = chain.get_contract(singularity.timelock_controller, TimelockController)
    call_data = singularity.encode_vault_target(new_vault.address)
    data = (singularity.address, 0, call_data, "0x0", "0x0")

    with pytest.raises(AuthorizationError):
        timelock.schedule(*data, 86400, sender=other)
    timelock.schedule(*data, 86400, sender=deployer)
    with pytest.raises(AuthorizationError):
        timelock.execute(*data, sender=other)
    with pytest.raises(StateError):
        timelock.execute(*data, sender=deployer)

    advance_time(chain, hours_to_seconds(25))

    with pytest.raises(AuthorizationError):
        timelock.execute(*data, sender=other)
    timelock.execute(*data, sender=deployer)

    assert singularity.vault_target == new_vault.address


def test_new_pools_use_upgraded_target(chain, deployment, singularity, deployer, weth_pool) -> None:
    old_target = singularity.vault_target
    new_vault = chain.deploy(VaultV1, sender=deployer)
    timelock = deployment.timelock
    extra_pool = "0x1111111111111111111111111111111111111111"

    upgrade = (singularity.address, 0, singularity.encode_vault_target(new_vault.address), "0x0", "0x0")
    upgrade_id = timelock.schedule(*upgrade, 86400, sender=deployer)
    add_pool = (
        singularity.address,
        0,
        singularity.encode_add_pools([extra_pool], [deployment.weth.address]),
        upgrade_id,
        "0x0",
    )
    timelock.schedule(*add_pool, 86400, sender=deployer)
    advance_time(chain, hours_to_seconds(25))

    with pytest.raises(StateError):
        timelock.execute(*add_pool, sender=deployer)
    timelock.execute(*upgrade, sender=deployer)
    timelock.execute(*add_pool, sender=deployer)

    assert singularity.vault(extra_pool).implementation == new_vault.address
    assert singularity.vault(weth_pool).implementation == old_target
    assert singularity.pools()[-1] == extra_pool


def test_deposit_rejects_unknown_pool_and_zero_amount(singularity, weth, weth_pool, accounts) -> None:
    account = accounts.next()
    get_weth(weth, account, parse_tokens(1))
    use_approval(weth, singularity.address)(account)

    with pytest.raises(ValidationError):
        singularity.deposit("0x2222222222222222222222222222222222222222", 1, account, sender=account)
    with pytest.raises(ValidationError):
        singularity.deposit(weth_pool, 0, account, sender=account)


def test_failed_deposit_leaves_no_trace(chain, singularity, weth, weth_pool, accounts) -> None:
    account = accounts.next()
    get_weth(weth, account, parse_tokens(1))
    block = chain.block_number
    receipts = len(chain.receipts)

    with pytest.raises(AuthorizationError):
        singularity.deposit(weth_pool, parse_tokens(1), account, sender=account)

    assert weth.balance_of(account) == parse_tokens(1)
    assert singularity.vault(weth_pool).total_supply == 0
    assert chain.block_number == block
    assert len(chain.receipts) == receipts
    assert not chain.events("Deposit", address=singularity.address)


def test_deposit_credits_another_account(singularity, weth, weth_pool, accounts) -> None:
    payer, beneficiary = accounts.next(), accounts.next()
    get_weth(weth, payer, parse_tokens(2))
    use_approval(weth, singularity.address)(payer)

    result = singularity.deposit(weth_pool, parse_tokens(2), beneficiary, sender=payer)

    vault = singularity.vault(weth_pool)
    assert result.shares == vault.balance_of(beneficiary) == parse_tokens(2)
    assert vault.balance_of(payer) == 0
    with pytest.raises(AuthorizationError):
        singularity.withdraw(weth_pool, result.shares, beneficiary, sender=payer)


def test_withdraw_more_than_held_reverts(singularity, weth, weth_pool, accounts) -> None:
    account = accounts.next()
    get_weth(weth, account, parse_tokens(1))
    use_approval(weth, singularity.address)(account)
    deposit = singularity.deposit(weth_pool, parse_tokens(1), account, sender=account)

    with pytest.raises(StateError):
        singularity.withdraw(weth_pool, deposit.shares + 1, account, sender=account)
    with pytest.raises(ValidationError):
        singularity.withdraw(weth_pool, 0, account, sender=account)

    result = singularity.withdraw(weth_pool, deposit.shares, account, sender=account)
    assert result.amount == parse_tokens(1)
    position = singularity.vault(weth_pool).position(account)
    assert not position.is_open
    assert position.checkpoint_block == result.block_number


def test_claim_without_bonus_reverts(singularity, weth, weth_pool, accounts) -> None:
    account = accounts.next()
    get_weth(weth, account, parse_tokens(1))
    use_approval(weth, singularity.address)(account)
    singularity.deposit(weth_pool, parse_tokens(1), account, sender=account)

    with pytest.raises(StateError):
        singularity.claim_eth(weth_pool, account, sender=account)


def test_claim_for_someone_else_is_rejected(
    chain, singularity, weth, weth_pool, accounts, eth_bonus
) -> None:
    account, other = accounts.next(), accounts.next()
    get_weth(weth, account, parse_tokens(1))
    use_approval(weth, singularity.address)(account)
    singularity.deposit(weth_pool, parse_tokens(1), account, sender=account)
    advance_n_blocks(chain, 10)

    with pytest.raises(AuthorizationError):
        singularity.claim_eth(weth_pool, account, sender=other)


def test_admin_calls_rejected_after_ownership_transfer(deployment, singularity, deployer) -> None:
    assert singularity.owner == singularity.timelock_controller

    with pytest.raises(AuthorizationError):
        singularity.add_pools(
            ["0x3333333333333333333333333333333333333333"],
            [deployment.weth.address],
            sender=deployer,
        )
    with pytest.raises(AuthorizationError):
        singularity.transfer_ownership(deployer, sender=deployer)


def test_usdc_pool_bonus_paid_in_weth(
    chain, singularity, usdc, weth, usdc_pool, holder, accounts, deployer
) -> None:
    account = accounts.next()
    amount = parse_tokens(4000, 6)
    drain(usdc, holder, account, amount)
    use_approval(usdc, singularity.address)(account)
    singularity.deposit(usdc_pool, amount, account, sender=account)

    bonus = parse_tokens(1)
    get_weth(weth, deployer, bonus)
    weth.approve(singularity.address, bonus, sender=deployer)
    singularity.fund_eth_bonus(usdc_pool, bonus, 100, sender=deployer)
    advance_n_blocks(chain, 200)

    result = singularity.claim_eth(usdc_pool, account, sender=account)

    assert result.amount == weth.balance_of(account)
    check_exact(bonus, result.amount, 0.01, "Whole stream should go to the only depositor")
    vault = singularity.vault(usdc_pool)
    assert vault.held_underlying() == vault.total_underlying == amount
