from __future__ import annotations

import pytest

from singularity_vaults import ERC20, Chain, StateError, ValidationError
from singularity_vaults.chain import StateStore, encode_function_call, function_selector
from singularity_vaults.core import derive_address, to_bytes32


def test_state_store_nested_revert_restores_only_inner_changes() -> None:
    store = StateStore()
    store.set(("a",), 1)

    store.snapshot()
    store.set(("a",), 2)
    store.snapshot()
    store.set(("a",), 3)
    store.set(("b",), 4)
    store.revert()

    assert store.get(("a",)) == 2
    assert store.get(("b",)) is None

    store.revert()
    assert store.get(("a",)) == 1
    assert store.depth == 0


def test_state_store_commit_folds_into_parent() -> None:
    store = StateStore()
    store.snapshot()
    store.snapshot()
    store.set(("x",), "inner")
    store.commit()
    store.revert()

    assert store.get(("x",)) is None


def test_state_store_scan_yields_suffixes() -> None:
    store = StateStore()
    store.set(("vault", "shares", "alice"), 1)
    store.set(("vault", "shares", "bob"), 2)
    store.set(("other", "shares", "alice"), 3)

    assert dict(store.scan("vault", "shares")) == {("alice",): 1, ("bob",): 2}


def test_accounts_are_funded_and_deterministic() -> None:
    first, second = Chain(), Chain()

    assert first.accounts == second.accounts
    assert len(set(first.accounts)) == 10
    assert all(first.balance(a) == 100 * 10**18 for a in first.accounts)


def test_transaction_mines_one_block_and_records_receipt() -> None:
    chain = Chain()
    sender = chain.accounts[0]

    with chain.transaction(sender) as frame:
        chain.emit(sender, "Ping", {"n": 1})
        frame.result = "ok"

    receipt = chain.last_receipt
    assert chain.block_number == 1
    assert chain.timestamp == 1_600_000_015
    assert receipt.result == "ok"
    assert [e.name for e in receipt.events] == ["Ping"]
    assert receipt.events[0].block_number == 1


def test_reverted_transaction_discards_everything() -> None:
    chain = Chain()
    alice, bob = chain.accounts[0], chain.accounts[1]

    with pytest.raises(RuntimeError):
        with chain.transaction(alice):
            chain.transfer_eth(alice, bob, 10**18)
            chain.emit(alice, "Ping", {})
            raise RuntimeError("boom")

    assert chain.balance(bob) == 100 * 10**18
    assert chain.block_number == 0
    assert chain.receipts == []
    assert chain.events() == []


def test_inner_failure_can_be_caught_without_losing_outer_changes() -> None:
    chain = Chain()
    alice, bob = chain.accounts[0], chain.accounts[1]

    with chain.transaction(alice):
        chain.transfer_eth(alice, bob, 1)
        with pytest.raises(StateError):
            chain.transfer_eth(alice, bob, 10**30)

    assert chain.balance(bob) == 100 * 10**18 + 1
    assert len(chain.receipts) == 1


def test_mine_and_advance_time() -> None:
    chain = Chain(seconds_per_block=12)

    assert chain.mine(5) == 5
    assert chain.timestamp == 1_600_000_060
    assert chain.advance_time(3600) == 1_600_003_660
    assert chain.block_number == 6

    with pytest.raises(ValidationError):
        chain.mine(-1)
    with pytest.raises(ValidationError):
        chain.advance_time(-1)


def test_in_transaction_tracks_outermost_frame() -> None:
    chain = Chain()
    sender = chain.accounts[0]

    assert not chain.in_transaction
    with chain.transaction(sender):
        with chain.transaction(sender):
            assert chain.in_transaction
        assert chain.in_transaction
    assert not chain.in_transaction

    with pytest.raises(RuntimeError):
        with chain.transaction(sender):
            raise RuntimeError("boom")
    assert not chain.in_transaction


def test_chain_cannot_advance_inside_transaction() -> None:
    chain = Chain()

    with pytest.raises(StateError):
        with chain.transaction(chain.accounts[0]):
            chain.mine()
    with pytest.raises(StateError):
        with chain.transaction(chain.accounts[0]):
            chain.advance_time(10)
    with pytest.raises(StateError):
        chain.emit(chain.accounts[0], "Ping", {})


def test_deploy_addresses_follow_sender_and_nonce() -> None:
    chain = Chain()
    deployer = chain.accounts[0]

    first = chain.deploy(ERC20, "One", "ONE", sender=deployer)
    second = chain.deploy(ERC20, "Two", "TWO", sender=deployer)

    assert first.address == derive_address("create", 1, deployer, 0)
    assert second.address == derive_address("create", 1, deployer, 1)
    assert chain.is_contract(first.address)
    assert not chain.is_contract(deployer)
    assert chain.get_contract(second.address, ERC20) is second
    assert chain.last_receipt.result == second.address


def test_get_contract_rejects_unknown_or_mistyped() -> None:
    chain = Chain()
    token = chain.deploy(ERC20, "One", "ONE", sender=chain.accounts[0])

    with pytest.raises(ValidationError):
        chain.get_contract(chain.accounts[1])
    with pytest.raises(ValidationError):
        chain.get_contract(token.address, Chain)  # type: ignore[arg-type]


def test_call_dispatches_abi_encoded_calldata() -> None:
    chain = Chain()
    owner, other = chain.accounts[0], chain.accounts[1]
    token = chain.deploy(ERC20, "One", "ONE", sender=owner)
    token.mint(owner, 1000, sender=owner)

    data = encode_function_call("transfer(address,uint256)", [other, 400])
    assert data[:4].hex() == "a9059cbb"

    assert chain.call(token.address, data, sender=owner) is True
    assert token.balance_of(other) == 400

    with pytest.raises(ValidationError):
        chain.call(token.address, function_selector("nope()"), sender=owner)


def test_call_with_value_moves_native_eth() -> None:
    chain = Chain()
    alice, bob = chain.accounts[0], chain.accounts[1]

    chain.call(bob, b"", value=5, sender=alice)

    assert chain.balance(bob) == 100 * 10**18 + 5


def test_events_filter_by_name_and_address() -> None:
    chain = Chain()
    owner = chain.accounts[0]
    one = chain.deploy(ERC20, "One", "ONE", sender=owner)
    two = chain.deploy(ERC20, "Two", "TWO", sender=owner)
    one.mint(owner, 10, sender=owner)
    two.mint(owner, 10, sender=owner)
    one.approve(two.address, 5, sender=owner)

    assert len(chain.events("Transfer")) == 2
    assert [e.name for e in chain.events(address=one.address)] == ["Transfer", "Approval"]
    assert chain.events("Approval", address=two.address) == []


@pytest.mark.parametrize(
    "value, expected",
    [
        ("0x0", b"\x00" * 32),
        (1, b"\x00" * 31 + b"\x01"),
        (b"\xab", b"\x00" * 31 + b"\xab"),
    ],
)
def test_to_bytes32_left_pads(value, expected) -> None:
    assert to_bytes32(value) == expected


def test_to_bytes32_rejects_oversized() -> None:
    with pytest.raises(ValidationError):
        to_bytes32(b"\x01" * 33)
