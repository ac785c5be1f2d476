"""In-process ledger hosting the Singularity contracts.

The ledger reproduces the execution model the contracts rely on:

- Transactions run one at a time. Each one either applies completely or is
  rolled back completely, including the events it emitted.
- Every committed transaction is mined into its own block. Time only moves
  with blocks, via :meth:`Chain.mine` and :meth:`Chain.advance_time`.
- Contract storage lives in a single journalled :class:`StateStore`, so a
  revert at any call depth restores exactly what that call changed.
- Contracts can be invoked with ABI encoded calldata (:meth:`Chain.call`),
  which is how the timelock reaches the router.

Contract methods that change state are wrapped with :func:`transaction` and
take the caller as a keyword-only ``sender`` argument.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, TypeVar

from eth_abi import decode, encode
from eth_utils import keccak

from .core import Event, Receipt
from .core.addresses import derive_address, normalise_address
from .core.constants import SECONDS_PER_BLOCK
from .core.errors import StateError, ValidationError

logger = logging.getLogger(__name__)

_MISSING = object()

C = TypeVar("C", bound="Contract")
F = TypeVar("F", bound=Callable[..., Any])


class StateStore:
    """Key/value storage with nested, journalled snapshots."""

    def __init__(self) -> None:
        self._data: dict[tuple[Any, ...], Any] = {}
        self._journals: list[list[tuple[tuple[Any, ...], Any]]] = []

    def get(self, key: tuple[Any, ...], default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: tuple[Any, ...], value: Any) -> None:
        if self._journals:
            self._journals[-1].append((key, self._data.get(key, _MISSING)))
        self._data[key] = value

    def snapshot(self) -> int:
        self._journals.append([])
        return len(self._journals)

    def commit(self) -> None:
        journal = self._journals.pop()
        if self._journals:
            self._journals[-1].extend(journal)

    def revert(self) -> None:
        journal = self._journals.pop()
        for key, previous in reversed(journal):
            if previous is _MISSING:
                self._data.pop(key, None)
            else:
                self._data[key] = previous

    def scan(self, *prefix: Any) -> Iterator[tuple[tuple[Any, ...], Any]]:
        """Yield ``(key_suffix, value)`` for every key starting with ``prefix``."""

        n = len(prefix)
        for key, value in list(self._data.items()):
            if key[:n] == prefix:
                yield key[n:], value

    @property
    def depth(self) -> int:
        return len(self._journals)


@dataclass
class _PendingTransaction:
    sender: str
    logs: list[tuple[str, str, dict[str, Any]]] = field(default_factory=list)


@dataclass
class Frame:
    """Call frame handed to the body of :meth:`Chain.transaction`."""

    pending: _PendingTransaction
    depth: int
    result: Any = None


def function_selector(signature: str) -> bytes:
    return keccak(text=signature)[:4]


def argument_types(signature: str) -> list[str]:
    inner = signature[signature.index("(") + 1 : signature.rindex(")")]
    return [t.strip() for t in inner.split(",") if t.strip()]


def encode_function_call(signature: str, args: Sequence[Any]) -> bytes:
    """ABI encode a call, e.g. ``encode_function_call("setVaultTarget(address)", [addr])``."""

    return function_selector(signature) + encode(argument_types(signature), list(args))


class Chain:
    """Single shared ledger with deterministic, serial block production."""

    def __init__(
        self,
        *,
        chain_id: int = 1,
        seconds_per_block: int = SECONDS_PER_BLOCK,
        accounts: int = 10,
        initial_balance: int = 100 * 10**18,
        genesis_timestamp: int = 1_600_000_000,
    ) -> None:
        self.chain_id = chain_id
        self.seconds_per_block = seconds_per_block
        self.state = StateStore()
        self.block_number = 0
        self.timestamp = genesis_timestamp
        self.receipts: list[Receipt] = []
        self._pending: _PendingTransaction | None = None
        self.accounts = [derive_address("account", chain_id, i) for i in range(accounts)]
        for account in self.accounts:
            self.state.set(("eth", account), initial_balance)

    # -----------------
    # Blocks and time
    # -----------------

    def _require_idle(self) -> None:
        if self.in_transaction:
            raise StateError("Cannot advance the chain inside a transaction")

    def mine(self, blocks: int = 1) -> int:
        """Produce ``blocks`` empty blocks and return the new block number."""

        self._require_idle()
        if blocks < 0:
            raise ValidationError("Cannot mine a negative number of blocks")
        self.block_number += blocks
        self.timestamp += blocks * self.seconds_per_block
        return self.block_number

    def advance_time(self, seconds: int) -> int:
        """Move the clock forward and mine one block carrying the new timestamp."""

        self._require_idle()
        if seconds < 0:
            raise ValidationError("Time cannot move backwards")
        self.timestamp += seconds
        self.block_number += 1
        return self.timestamp

    # -----------------
    # Transactions
    # -----------------

    @property
    def in_transaction(self) -> bool:
        return self._pending is not None

    @contextmanager
    def transaction(self, sender: str) -> Iterator[Frame]:
        """Run the body atomically.

        The outermost transaction opens a new block, and on success records a
        :class:`Receipt` with the events emitted and the frame's ``result``.
        Nested transactions join the outer one and only undo their own
        changes when they fail.
        """

        sender = normalise_address(sender)
        if self._pending is not None:
            pending = self._pending
            mark = len(pending.logs)
            self.state.snapshot()
            try:
                yield Frame(pending, self.state.depth)
            except BaseException:
                self.state.revert()
                del pending.logs[mark:]
                raise
            else:
                self.state.commit()
            return

        pending = _PendingTransaction(sender)
        frame = Frame(pending, 1)
        self._pending = pending
        self.block_number += 1
        self.timestamp += self.seconds_per_block
        self.state.snapshot()
        try:
            yield frame
        except BaseException as exc:
            self.state.revert()
            self.block_number -= 1
            self.timestamp -= self.seconds_per_block
            logger.debug("Transaction from %s reverted: %s", sender, exc)
            raise
        else:
            self.state.commit()
            events = tuple(
                Event(name, address, args, self.block_number, index)
                for index, (address, name, args) in enumerate(pending.logs)
            )
            self.receipts.append(
                Receipt(self.block_number, self.timestamp, sender, events, frame.result)
            )
        finally:
            self._pending = None

    def emit(self, address: str, name: str, args: dict[str, Any]) -> None:
        if not self.in_transaction:
            raise StateError("Events can only be emitted inside a transaction")
        self._pending.logs.append((address, name, dict(args)))

    @property
    def last_receipt(self) -> Receipt:
        if not self.receipts:
            raise StateError("No transaction has been mined yet")
        return self.receipts[-1]

    def events(self, name: str | None = None, address: str | None = None) -> list[Event]:
        address = normalise_address(address) if address else None
        return [
            event
            for receipt in self.receipts
            for event in receipt.events
            if (name is None or event.name == name)
            and (address is None or event.address == address)
        ]

    # -----------------
    # Native ETH
    # -----------------

    def balance(self, address: str) -> int:
        return self.state.get(("eth", normalise_address(address)), 0)

    def transfer_eth(self, sender: str, to: str, value: int) -> None:
        if value < 0:
            raise ValidationError("Negative ETH transfer")
        sender = normalise_address(sender)
        to = normalise_address(to)
        with self.transaction(sender):
            available = self.balance(sender)
            if available < value:
                raise StateError(f"{sender} holds {available} wei, needs {value}")
            self.state.set(("eth", sender), available - value)
            self.state.set(("eth", to), self.balance(to) + value)

    # -----------------
    # Contracts
    # -----------------

    def deploy(self, contract_cls: type[C], *args: Any, sender: str, **kwargs: Any) -> C:
        """Create a contract at a CREATE-style address derived from sender and nonce."""

        sender = normalise_address(sender)
        with self.transaction(sender) as frame:
            nonce = self.state.get(("nonce", sender), 0)
            self.state.set(("nonce", sender), nonce + 1)
            address = derive_address("create", self.chain_id, sender, nonce)
            contract = contract_cls(self, address, *args, deployer=sender, **kwargs)
            self.state.set(("code", address), contract)
            frame.result = address
        logger.debug("Deployed %s at %s", contract_cls.__name__, address)
        return contract

    def get_contract(self, address: str, cls: type[C] | None = None) -> C:
        contract = self.state.get(("code", normalise_address(address)))
        if contract is None:
            raise ValidationError(f"No contract deployed at {address}")
        if cls is not None and not isinstance(contract, cls):
            raise ValidationError(f"{address} is not a {cls.__name__}")
        return contract

    def is_contract(self, address: str) -> bool:
        return self.state.get(("code", normalise_address(address))) is not None

    def call(self, target: str, data: bytes, *, value: int = 0, sender: str) -> Any:
        """Send ``value`` and ABI encoded ``data`` to ``target``."""

        with self.transaction(sender) as frame:
            if value:
                self.transfer_eth(sender, target, value)
            if data:
                frame.result = self.get_contract(target).handle_call(bytes(data), sender=sender)
        return frame.result


class Contract:
    """Base class for ledger contracts.

    Storage goes through :meth:`_get`/:meth:`_set` so that it is journalled.
    Methods decorated with :func:`external` are reachable through ABI encoded
    calldata.
    """

    _selectors: dict[bytes, tuple[str, list[str]]] = {}

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        selectors: dict[bytes, tuple[str, list[str]]] = {}
        for klass in reversed(cls.__mro__):
            for name, member in vars(klass).items():
                signature = getattr(member, "__abi_signature__", None)
                if signature:
                    selectors[function_selector(signature)] = (name, argument_types(signature))
        cls._selectors = selectors

    def __init__(self, chain: Chain, address: str, *, deployer: str) -> None:
        self.chain = chain
        self.address = address
        self.deployer = deployer

    def _get(self, *key: Any, default: Any = 0) -> Any:
        return self.chain.state.get((self.address, *key), default)

    def _set(self, value: Any, *key: Any) -> None:
        self.chain.state.set((self.address, *key), value)

    def _emit(self, name: str, **args: Any) -> None:
        self.chain.emit(self.address, name, args)

    def handle_call(self, data: bytes, *, sender: str) -> Any:
        selector = data[:4]
        if selector not in self._selectors:
            raise ValidationError(
                f"{type(self).__name__} has no function with selector 0x{selector.hex()}"
            )
        name, types = self._selectors[selector]
        args = decode(types, data[4:]) if types else ()
        return getattr(self, name)(*args, sender=sender)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.address}>"


def transaction(fn: F) -> F:
    """Run a contract method atomically, with ``sender`` as the caller."""

    @functools.wraps(fn)
    def wrapper(self: Contract, *args: Any, sender: str, **kwargs: Any) -> Any:
        with self.chain.transaction(sender) as frame:
            frame.result = fn(self, *args, sender=normalise_address(sender), **kwargs)
        return frame.result

    return wrapper  # type: ignore[return-value]


def external(signature: str) -> Callable[[F], F]:
    """Expose a method under its Solidity-style signature for calldata dispatch."""

    def decorate(fn: F) -> F:
        fn.__abi_signature__ = signature  # type: ignore[attr-defined]
        return fn

    return decorate


__all__ = [
    "Chain",
    "Contract",
    "Frame",
    "StateStore",
    "transaction",
    "external",
    "function_selector",
    "argument_types",
    "encode_function_call",
]
