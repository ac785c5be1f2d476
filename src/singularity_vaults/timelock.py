"""Delayed execution of privileged calls.

An operation is a call (or a batch of calls) identified by the keccak hash of
its ABI encoded ``(target, value, data, predecessor, salt)`` tuple. Proposers
schedule it with a delay of at least ``min_delay`` seconds; once the delay
has elapsed an executor may run it, exactly once. Proposers may cancel a
pending operation. An operation with a non-zero ``predecessor`` only runs
after that predecessor has been executed.

Lifecycle, as reported by :meth:`TimelockController.get_timestamp`::

    0 (unset) -> ready_at (pending) -> 1 (done)
                         \\-> 0 (cancelled)
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from eth_abi import encode
from eth_utils import keccak

from .access import AccessControl
from .chain import Chain, external, transaction
from .core import Operation
from .core.addresses import normalise_address, to_bytes32
from .core.constants import (
    BYTES32_ZERO,
    CANCELLER_ROLE,
    DONE_TIMESTAMP,
    EXECUTOR_ROLE,
    PROPOSER_ROLE,
    TIMELOCK_ADMIN_ROLE,
    ZERO_ADDRESS,
)
from .core.errors import AuthorizationError, StateError, ValidationError

logger = logging.getLogger(__name__)


class TimelockController(AccessControl):
    def __init__(
        self,
        chain: Chain,
        address: str,
        min_delay: int,
        proposers: Sequence[str],
        executors: Sequence[str],
        *,
        deployer: str,
        admin: str | None = None,
    ) -> None:
        super().__init__(chain, address, deployer=deployer)
        for role in (TIMELOCK_ADMIN_ROLE, PROPOSER_ROLE, EXECUTOR_ROLE, CANCELLER_ROLE):
            self._set_role_admin(role, TIMELOCK_ADMIN_ROLE)
        self._grant_role(TIMELOCK_ADMIN_ROLE, address)
        if admin is not None:
            self._grant_role(TIMELOCK_ADMIN_ROLE, admin)
        for proposer in proposers:
            self._grant_role(PROPOSER_ROLE, proposer)
            self._grant_role(CANCELLER_ROLE, proposer)
        for executor in executors:
            self._grant_role(EXECUTOR_ROLE, executor)
        self._set(min_delay, "min_delay")
        self._emit("MinDelayChange", old_duration=0, new_duration=min_delay)

    @property
    def min_delay(self) -> int:
        return self._get("min_delay")

    # -----------------
    # Operation state
    # -----------------

    def hash_operation(
        self, target: str, value: int, data: bytes, predecessor: bytes | str, salt: bytes | str
    ) -> bytes:
        return keccak(
            encode(
                ["address", "uint256", "bytes", "bytes32", "bytes32"],
                [normalise_address(target), value, bytes(data), to_bytes32(predecessor), to_bytes32(salt)],
            )
        )

    def hash_operation_batch(
        self,
        targets: Sequence[str],
        values: Sequence[int],
        payloads: Sequence[bytes],
        predecessor: bytes | str,
        salt: bytes | str,
    ) -> bytes:
        return keccak(
            encode(
                ["address[]", "uint256[]", "bytes[]", "bytes32", "bytes32"],
                [
                    [normalise_address(t) for t in targets],
                    list(values),
                    [bytes(p) for p in payloads],
                    to_bytes32(predecessor),
                    to_bytes32(salt),
                ],
            )
        )

    def get_timestamp(self, operation_id: bytes) -> int:
        return self._get("timestamps", to_bytes32(operation_id))

    def is_operation(self, operation_id: bytes) -> bool:
        return self.get_timestamp(operation_id) > 0

    def is_operation_pending(self, operation_id: bytes) -> bool:
        return self.get_timestamp(operation_id) > DONE_TIMESTAMP

    def is_operation_ready(self, operation_id: bytes) -> bool:
        ts = self.get_timestamp(operation_id)
        return ts > DONE_TIMESTAMP and ts <= self.chain.timestamp

    def is_operation_done(self, operation_id: bytes) -> bool:
        return self.get_timestamp(operation_id) == DONE_TIMESTAMP

    def get_operation(self, operation_id: bytes) -> Operation:
        operation = self._get("operations", to_bytes32(operation_id), default=None)
        if operation is None:
            raise ValidationError(f"Unknown operation 0x{to_bytes32(operation_id).hex()}")
        return operation

    def pending_operations(self) -> list[Operation]:
        return [
            op
            for _, op in self.chain.state.scan(self.address, "operations")
            if self.is_operation_pending(op.operation_id)
        ]

    # -----------------
    # Scheduling
    # -----------------

    def _only_role_or_open(self, role: bytes, account: str) -> None:
        if not self.has_role(role, ZERO_ADDRESS):
            self._check_role(role, account)

    def _schedule(self, operation: Operation, delay: int) -> Operation:
        if self.is_operation(operation.operation_id):
            raise StateError("Operation already scheduled")
        if delay < self.min_delay:
            raise ValidationError(f"Delay {delay}s is below the minimum of {self.min_delay}s")
        ready_at = self.chain.timestamp + delay
        scheduled = Operation(
            operation_id=operation.operation_id,
            targets=operation.targets,
            values=operation.values,
            payloads=operation.payloads,
            predecessor=operation.predecessor,
            salt=operation.salt,
            ready_at=ready_at,
        )
        self._set(ready_at, "timestamps", operation.operation_id)
        self._set(scheduled, "operations", operation.operation_id)
        for index, target in enumerate(operation.targets):
            self._emit(
                "CallScheduled",
                id=operation.operation_id,
                index=index,
                target=target,
                value=operation.values[index],
                data=operation.payloads[index],
                predecessor=operation.predecessor,
                delay=delay,
            )
        logger.info(
            "Scheduled operation 0x%s, ready at %d", operation.operation_id.hex(), ready_at
        )
        return scheduled

    @transaction
    def schedule(
        self,
        target: str,
        value: int,
        data: bytes,
        predecessor: bytes | str,
        salt: bytes | str,
        delay: int,
        *,
        sender: str,
    ) -> bytes:
        self._check_role(PROPOSER_ROLE, sender)
        operation_id = self.hash_operation(target, value, data, predecessor, salt)
        self._schedule(
            Operation(
                operation_id=operation_id,
                targets=(normalise_address(target),),
                values=(value,),
                payloads=(bytes(data),),
                predecessor=to_bytes32(predecessor),
                salt=to_bytes32(salt),
            ),
            delay,
        )
        return operation_id

    @transaction
    def schedule_batch(
        self,
        targets: Sequence[str],
        values: Sequence[int],
        payloads: Sequence[bytes],
        predecessor: bytes | str,
        salt: bytes | str,
        delay: int,
        *,
        sender: str,
    ) -> bytes:
        self._check_role(PROPOSER_ROLE, sender)
        if not targets or not (len(targets) == len(values) == len(payloads)):
            raise ValidationError("Batch targets, values and payloads must be non-empty and aligned")
        operation_id = self.hash_operation_batch(targets, values, payloads, predecessor, salt)
        self._schedule(
            Operation(
                operation_id=operation_id,
                targets=tuple(normalise_address(t) for t in targets),
                values=tuple(values),
                payloads=tuple(bytes(p) for p in payloads),
                predecessor=to_bytes32(predecessor),
                salt=to_bytes32(salt),
            ),
            delay,
        )
        return operation_id

    @transaction
    def cancel(self, operation_id: bytes, *, sender: str) -> None:
        self._check_role(CANCELLER_ROLE, sender)
        operation_id = to_bytes32(operation_id)
        if not self.is_operation_pending(operation_id):
            raise StateError("Operation cannot be cancelled")
        self._set(0, "timestamps", operation_id)
        self._emit("Cancelled", id=operation_id)
        logger.info("Cancelled operation 0x%s", operation_id.hex())

    # -----------------
    # Execution
    # -----------------

    def _before_call(self, operation_id: bytes, predecessor: bytes) -> None:
        if not self.is_operation_ready(operation_id):
            raise StateError("Operation is not ready")
        if predecessor != BYTES32_ZERO and not self.is_operation_done(predecessor):
            raise StateError("Missing dependency: predecessor has not been executed")

    def _after_call(self, operation_id: bytes) -> None:
        if not self.is_operation_ready(operation_id):
            raise StateError("Operation is not ready")
        self._set(DONE_TIMESTAMP, "timestamps", operation_id)

    def _call(self, operation_id: bytes, index: int, target: str, value: int, data: bytes) -> None:
        self.chain.call(target, data, value=value, sender=self.address)
        self._emit(
            "CallExecuted", id=operation_id, index=index, target=target, value=value, data=data
        )

    @transaction
    def execute(
        self,
        target: str,
        value: int,
        data: bytes,
        predecessor: bytes | str,
        salt: bytes | str,
        *,
        sender: str,
    ) -> bytes:
        self._only_role_or_open(EXECUTOR_ROLE, sender)
        operation_id = self.hash_operation(target, value, data, predecessor, salt)
        self._before_call(operation_id, to_bytes32(predecessor))
        self._call(operation_id, 0, normalise_address(target), value, bytes(data))
        self._after_call(operation_id)
        logger.info("Executed operation 0x%s", operation_id.hex())
        return operation_id

    @transaction
    def execute_batch(
        self,
        targets: Sequence[str],
        values: Sequence[int],
        payloads: Sequence[bytes],
        predecessor: bytes | str,
        salt: bytes | str,
        *,
        sender: str,
    ) -> bytes:
        self._only_role_or_open(EXECUTOR_ROLE, sender)
        if not targets or not (len(targets) == len(values) == len(payloads)):
            raise ValidationError("Batch targets, values and payloads must be non-empty and aligned")
        operation_id = self.hash_operation_batch(targets, values, payloads, predecessor, salt)
        self._before_call(operation_id, to_bytes32(predecessor))
        for index, (target, value, data) in enumerate(zip(targets, values, payloads)):
            self._call(operation_id, index, normalise_address(target), value, bytes(data))
        self._after_call(operation_id)
        logger.info("Executed batch operation 0x%s", operation_id.hex())
        return operation_id

    @external("updateDelay(uint256)")
    @transaction
    def update_delay(self, new_delay: int, *, sender: str) -> None:
        if sender != self.address:
            raise AuthorizationError("The delay can only be changed through the timelock itself")
        self._emit("MinDelayChange", old_duration=self.min_delay, new_duration=new_delay)
        self._set(new_delay, "min_delay")


__all__ = ["TimelockController"]
