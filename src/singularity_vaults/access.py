"""Role based authorisation for ledger contracts.

A role is a 32 byte identifier (the keccak hash of its name). Every role has
an admin role whose holders may grant and revoke it. Privileged operations
call :meth:`AccessControl._check_role`, which raises
:class:`~singularity_vaults.core.AuthorizationError` for anyone else.
"""

from __future__ import annotations

from .chain import Contract, external, transaction
from .core.addresses import normalise_address, to_bytes32
from .core.constants import DEFAULT_ADMIN_ROLE, ROLE_NAMES
from .core.errors import AuthorizationError


def role_name(role: bytes) -> str:
    return ROLE_NAMES.get(role, "0x" + role.hex())


class AccessControl(Contract):
    def has_role(self, role: bytes, account: str) -> bool:
        return bool(self._get("roles", to_bytes32(role), normalise_address(account), default=False))

    def get_role_admin(self, role: bytes) -> bytes:
        return self._get("role_admin", to_bytes32(role), default=DEFAULT_ADMIN_ROLE)

    def get_role_members(self, role: bytes) -> list[str]:
        role = to_bytes32(role)
        return sorted(
            key[0] for key, held in self.chain.state.scan(self.address, "roles", role) if held
        )

    def _check_role(self, role: bytes, account: str) -> None:
        if not self.has_role(role, account):
            raise AuthorizationError(f"{account} is missing {role_name(role)}")

    def _set_role_admin(self, role: bytes, admin_role: bytes) -> None:
        self._set(admin_role, "role_admin", role)

    def _grant_role(self, role: bytes, account: str) -> None:
        account = normalise_address(account)
        if not self.has_role(role, account):
            self._set(True, "roles", role, account)
            self._emit("RoleGranted", role=role, account=account)

    def _revoke_role(self, role: bytes, account: str) -> None:
        account = normalise_address(account)
        if self.has_role(role, account):
            self._set(False, "roles", role, account)
            self._emit("RoleRevoked", role=role, account=account)

    @external("grantRole(bytes32,address)")
    @transaction
    def grant_role(self, role: bytes, account: str, *, sender: str) -> None:
        role = to_bytes32(role)
        self._check_role(self.get_role_admin(role), sender)
        self._grant_role(role, account)

    @external("revokeRole(bytes32,address)")
    @transaction
    def revoke_role(self, role: bytes, account: str, *, sender: str) -> None:
        role = to_bytes32(role)
        self._check_role(self.get_role_admin(role), sender)
        self._revoke_role(role, account)

    @transaction
    def renounce_role(self, role: bytes, account: str, *, sender: str) -> None:
        if normalise_address(account) != sender:
            raise AuthorizationError("Roles can only be renounced for self")
        self._revoke_role(to_bytes32(role), account)


__all__ = ["AccessControl", "role_name"]
