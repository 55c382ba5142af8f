from typing import Dict, Optional
import logging

from .journal import Journal
from ...protocol.types.common import (
    AuthorizationError,
    Capability,
    InvalidState,
    PausedError,
    Role,
    VaultStatus,
)

logger = logging.getLogger(__name__)

# Each capability belongs to exactly one role; the sets are disjoint
CAPABILITY_ROLES: Dict[Capability, Role] = {
    Capability.PAUSE: Role.GUARDIAN,
    Capability.CONFIGURE: Role.GOVERNOR,
}


class AccessController:
    """
    Guardian/governor capability checks and the Active/Paused state machine.
    """

    def __init__(self, guardian: str, governor: str, status: VaultStatus = VaultStatus.ACTIVE):
        self._holders: Dict[Role, str] = {
            Role.GUARDIAN: guardian,
            Role.GOVERNOR: governor,
        }
        self.status = status

    @property
    def guardian(self) -> str:
        return self._holders[Role.GUARDIAN]

    @property
    def governor(self) -> str:
        return self._holders[Role.GOVERNOR]

    @property
    def paused(self) -> bool:
        return self.status == VaultStatus.PAUSED

    def authorize(self, actor: str, capability: Capability) -> bool:
        return self._holders[CAPABILITY_ROLES[capability]] == actor

    def require(self, actor: str, capability: Capability) -> None:
        if not self.authorize(actor, capability):
            role = CAPABILITY_ROLES[capability]
            raise AuthorizationError(f"{actor} lacks {capability.value} (requires {role.value.lower()})")

    def require_active(self) -> None:
        if self.paused:
            raise PausedError("Vault is paused")

    def pause(self, actor: str, journal: Optional[Journal] = None) -> None:
        self.require(actor, Capability.PAUSE)
        if self.paused:
            raise InvalidState("Vault is already paused")
        self._set_status(VaultStatus.PAUSED, journal)

    def unpause(self, actor: str, journal: Optional[Journal] = None) -> None:
        self.require(actor, Capability.PAUSE)
        if not self.paused:
            raise InvalidState("Vault is not paused")
        self._set_status(VaultStatus.ACTIVE, journal)

    def _set_status(self, status: VaultStatus, journal: Optional[Journal]) -> None:
        if journal is not None:
            journal.record(setattr, self, "status", self.status)
        self.status = status
        logger.debug(f"Vault status -> {status.value}")

    def transfer_role(self, actor: str, role: Role, new_holder: str, journal: Optional[Journal] = None) -> str:
        """Rotates a role to a new holder. Governor only. Returns the previous holder."""
        self.require(actor, Capability.CONFIGURE)
        previous = self._holders[role]
        if journal is not None:
            journal.record(self._holders.__setitem__, role, previous)
        self._holders[role] = new_holder
        return previous
