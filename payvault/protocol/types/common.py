from enum import Enum


class VaultStatus(str, Enum):
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"


class Capability(str, Enum):
    PAUSE = "PAUSE"          # guardian: pause / unpause
    CONFIGURE = "CONFIGURE"  # governor: weights, roles, upgrades


class Role(str, Enum):
    GUARDIAN = "GUARDIAN"
    GOVERNOR = "GOVERNOR"


class EventType(str, Enum):
    DEPOSIT = "deposit"
    CLAIM = "claim"
    WEIGHTS_UPDATED = "weights_updated"
    PAUSED = "paused"
    UNPAUSED = "unpaused"
    ROLE_TRANSFERRED = "role_transferred"
    UPGRADE_AUTHORIZED = "upgrade_authorized"


class ProtocolError(Exception):
    pass

class VaultError(ProtocolError):
    """Base class for every error that aborts a vault operation."""
    pass

class ValidationError(VaultError):
    pass

class AuthorizationError(VaultError):
    pass

class PausedError(VaultError):
    pass

class ExpiredRequest(VaultError):
    pass

class BadSignature(VaultError):
    pass

class InvalidState(VaultError):
    pass

class TransferFailure(VaultError):
    pass

class ReentrancyError(VaultError):
    pass
