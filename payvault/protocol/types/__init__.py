from .common import (
    AuthorizationError,
    BadSignature,
    Capability,
    EventType,
    ExpiredRequest,
    InvalidState,
    PausedError,
    ProtocolError,
    ReentrancyError,
    Role,
    TransferFailure,
    ValidationError,
    VaultError,
    VaultStatus,
)

__all__ = [
    "AuthorizationError",
    "BadSignature",
    "Capability",
    "EventType",
    "ExpiredRequest",
    "InvalidState",
    "PausedError",
    "ProtocolError",
    "ReentrancyError",
    "Role",
    "TransferFailure",
    "ValidationError",
    "VaultError",
    "VaultStatus",
]
