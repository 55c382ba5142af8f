from typing import Any

from eth_utils import is_address, to_checksum_address  # type: ignore

from .hash import keccak256
from ..config.params import ZERO_ADDRESS

def address_from_pubkey(pub_bytes: bytes) -> str:
    """Creates an EIP-55 checksummed address from a 64-byte public key."""
    if len(pub_bytes) != 64:
        raise ValueError(f"Expected 64-byte uncompressed public key, got {len(pub_bytes)} bytes")
    return to_checksum_address(keccak256(pub_bytes)[-20:])

def is_valid_address(addr: Any) -> bool:
    return isinstance(addr, str) and is_address(addr)

def normalize_address(addr: Any) -> str:
    """Returns the checksummed form of an address. Raises ValueError if invalid."""
    if not is_valid_address(addr):
        raise ValueError(f"Invalid address: {addr!r}")
    return to_checksum_address(addr)

def is_zero_address(addr: str) -> bool:
    return addr.lower() == ZERO_ADDRESS

def address_to_bytes(addr: str) -> bytes:
    """Returns the raw 20 bytes of a valid address."""
    return bytes.fromhex(normalize_address(addr)[2:])
