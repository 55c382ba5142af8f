import hashlib
from eth_utils import keccak

def sha256(data: bytes) -> bytes:
    """Returns SHA256 hash of bytes."""
    return hashlib.sha256(data).digest()

def sha256_hex(data: bytes) -> str:
    """Returns SHA256 hash of bytes as hex string."""
    return sha256(data).hex()

def keccak256(data: bytes) -> bytes:
    """Returns Keccak-256 (pre-standard SHA3, as used by Ethereum) of bytes."""
    return keccak(primitive=data)
