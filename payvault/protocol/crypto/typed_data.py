# MIT License
# Copyright (c) 2025 Hashborn

"""
EIP-712 structured data hashing for delegated claims.

digest = keccak256(0x19 0x01 || domainSeparator || hashStruct(Claim))

Only the static field types used here (address, uint256, string) are
supported; every field is encoded as a single 32-byte word.
"""

from pydantic import BaseModel, Field

from .hash import keccak256
from .addresses import address_to_bytes
from ..config.params import CLAIM_TYPE, EIP712_DOMAIN_TYPE

DOMAIN_TYPEHASH = keccak256(EIP712_DOMAIN_TYPE.encode())
CLAIM_TYPEHASH = keccak256(CLAIM_TYPE.encode())

UINT256_MAX = 2**256 - 1


def encode_uint(value: int) -> bytes:
    if value < 0 or value > UINT256_MAX:
        raise ValueError(f"uint256 out of range: {value}")
    return value.to_bytes(32, 'big')


def encode_address(addr: str) -> bytes:
    return address_to_bytes(addr).rjust(32, b'\x00')


def encode_string(value: str) -> bytes:
    # Dynamic types are replaced by the hash of their contents
    return keccak256(value.encode("utf-8"))


class Eip712Domain(BaseModel):
    """Binds signatures to one vault instance on one chain."""
    name: str
    version: str
    chain_id: int = Field(ge=0)
    verifying_contract: str

    def separator(self) -> bytes:
        return keccak256(
            DOMAIN_TYPEHASH
            + encode_string(self.name)
            + encode_string(self.version)
            + encode_uint(self.chain_id)
            + encode_address(self.verifying_contract)
        )


def hash_claim(beneficiary: str, recipient: str, nonce: int, deadline: int) -> bytes:
    """hashStruct(Claim{beneficiary, recipient, nonce, deadline})."""
    return keccak256(
        CLAIM_TYPEHASH
        + encode_address(beneficiary)
        + encode_address(recipient)
        + encode_uint(nonce)
        + encode_uint(deadline)
    )


def typed_data_digest(domain_separator: bytes, struct_hash: bytes) -> bytes:
    return keccak256(b"\x19\x01" + domain_separator + struct_hash)
