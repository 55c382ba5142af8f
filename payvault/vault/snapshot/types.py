# MIT License
# Copyright (c) 2025 Hashborn

"""
Snapshot Data Structures
"""

from pydantic import BaseModel, Field
from typing import Dict, Optional

from ...protocol.types.common import VaultStatus


class SnapshotMetadata(BaseModel):
    """
    Snapshot metadata (stored separately for quick querying).
    """
    version: str = Field(default="1.0.0", description="Snapshot format version")
    network_id: str = Field(..., description="Network ID (devnet/testnet/mainnet)")
    vault_address: str = Field(..., description="Verifying contract address of the vault")
    sequence: int = Field(..., description="Committed operation count at snapshot")
    timestamp: str = Field(..., description="ISO 8601 timestamp")
    participants_count: int = Field(..., description="Number of participants")
    total_weight: int = Field(..., description="Total registered weight")
    total_deposited: int = Field(..., description="Cumulative deposits")
    total_claimed: int = Field(..., description="Cumulative payouts")
    hash: str = Field(..., description="SHA256 hash of snapshot data")
    compressed_size: int = Field(..., description="Compressed file size (bytes)")
    uncompressed_size: int = Field(..., description="Uncompressed data size (bytes)")


class VaultSnapshot(BaseModel):
    """
    Complete durable vault state.
    """
    version: str = Field(default="1.0.0", description="Snapshot format version")
    network_id: str = Field(..., description="Network ID")
    vault_address: str = Field(..., description="Verifying contract address")
    sequence: int = Field(default=0, description="Committed operation count")
    timestamp: str = Field(default="", description="ISO 8601 timestamp")

    # Global state
    total_weight: int = Field(default=0, ge=0)
    acc_per_weight: int = Field(default=0, ge=0)
    status: VaultStatus = Field(default=VaultStatus.ACTIVE)
    guardian: str
    governor: str

    # Accounting
    total_deposited: int = Field(default=0, ge=0)
    total_claimed: int = Field(default=0, ge=0)

    # Per-account state
    weights: Dict[str, int] = Field(default_factory=dict, description="address -> weight")
    checkpoints: Dict[str, int] = Field(default_factory=dict, description="address -> accumulator checkpoint")
    nonces: Dict[str, int] = Field(default_factory=dict, description="address -> next delegated-claim nonce")

    # Verification
    hash: Optional[str] = Field(default=None, description="SHA256 hash of snapshot (excluding this field)")

    def calculate_hash(self) -> str:
        """
        Calculate SHA256 hash of snapshot data (excluding hash and timestamp).
        """
        from ...protocol.crypto.hash import sha256_hex
        import json

        data = self.model_dump(mode="json", exclude={"hash", "timestamp"})

        # Sort keys for deterministic hashing
        canonical_json = json.dumps(data, sort_keys=True, separators=(',', ':'))

        return sha256_hex(canonical_json.encode())

    def verify_hash(self) -> bool:
        if not self.hash:
            return False

        return self.calculate_hash() == self.hash
