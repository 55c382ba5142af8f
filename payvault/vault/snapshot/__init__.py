# MIT License
# Copyright (c) 2025 Hashborn

"""
Vault Snapshot System

Creates, verifies and reloads compressed snapshots of the durable vault state.
"""

from .snapshot_manager import SnapshotManager
from .types import VaultSnapshot, SnapshotMetadata

__all__ = ["SnapshotManager", "VaultSnapshot", "SnapshotMetadata"]
