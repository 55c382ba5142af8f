# MIT License
# Copyright (c) 2025 Hashborn

"""
Snapshot Manager

Handles creation, storage, loading, and verification of vault snapshots.
"""

import gzip
import logging
from pathlib import Path
from typing import List, Optional, TYPE_CHECKING

from .types import VaultSnapshot, SnapshotMetadata

if TYPE_CHECKING:
    from ..core.vault import PayoutVault

logger = logging.getLogger(__name__)


class SnapshotManager:
    """
    Manages vault snapshots on disk.

    Snapshots are saved as compressed JSON files:
    - snapshots/snapshot_<sequence>.json.gz (full snapshot)
    - snapshots/snapshot_<sequence>_meta.json (metadata for quick queries)
    """

    def __init__(self, snapshots_dir: str = "snapshots"):
        self.snapshots_dir = Path(snapshots_dir)
        self.snapshots_dir.mkdir(parents=True, exist_ok=True)

    def create_snapshot(self, vault: "PayoutVault") -> SnapshotMetadata:
        """
        Write the vault's current state to disk.

        Args:
            vault: Vault to snapshot

        Returns:
            SnapshotMetadata for the created snapshot
        """
        snapshot = vault.to_snapshot()
        logger.info(f"Creating snapshot at sequence {snapshot.sequence}...")

        snapshot_path = self._get_snapshot_path(snapshot.sequence)
        uncompressed_data = snapshot.model_dump_json(indent=None).encode()
        uncompressed_size = len(uncompressed_data)

        with gzip.open(snapshot_path, 'wb', compresslevel=6) as f:
            f.write(uncompressed_data)

        compressed_size = snapshot_path.stat().st_size

        metadata = SnapshotMetadata(
            version=snapshot.version,
            network_id=snapshot.network_id,
            vault_address=snapshot.vault_address,
            sequence=snapshot.sequence,
            timestamp=snapshot.timestamp,
            participants_count=len(snapshot.weights),
            total_weight=snapshot.total_weight,
            total_deposited=snapshot.total_deposited,
            total_claimed=snapshot.total_claimed,
            hash=snapshot.hash,
            compressed_size=compressed_size,
            uncompressed_size=uncompressed_size
        )

        meta_path = self._get_metadata_path(snapshot.sequence)
        with open(meta_path, 'w') as f:
            f.write(metadata.model_dump_json(indent=2))

        logger.info(
            f"Snapshot created at sequence {snapshot.sequence}: "
            f"{len(snapshot.weights)} participants, {compressed_size / 1024:.2f} KB compressed"
        )

        return metadata

    def load_snapshot(self, sequence: int) -> VaultSnapshot:
        """
        Load a snapshot from disk.

        Raises:
            FileNotFoundError: If snapshot doesn't exist
            ValueError: If snapshot hash verification fails
        """
        snapshot_path = self._get_snapshot_path(sequence)

        if not snapshot_path.exists():
            raise FileNotFoundError(f"Snapshot at sequence {sequence} not found")

        with gzip.open(snapshot_path, 'rb') as f:
            data = f.read()

        snapshot = VaultSnapshot.model_validate_json(data)

        if not snapshot.verify_hash():
            raise ValueError(f"Snapshot at sequence {sequence} failed hash verification!")

        logger.info(f"Snapshot loaded: sequence {sequence}, {len(snapshot.weights)} participants")
        return snapshot

    def list_snapshots(self) -> List[SnapshotMetadata]:
        """List all snapshot metadata, oldest first."""
        snapshots = []
        for meta_file in self.snapshots_dir.glob("snapshot_*_meta.json"):
            try:
                snapshots.append(SnapshotMetadata.model_validate_json(meta_file.read_text()))
            except Exception as e:
                logger.warning(f"Failed to load snapshot metadata {meta_file}: {e}")

        snapshots.sort(key=lambda s: s.sequence)
        return snapshots

    def get_latest_snapshot(self) -> Optional[SnapshotMetadata]:
        snapshots = self.list_snapshots()
        return snapshots[-1] if snapshots else None

    def delete_snapshot(self, sequence: int):
        for path in (self._get_snapshot_path(sequence), self._get_metadata_path(sequence)):
            if path.exists():
                path.unlink()
        logger.info(f"Deleted snapshot at sequence {sequence}")

    def _get_snapshot_path(self, sequence: int) -> Path:
        return self.snapshots_dir / f"snapshot_{sequence}.json.gz"

    def _get_metadata_path(self, sequence: int) -> Path:
        return self.snapshots_dir / f"snapshot_{sequence}_meta.json"
