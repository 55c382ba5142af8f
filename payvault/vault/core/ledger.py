# MIT License
# Copyright (c) 2025 Hashborn

"""
Accumulator-based payout accounting.

acc_per_weight tracks cumulative payout per unit of weight, scaled by SCALE.
A deposit advances it once; each participant keeps a checkpoint of the value
they last settled at, so both deposit and settlement are O(1):

    delta = amount * SCALE // total_weight
    owed  = weight * (acc_per_weight - checkpoint) // SCALE

Both divisions truncate. The lost remainder ("dust") stays in custody and is
never redistributed.
"""

from typing import Dict, Optional, Tuple
import logging

from .journal import Journal
from ...protocol.types.common import InvalidState
from ...protocol.config.params import SCALE

logger = logging.getLogger(__name__)


class AccrualLedger:
    """Global payout-per-weight accumulator plus running totals."""

    def __init__(self, acc_per_weight: int = 0, total_deposited: int = 0, total_claimed: int = 0):
        self.acc_per_weight = acc_per_weight
        self.total_deposited = total_deposited
        self.total_claimed = total_claimed

    @staticmethod
    def compute_delta(amount: int, total_weight: int) -> Tuple[int, int]:
        """
        Returns (delta, remainder) for a deposit.

        remainder is the scaled amount lost to truncation; it is always below
        total_weight, i.e. below (total_weight - 1) / SCALE token units.

        Raises:
            InvalidState: If no weight is registered to receive the deposit.
        """
        if total_weight <= 0:
            raise InvalidState("Cannot deposit while total weight is zero")
        scaled = amount * SCALE
        return scaled // total_weight, scaled % total_weight

    def advance(self, amount: int, delta: int, journal: Optional[Journal] = None) -> int:
        if journal is not None:
            journal.record(self._restore, self.acc_per_weight, self.total_deposited, self.total_claimed)
        self.acc_per_weight += delta
        self.total_deposited += amount
        return self.acc_per_weight

    def record_payout(self, amount: int, journal: Optional[Journal] = None) -> None:
        if journal is not None:
            journal.record(self._restore, self.acc_per_weight, self.total_deposited, self.total_claimed)
        self.total_claimed += amount

    def _restore(self, acc_per_weight: int, total_deposited: int, total_claimed: int) -> None:
        self.acc_per_weight = acc_per_weight
        self.total_deposited = total_deposited
        self.total_claimed = total_claimed


class CheckpointStore:
    """Per-account accumulator value as of the account's last settlement."""

    def __init__(self):
        self._checkpoints: Dict[str, int] = {}

    def checkpoint_of(self, account: str) -> int:
        return self._checkpoints.get(account, 0)

    def checkpoints(self) -> Dict[str, int]:
        return dict(self._checkpoints)

    @staticmethod
    def owed(weight: int, acc_per_weight: int, checkpoint: int) -> int:
        return weight * (acc_per_weight - checkpoint) // SCALE

    def pending(self, account: str, weight: int, acc_per_weight: int) -> int:
        """Amount settle() would return right now, without settling."""
        return self.owed(weight, acc_per_weight, self.checkpoint_of(account))

    def settle(self, account: str, weight: int, acc_per_weight: int, journal: Optional[Journal] = None) -> int:
        """
        Computes what the account is owed and syncs its checkpoint fully.

        A second settle with no deposit in between returns 0 and leaves the
        checkpoint where it is.
        """
        checkpoint = self.checkpoint_of(account)
        if checkpoint > acc_per_weight:
            raise InvalidState(
                f"Checkpoint {checkpoint} for {account} is ahead of accumulator {acc_per_weight}"
            )

        owed = self.owed(weight, acc_per_weight, checkpoint)
        if journal is not None:
            journal.record(self._restore, account, checkpoint, account in self._checkpoints)
        self._checkpoints[account] = acc_per_weight
        return owed

    def _restore(self, account: str, checkpoint: int, existed: bool) -> None:
        if existed:
            self._checkpoints[account] = checkpoint
        else:
            self._checkpoints.pop(account, None)

    def load(self, checkpoints: Dict[str, int]) -> None:
        self._checkpoints = dict(checkpoints)
