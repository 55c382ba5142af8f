from typing import Dict, List, Optional, Sequence, Tuple
import logging

from .journal import Journal
from ...protocol.types.common import ValidationError
from ...protocol.crypto.addresses import normalize_address, is_zero_address

logger = logging.getLogger(__name__)

# (account, old_weight, new_weight)
WeightChange = Tuple[str, int, int]


class WeightRegistry:
    """
    Participant weights and their running total.

    Invariant: total_weight == sum(weights). Accounts are created implicitly the
    first time a weight is assigned; assigning 0 keeps the entry (soft removal).
    """

    def __init__(self):
        self._weights: Dict[str, int] = {}
        self.total_weight = 0

    def weight_of(self, account: str) -> int:
        return self._weights.get(account, 0)

    def accounts(self) -> List[str]:
        return list(self._weights.keys())

    def __contains__(self, account: str) -> bool:
        return account in self._weights

    def __len__(self) -> int:
        return len(self._weights)

    def validate_batch(
        self,
        accounts: Sequence[str],
        weights: Sequence[int],
        max_batch_size: Optional[int] = None,
    ) -> List[Tuple[str, int]]:
        """
        Checks a weight batch without touching state.

        Returns the (checksummed account, weight) pairs in input order.

        Raises:
            ValidationError: On length mismatch, oversize batch, malformed or
                zero address, duplicate account, or non-integer/negative weight.
        """
        if len(accounts) != len(weights):
            raise ValidationError(
                f"accounts and weights length mismatch: {len(accounts)} != {len(weights)}"
            )
        if max_batch_size is not None and len(accounts) > max_batch_size:
            raise ValidationError(f"Batch of {len(accounts)} exceeds limit {max_batch_size}")

        pairs: List[Tuple[str, int]] = []
        seen = set()
        for raw_account, weight in zip(accounts, weights):
            try:
                account = normalize_address(raw_account)
            except ValueError as e:
                raise ValidationError(str(e))
            if is_zero_address(account):
                raise ValidationError("Zero address cannot hold weight")
            if account in seen:
                raise ValidationError(f"Duplicate account in batch: {account}")
            if isinstance(weight, bool) or not isinstance(weight, int):
                raise ValidationError(f"Weight for {account} must be an integer, got {weight!r}")
            if weight < 0:
                raise ValidationError(f"Weight for {account} must be non-negative, got {weight}")
            seen.add(account)
            pairs.append((account, weight))
        return pairs

    def set_weights(
        self,
        accounts: Sequence[str],
        weights: Sequence[int],
        journal: Optional[Journal] = None,
        max_batch_size: Optional[int] = None,
    ) -> List[WeightChange]:
        """
        Overwrites weights for a batch of accounts.

        No settlement happens here: accrual an account has not yet claimed is
        settled later at whatever weight it holds at claim time.
        """
        pairs = self.validate_batch(accounts, weights, max_batch_size)

        changes: List[WeightChange] = []
        for account, new_weight in pairs:
            old_weight = self._weights.get(account, 0)
            if journal is not None:
                journal.record(self._restore, account, old_weight, account in self._weights)
            self.total_weight += new_weight - old_weight
            self._weights[account] = new_weight
            changes.append((account, old_weight, new_weight))

        logger.debug(f"Applied {len(changes)} weight change(s), total weight now {self.total_weight}")
        return changes

    def _restore(self, account: str, old_weight: int, existed: bool) -> None:
        self.total_weight += old_weight - self._weights.get(account, 0)
        if existed:
            self._weights[account] = old_weight
        else:
            self._weights.pop(account, None)

    def load(self, weights: Dict[str, int]) -> None:
        """Replaces all weights (used when restoring persisted state)."""
        self._weights = dict(weights)
        self.total_weight = sum(self._weights.values())
