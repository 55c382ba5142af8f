# MIT License
# Copyright (c) 2025 Hashborn

from contextlib import contextmanager
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple, Union
import logging
import threading
import time

from .access import AccessController
from .accounts import Participant
from .authorizer import ClaimAuthorizer
from .events import EventBus
from .journal import Journal
from .ledger import AccrualLedger, CheckpointStore
from .registry import WeightRegistry
from .transfer import ValueTransfer
from ..snapshot.types import VaultSnapshot
from ..storage.db import StorageDB
from ...protocol.config.params import CURRENT_NETWORK, VaultConfig
from ...protocol.crypto.addresses import normalize_address, is_zero_address
from ...protocol.crypto.typed_data import Eip712Domain
from ...protocol.types.common import (
    AuthorizationError,
    Capability,
    EventType,
    InvalidState,
    ReentrancyError,
    Role,
    TransferFailure,
    ValidationError,
    VaultError,
)

logger = logging.getLogger(__name__)


@dataclass
class DepositReceipt:
    depositor: str
    amount: int
    delta: int              # accumulator increase, scaled by SCALE
    remainder: int          # scaled amount lost to truncation (< total_weight)
    acc_per_weight: int
    total_weight: int


def _require_address(value: Any, label: str) -> str:
    try:
        addr = normalize_address(value)
    except ValueError:
        raise ValidationError(f"Invalid {label} address: {value!r}")
    if is_zero_address(addr):
        raise ValidationError(f"{label} cannot be the zero address")
    return addr


def _require_amount(amount: Any) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValidationError(f"Amount must be an integer, got {amount!r}")
    if amount <= 0:
        raise ValidationError(f"Amount must be positive, got {amount}")
    return amount


def _actor(sender: Any) -> str:
    try:
        return normalize_address(sender)
    except ValueError:
        raise AuthorizationError(f"Unrecognized sender: {sender!r}")


class PayoutVault:
    """
    Pooled payout vault.

    Deposits advance a global accumulator; participants settle against it
    lazily when they claim. Every mutating operation runs under one lock with
    a re-entry guard, and any failure (including a failed token transfer)
    undoes everything the operation wrote.
    """

    def __init__(
        self,
        token: ValueTransfer,
        guardian: str,
        governor: str,
        accounts: Sequence[str],
        weights: Sequence[int],
        address: str,
        config: VaultConfig = CURRENT_NETWORK,
        clock: Callable[[], float] = time.time,
        events: Optional[EventBus] = None,
    ):
        self.config = config
        self.token = token
        self.address = _require_address(address, "vault")
        self.events = events if events is not None else EventBus()
        self.clock = clock

        self._lock = threading.RLock()
        self._entered = False
        self.sequence = 0

        self.domain = Eip712Domain(
            name=config.name,
            version=config.version,
            chain_id=config.chain_id,
            verifying_contract=self.address,
        )
        self.access = AccessController(
            _require_address(guardian, "guardian"),
            _require_address(governor, "governor"),
        )
        self.registry = WeightRegistry()
        self.ledger = AccrualLedger()
        self.checkpoints = CheckpointStore()
        self.authorizer = ClaimAuthorizer(self.domain, clock=clock)

        self.registry.set_weights(accounts, weights, max_batch_size=config.max_batch_size)
        logger.info(
            f"Vault {self.address} initialized on {config.network_id}: "
            f"{len(self.registry)} participants, total weight {self.registry.total_weight}"
        )

    # --- Guarded execution ---

    @contextmanager
    def _guarded(self, operation: str) -> Iterator[Journal]:
        """
        Serializes a mutating operation and makes it all-or-nothing.

        Other threads block on the lock; a call from inside an in-flight
        operation on the same thread (e.g. a transfer callback) is rejected.
        """
        with self._lock:
            if self._entered:
                logger.warning(f"Rejected re-entrant {operation}")
                raise ReentrancyError(f"{operation} called while another vault operation is in progress")

            self._entered = True
            journal = Journal()
            try:
                yield journal
            except Exception as e:
                journal.rollback()
                logger.warning(f"{operation} aborted: {type(e).__name__}: {e}")
                raise
            else:
                self.sequence += 1
            finally:
                self._entered = False

    def _call_token(self, method: str, counterparty: str, amount: int) -> None:
        try:
            ok = getattr(self.token, method)(counterparty, amount)
        except VaultError:
            raise
        except Exception as e:
            raise TransferFailure(f"Token {method} of {amount} for {counterparty} failed: {e}") from e
        if not ok:
            raise TransferFailure(f"Token {method} of {amount} for {counterparty} was rejected")

    def _emit(self, event: EventType, **data: Any) -> None:
        self.events.emit(event, vault=self.address, **data)

    def _require_admin_allowed(self) -> None:
        if self.config.pause_gates_admin:
            self.access.require_active()

    # --- User operations ---

    def deposit(self, sender: str, amount: int) -> DepositReceipt:
        """
        Pulls `amount` from the sender and spreads it over current weights.

        Raises:
            PausedError, ValidationError, InvalidState (zero total weight),
            TransferFailure, ReentrancyError
        """
        with self._guarded("deposit") as journal:
            self.access.require_active()
            depositor = _require_address(sender, "depositor")
            amount = _require_amount(amount)

            total_weight = self.registry.total_weight
            delta, remainder = self.ledger.compute_delta(amount, total_weight)

            # Funds must be in custody before the accumulator moves
            self._call_token("pull", depositor, amount)
            acc = self.ledger.advance(amount, delta, journal)

            receipt = DepositReceipt(
                depositor=depositor,
                amount=amount,
                delta=delta,
                remainder=remainder,
                acc_per_weight=acc,
                total_weight=total_weight,
            )

        logger.info(f"Deposit of {amount} from {depositor}: accumulator +{delta} -> {acc}")
        self._emit(EventType.DEPOSIT, **asdict(receipt))
        return receipt

    def claim(self, sender: str, recipient: str) -> int:
        """Settles the sender and pays what they are owed to `recipient`."""
        with self._guarded("claim") as journal:
            self.access.require_active()
            beneficiary = _require_address(sender, "sender")
            recipient = _require_address(recipient, "recipient")
            self.authorizer.authorize_direct(beneficiary, beneficiary)

            amount = self._settle_and_pay(beneficiary, recipient, journal)

        logger.info(f"Claim by {beneficiary}: paid {amount} to {recipient}")
        self._emit(
            EventType.CLAIM,
            beneficiary=beneficiary,
            recipient=recipient,
            amount=amount,
            relayer=None,
            nonce=None,
        )
        return amount

    def claim_with_signature(
        self,
        sender: str,
        beneficiary: str,
        recipient: str,
        deadline: int,
        signature: Union[bytes, str],
    ) -> int:
        """
        Settles `beneficiary` on the strength of their signed claim request
        and pays `recipient`. The sender is the relayer and needs no rights.

        Raises:
            PausedError, ValidationError, ExpiredRequest, BadSignature,
            TransferFailure, ReentrancyError
        """
        with self._guarded("claim_with_signature") as journal:
            self.access.require_active()
            relayer = _require_address(sender, "relayer")
            beneficiary = _require_address(beneficiary, "beneficiary")
            recipient = _require_address(recipient, "recipient")
            if isinstance(deadline, bool) or not isinstance(deadline, int):
                raise ValidationError(f"Deadline must be an integer, got {deadline!r}")

            nonce = self.authorizer.authorize_delegated(beneficiary, recipient, deadline, signature, journal)
            amount = self._settle_and_pay(beneficiary, recipient, journal)

        logger.info(f"Relayed claim for {beneficiary} by {relayer} (nonce {nonce}): paid {amount} to {recipient}")
        self._emit(
            EventType.CLAIM,
            beneficiary=beneficiary,
            recipient=recipient,
            amount=amount,
            relayer=relayer,
            nonce=nonce,
        )
        return amount

    def _settle_and_pay(self, beneficiary: str, recipient: str, journal: Journal) -> int:
        owed = self.checkpoints.settle(
            beneficiary,
            self.registry.weight_of(beneficiary),
            self.ledger.acc_per_weight,
            journal,
        )
        if owed > 0:
            self.ledger.record_payout(owed, journal)
            self._call_token("push", recipient, owed)
        return owed

    # --- Administrative operations ---

    def set_weights(self, sender: str, accounts: Sequence[str], weights: Sequence[int]) -> None:
        """Governor-only batch weight update. Does not settle anyone."""
        with self._guarded("set_weights") as journal:
            sender = _actor(sender)
            self.access.require(sender, Capability.CONFIGURE)
            self._require_admin_allowed()
            changes = self.registry.set_weights(
                accounts, weights, journal, max_batch_size=self.config.max_batch_size
            )
            total_weight = self.registry.total_weight

        logger.info(f"Governor updated {len(changes)} weight(s), total weight {total_weight}")
        self._emit(
            EventType.WEIGHTS_UPDATED,
            changes=[
                {"account": account, "old_weight": old, "new_weight": new}
                for account, old, new in changes
            ],
            total_weight=total_weight,
        )

    def pause(self, sender: str) -> None:
        with self._guarded("pause") as journal:
            sender = _actor(sender)
            self.access.pause(sender, journal)
        logger.warning(f"Vault {self.address} paused by {sender}")
        self._emit(EventType.PAUSED, actor=sender)

    def unpause(self, sender: str) -> None:
        with self._guarded("unpause") as journal:
            sender = _actor(sender)
            self.access.unpause(sender, journal)
        logger.info(f"Vault {self.address} unpaused by {sender}")
        self._emit(EventType.UNPAUSED, actor=sender)

    def set_guardian(self, sender: str, new_guardian: str) -> None:
        self._transfer_role(sender, Role.GUARDIAN, new_guardian)

    def set_governor(self, sender: str, new_governor: str) -> None:
        self._transfer_role(sender, Role.GOVERNOR, new_governor)

    def _transfer_role(self, sender: str, role: Role, new_holder: str) -> None:
        with self._guarded(f"set_{role.value.lower()}") as journal:
            sender = _actor(sender)
            self.access.require(sender, Capability.CONFIGURE)
            self._require_admin_allowed()
            new_holder = _require_address(new_holder, role.value.lower())
            previous = self.access.transfer_role(sender, role, new_holder, journal)

        logger.info(f"{role.value.lower()} role moved from {previous} to {new_holder}")
        self._emit(EventType.ROLE_TRANSFERRED, role=role.value, previous=previous, new=new_holder)

    def authorize_upgrade(self, sender: str, implementation: str) -> None:
        """
        Records the governor's approval of a new implementation. Applying
        the upgrade is a deployment concern outside the vault.
        """
        with self._guarded("authorize_upgrade"):
            sender = _actor(sender)
            self.access.require(sender, Capability.CONFIGURE)
            self._require_admin_allowed()
            implementation = _require_address(implementation, "implementation")

        logger.info(f"Upgrade to {implementation} authorized by {sender}")
        self._emit(EventType.UPGRADE_AUTHORIZED, implementation=implementation, actor=sender)

    # --- Views ---

    @property
    def total_weight(self) -> int:
        return self.registry.total_weight

    @property
    def acc_per_weight(self) -> int:
        return self.ledger.acc_per_weight

    @property
    def total_deposited(self) -> int:
        return self.ledger.total_deposited

    @property
    def total_claimed(self) -> int:
        return self.ledger.total_claimed

    @property
    def paused(self) -> bool:
        return self.access.paused

    @property
    def guardian(self) -> str:
        return self.access.guardian

    @property
    def governor(self) -> str:
        return self.access.governor

    @property
    def domain_separator(self) -> bytes:
        return self.authorizer.domain_separator

    def weight_of(self, account: str) -> int:
        return self.registry.weight_of(normalize_address(account))

    def checkpoint_of(self, account: str) -> int:
        return self.checkpoints.checkpoint_of(normalize_address(account))

    def nonce_of(self, account: str) -> int:
        return self.authorizer.nonce_of(normalize_address(account))

    def claimable(self, account: str) -> int:
        """What a claim by `account` would pay right now."""
        account = normalize_address(account)
        with self._lock:
            return self.checkpoints.pending(
                account, self.registry.weight_of(account), self.ledger.acc_per_weight
            )

    def participant(self, account: str) -> Participant:
        account = normalize_address(account)
        with self._lock:
            return Participant(
                address=account,
                weight=self.registry.weight_of(account),
                checkpoint=self.checkpoints.checkpoint_of(account),
                nonce=self.authorizer.nonce_of(account),
            )

    def participants(self) -> List[str]:
        return self.registry.accounts()

    def status(self) -> Dict[str, Any]:
        """Global state read as one consistent view."""
        with self._lock:
            return {
                "vault": self.address,
                "network": self.config.network_id,
                "chain_id": self.config.chain_id,
                "paused": self.access.paused,
                "guardian": self.access.guardian,
                "governor": self.access.governor,
                "total_weight": self.registry.total_weight,
                "acc_per_weight": self.ledger.acc_per_weight,
                "total_deposited": self.ledger.total_deposited,
                "total_claimed": self.ledger.total_claimed,
                "sequence": self.sequence,
            }

    # --- Durable state ---

    def to_snapshot(self) -> VaultSnapshot:
        with self._lock:
            snapshot = VaultSnapshot(
                network_id=self.config.network_id,
                vault_address=self.address,
                sequence=self.sequence,
                timestamp=datetime.now(timezone.utc).isoformat(),
                total_weight=self.registry.total_weight,
                acc_per_weight=self.ledger.acc_per_weight,
                status=self.access.status,
                guardian=self.access.guardian,
                governor=self.access.governor,
                total_deposited=self.ledger.total_deposited,
                total_claimed=self.ledger.total_claimed,
                weights={a: self.registry.weight_of(a) for a in self.registry.accounts()},
                checkpoints=self.checkpoints.checkpoints(),
                nonces=self.authorizer.nonces(),
            )
        snapshot.hash = snapshot.calculate_hash()
        return snapshot

    @classmethod
    def from_snapshot(
        cls,
        snapshot: VaultSnapshot,
        token: ValueTransfer,
        config: VaultConfig = CURRENT_NETWORK,
        clock: Callable[[], float] = time.time,
        events: Optional[EventBus] = None,
    ) -> "PayoutVault":
        """
        Rebuilds a vault from durable state.

        Raises:
            InvalidState: If the snapshot violates a ledger invariant.
        """
        if sum(snapshot.weights.values()) != snapshot.total_weight:
            raise InvalidState("Snapshot total weight does not match sum of weights")
        for account, checkpoint in snapshot.checkpoints.items():
            if checkpoint > snapshot.acc_per_weight:
                raise InvalidState(f"Snapshot checkpoint for {account} is ahead of the accumulator")
        if snapshot.total_claimed > snapshot.total_deposited:
            raise InvalidState("Snapshot records more claimed than deposited")

        vault = cls(
            token,
            guardian=snapshot.guardian,
            governor=snapshot.governor,
            accounts=[],
            weights=[],
            address=snapshot.vault_address,
            config=config,
            clock=clock,
            events=events,
        )
        vault.access.status = snapshot.status
        vault.registry.load(snapshot.weights)
        vault.ledger = AccrualLedger(
            acc_per_weight=snapshot.acc_per_weight,
            total_deposited=snapshot.total_deposited,
            total_claimed=snapshot.total_claimed,
        )
        vault.checkpoints.load(snapshot.checkpoints)
        vault.authorizer.load(snapshot.nonces)
        vault.sequence = snapshot.sequence
        logger.info(f"Vault {vault.address} restored at sequence {vault.sequence}")
        return vault

    def persist(self, db: StorageDB) -> None:
        """
        Writes the full vault state to the key-value store in one transaction.

        Checkpoints and nonces always land together with the global row.
        """
        snapshot = self.to_snapshot()
        rows: List[Tuple[str, str]] = []
        rows.extend((f"weight:{a}", str(w)) for a, w in snapshot.weights.items())
        rows.extend((f"ckpt:{a}", str(c)) for a, c in snapshot.checkpoints.items())
        rows.extend((f"nonce:{a}", str(n)) for a, n in snapshot.nonces.items())
        rows.append((
            "vault",
            snapshot.model_dump_json(exclude={"weights", "checkpoints", "nonces", "hash"}),
        ))
        db.set_states(rows)
        logger.info(f"Persisted vault state at sequence {snapshot.sequence} ({len(rows)} rows)")

    @classmethod
    def restore(
        cls,
        db: StorageDB,
        token: ValueTransfer,
        config: VaultConfig = CURRENT_NETWORK,
        clock: Callable[[], float] = time.time,
        events: Optional[EventBus] = None,
    ) -> "PayoutVault":
        """Loads a vault previously written with persist()."""
        raw = db.get_state("vault")
        if not raw:
            raise InvalidState("No persisted vault state found")

        snapshot = VaultSnapshot.model_validate_json(raw)
        snapshot.weights = _load_int_map(db, "weight:")
        snapshot.checkpoints = _load_int_map(db, "ckpt:")
        snapshot.nonces = _load_int_map(db, "nonce:")

        return cls.from_snapshot(snapshot, token, config=config, clock=clock, events=events)


def _load_int_map(db: StorageDB, prefix: str) -> Dict[str, int]:
    return {
        key[len(prefix):]: int(value)
        for key, value in db.get_state_by_prefix(prefix).items()
    }
