# MIT License
# Copyright (c) 2025 Hashborn

"""
Claim authorization: direct (sender is beneficiary) or delegated (relayer
presents the beneficiary's EIP-712 signature).

Replay protection comes from the live nonce alone: the signed message embeds
the nonce, and a successful delegated claim increments it, so no signature
can verify twice.
"""

from typing import Callable, Dict, Optional, Union
import logging
import time

from .journal import Journal
from ...protocol.types.common import AuthorizationError, BadSignature, ExpiredRequest
from ...protocol.crypto.addresses import address_from_pubkey
from ...protocol.crypto.keys import recover
from ...protocol.crypto.typed_data import Eip712Domain, hash_claim, typed_data_digest

logger = logging.getLogger(__name__)


def _signature_bytes(signature: Union[bytes, bytearray, memoryview, str]) -> bytes:
    if isinstance(signature, (bytes, bytearray, memoryview)):
        return bytes(signature)
    try:
        return bytes.fromhex(signature.removeprefix("0x"))
    except (ValueError, AttributeError, TypeError):
        raise BadSignature("Signature is not valid hex")


class ClaimAuthorizer:
    def __init__(self, domain: Eip712Domain, clock: Callable[[], float] = time.time):
        self.domain = domain
        self.domain_separator = domain.separator()
        self.clock = clock
        self._nonces: Dict[str, int] = {}

    def nonce_of(self, account: str) -> int:
        return self._nonces.get(account, 0)

    def nonces(self) -> Dict[str, int]:
        return dict(self._nonces)

    def claim_digest(self, beneficiary: str, recipient: str, nonce: int, deadline: int) -> bytes:
        return typed_data_digest(
            self.domain_separator,
            hash_claim(beneficiary, recipient, nonce, deadline),
        )

    def authorize_direct(self, sender: str, beneficiary: str) -> None:
        if sender != beneficiary:
            raise AuthorizationError(f"{sender} cannot claim on behalf of {beneficiary}")

    def authorize_delegated(
        self,
        beneficiary: str,
        recipient: str,
        deadline: int,
        signature: Union[bytes, str],
        journal: Optional[Journal] = None,
    ) -> int:
        """
        Verifies a relayed claim and consumes the beneficiary's nonce.

        Steps run in a fixed order: expiry, digest over the live nonce,
        signer recovery, nonce consumption.

        Returns:
            The nonce that was consumed.

        Raises:
            ExpiredRequest: If the current time is past the deadline.
            BadSignature: If the signature is malformed or not by the beneficiary.
        """
        now = int(self.clock())
        if now > deadline:
            raise ExpiredRequest(f"Claim request expired at {deadline} (now {now})")

        nonce = self.nonce_of(beneficiary)
        try:
            digest = self.claim_digest(beneficiary, recipient, nonce, deadline)
        except ValueError as e:
            raise BadSignature(f"Claim request cannot be encoded: {e}")

        pub = recover(digest, _signature_bytes(signature))
        if pub is None:
            raise BadSignature("Signature could not be recovered")

        signer = address_from_pubkey(pub)
        if signer != beneficiary:
            raise BadSignature(f"Signer {signer} is not beneficiary {beneficiary}")

        if journal is not None:
            journal.record(self._restore, beneficiary, nonce, beneficiary in self._nonces)
        self._nonces[beneficiary] = nonce + 1
        logger.debug(f"Consumed nonce {nonce} for {beneficiary}")
        return nonce

    def _restore(self, account: str, nonce: int, existed: bool) -> None:
        if existed:
            self._nonces[account] = nonce
        else:
            self._nonces.pop(account, None)

    def load(self, nonces: Dict[str, int]) -> None:
        self._nonces = dict(nonces)
