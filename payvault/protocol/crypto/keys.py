import hashlib
from typing import List, Optional

from ecdsa import SigningKey, VerifyingKey, SECP256k1  # type: ignore
from ecdsa.util import sigdecode_string  # type: ignore

# secp256k1 group order; signatures must carry s in the lower half
CURVE_ORDER = SECP256k1.order
HALF_ORDER = CURVE_ORDER // 2


def public_key_from_private(priv_bytes: bytes) -> bytes:
    """Returns the uncompressed 64-byte public key (x || y) for a private key."""
    sk = SigningKey.from_string(priv_bytes, curve=SECP256k1)
    return sk.get_verifying_key().to_string()

def _recover_candidates(message_hash: bytes, rs: bytes) -> List[VerifyingKey]:
    # ecdsa returns the even-y R candidate first, matching recovery id 0
    return VerifyingKey.from_public_key_recovery_with_digest(
        rs,
        message_hash,
        SECP256k1,
        hashfunc=hashlib.sha256,
        sigdecode=sigdecode_string,
        allow_truncate=True,
    )

def sign(message_hash: bytes, priv_bytes: bytes) -> bytes:
    """
    Signs a 32-byte digest with RFC 6979 deterministic nonces.

    Returns the 65-byte recoverable signature r || s || v, with s normalized to
    the lower half of the curve order and v in {27, 28}.
    """
    sk = SigningKey.from_string(priv_bytes, curve=SECP256k1)
    r, s = sk.sign_digest_deterministic(
        message_hash,
        hashfunc=hashlib.sha256,
        sigencode=lambda r, s, order: (r, s),
        allow_truncate=True,
    )
    if s > HALF_ORDER:
        s = CURVE_ORDER - s
    rs = r.to_bytes(32, 'big') + s.to_bytes(32, 'big')

    own_key = sk.get_verifying_key().to_string()
    for recovery_id, candidate in enumerate(_recover_candidates(message_hash, rs)):
        if candidate.to_string() == own_key:
            return rs + bytes([27 + recovery_id])
    raise ValueError("Could not determine recovery id for signature")

def recover(message_hash: bytes, signature: bytes) -> Optional[bytes]:
    """
    Recovers the 64-byte public key that produced a 65-byte signature.

    Returns None for malformed, high-s, or otherwise unrecoverable signatures.
    """
    if len(signature) != 65:
        return None

    v = signature[64]
    if v >= 27:
        v -= 27
    if v not in (0, 1):
        return None

    r = int.from_bytes(signature[:32], 'big')
    s = int.from_bytes(signature[32:64], 'big')
    if not (0 < r < CURVE_ORDER and 0 < s <= HALF_ORDER):
        return None

    try:
        candidates = _recover_candidates(message_hash, signature[:64])
    except Exception:
        return None

    if v >= len(candidates):
        return None
    return candidates[v].to_string()

def verify(message_hash: bytes, signature: bytes, pub_bytes: bytes) -> bool:
    """Verifies a recoverable signature against an uncompressed public key."""
    recovered = recover(message_hash, signature)
    return recovered is not None and recovered == pub_bytes
