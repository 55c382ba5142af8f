"""
Tests for keys, addresses and EIP-712 hashing.
"""
import pytest

from payvault.protocol.crypto.addresses import (
    address_from_pubkey,
    is_valid_address,
    is_zero_address,
    normalize_address,
)
from payvault.protocol.crypto.hash import keccak256
from payvault.protocol.crypto.keys import (
    CURVE_ORDER,
    public_key_from_private,
    recover,
    sign,
    verify,
)
from payvault.protocol.crypto.typed_data import (
    CLAIM_TYPEHASH,
    DOMAIN_TYPEHASH,
    Eip712Domain,
    encode_address,
    encode_string,
    encode_uint,
    hash_claim,
    typed_data_digest,
)
from payvault.protocol.types.claim import ClaimRequest

from conftest import domain_for


def test_keccak_empty_vector():
    assert keccak256(b"").hex() == "c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"


def test_domain_typehash_matches_standard():
    assert DOMAIN_TYPEHASH.hex() == "8b73c3c69bb8fe3d512ecc4cf759cc79239f7b179b0ffacaa9a75d522b39400f"


def test_claim_typehash_is_hash_of_type_string():
    expected = keccak256(b"Claim(address beneficiary,address recipient,uint256 nonce,uint256 deadline)")
    assert CLAIM_TYPEHASH == expected


def test_address_from_known_private_key():
    priv = (1).to_bytes(32, "big")
    pub = public_key_from_private(priv)
    assert len(pub) == 64
    assert address_from_pubkey(pub) == "0x7E5F4552091A69125d5DfCb7b8C2659029395Bdf"


def test_sign_and_recover(actors):
    alice = actors["alice"]
    digest = keccak256(b"payout")
    sig = sign(digest, alice.priv)

    assert len(sig) == 65
    assert sig[64] in (27, 28)
    assert int.from_bytes(sig[32:64], "big") <= CURVE_ORDER // 2

    pub = recover(digest, sig)
    assert address_from_pubkey(pub) == alice.address
    assert verify(digest, sig, public_key_from_private(alice.priv))
    assert not verify(digest, sig, public_key_from_private(actors["bob"].priv))


def test_signing_is_deterministic(actors):
    digest = keccak256(b"same message")
    assert sign(digest, actors["alice"].priv) == sign(digest, actors["alice"].priv)


def test_recover_accepts_zero_one_recovery_id(actors):
    digest = keccak256(b"v normalization")
    sig = sign(digest, actors["alice"].priv)
    legacy = sig[:64] + bytes([sig[64] - 27])
    assert recover(digest, legacy) == recover(digest, sig)


def test_recover_rejects_high_s(actors):
    digest = keccak256(b"malleable")
    sig = sign(digest, actors["alice"].priv)
    s = int.from_bytes(sig[32:64], "big")
    flipped_v = 28 if sig[64] == 27 else 27
    high_s = sig[:32] + (CURVE_ORDER - s).to_bytes(32, "big") + bytes([flipped_v])
    assert recover(digest, high_s) is None


@pytest.mark.parametrize("bad", [b"", b"\x00" * 64, b"\x01" * 66])
def test_recover_rejects_wrong_length(bad):
    assert recover(keccak256(b"x"), bad) is None


def test_recover_rejects_bad_v(actors):
    digest = keccak256(b"bad v")
    sig = sign(digest, actors["alice"].priv)
    assert recover(digest, sig[:64] + bytes([29])) is None


def test_recover_rejects_zero_r():
    sig = b"\x00" * 32 + (1).to_bytes(32, "big") + bytes([27])
    assert recover(keccak256(b"zero r"), sig) is None


def test_normalize_address():
    lower = "0x7e5f4552091a69125d5dfcb7b8c2659029395bdf"
    assert normalize_address(lower) == "0x7E5F4552091A69125d5DfCb7b8C2659029395Bdf"
    assert is_valid_address(lower)
    assert not is_valid_address("0x1234")
    assert not is_valid_address(None)
    with pytest.raises(ValueError):
        normalize_address("not-an-address")
    assert is_zero_address("0x" + "00" * 20)


def test_encode_uint_bounds():
    assert encode_uint(0) == b"\x00" * 32
    assert encode_uint(2**256 - 1) == b"\xff" * 32
    with pytest.raises(ValueError):
        encode_uint(-1)
    with pytest.raises(ValueError):
        encode_uint(2**256)


def test_domain_separator_binds_chain_and_contract(actors):
    base = domain_for(actors["vault"].address)
    other_chain = domain_for(actors["vault"].address, chain_id=1)
    other_contract = domain_for(actors["sink"].address)

    assert base.separator() != other_chain.separator()
    assert base.separator() != other_contract.separator()
    assert base.separator() == domain_for(actors["vault"].address).separator()


def test_claim_request_signature_recovers_beneficiary(actors):
    alice = actors["alice"]
    domain = domain_for(actors["vault"].address)
    req = ClaimRequest(
        beneficiary=alice.address,
        recipient=actors["sink"].address,
        nonce=0,
        deadline=2_000_000_000,
    )
    req.sign(alice.priv, domain)

    expected_digest = typed_data_digest(
        domain.separator(),
        hash_claim(alice.address, actors["sink"].address, 0, 2_000_000_000),
    )
    assert req.digest(domain) == expected_digest
    assert expected_digest == keccak256(b"\x19\x01" + domain.separator() + req.struct_hash())
    assert address_from_pubkey(recover(expected_digest, req.signature_bytes)) == alice.address


def test_claim_hash_covers_every_field(actors):
    a, b = actors["alice"].address, actors["bob"].address
    base = hash_claim(a, b, 0, 100)
    assert hash_claim(b, b, 0, 100) != base
    assert hash_claim(a, a, 0, 100) != base
    assert hash_claim(a, b, 1, 100) != base
    assert hash_claim(a, b, 0, 101) != base


# ═══════════════════════════════════════════════════════════════════
# EIP-712 REFERENCE VECTOR ("Ether Mail")
# ═══════════════════════════════════════════════════════════════════

MAIL_TYPE = b"Mail(Person from,Person to,string contents)Person(string name,address wallet)"
PERSON_TYPE = b"Person(string name,address wallet)"
COW = "0xcd2a3d9f938e13cd947ec05abc7fe734df8dd826"
BOB = "0x" + "bb" * 20


def _hash_person(name, wallet):
    return keccak256(keccak256(PERSON_TYPE) + encode_string(name) + encode_address(wallet))


def test_reference_vector_domain_digest_and_signature():
    domain = Eip712Domain(
        name="Ether Mail",
        version="1",
        chain_id=1,
        verifying_contract="0x" + "cc" * 20,
    )
    assert domain.separator().hex() == "f2cee375fa42b42143804025fc449deafd50cc031ca257e0b194a650a912090f"

    mail = keccak256(
        keccak256(MAIL_TYPE)
        + _hash_person("Cow", COW)
        + _hash_person("Bob", BOB)
        + encode_string("Hello, Bob!")
    )
    assert mail.hex() == "c52c0ee5d84264471806290a3f2c4cecfc5490626bf912d01f240d7a274b371e"

    digest = typed_data_digest(domain.separator(), mail)
    assert digest.hex() == "be609aee343fb3c4b28e1df9e632fca64fcfaede20f02e86244efddf30957bd2"

    priv = keccak256(b"cow")
    assert address_from_pubkey(public_key_from_private(priv)).lower() == COW

    sig = sign(digest, priv)
    assert sig[:32].hex() == "4355c47d63924e8a72e509b65029052eb6c299d53a04e167c5775fd466751c9d"
    assert sig[32:64].hex() == "07299936d304c153f6443dfa05f40ff007d72911b6f72307f996231605b91562"
    assert sig[64] == 28
    assert address_from_pubkey(recover(digest, sig)).lower() == COW
