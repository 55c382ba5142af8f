import pytest

from payvault.protocol.config.params import NETWORKS
from payvault.protocol.crypto.addresses import address_from_pubkey
from payvault.protocol.crypto.hash import sha256
from payvault.protocol.crypto.keys import public_key_from_private
from payvault.protocol.crypto.typed_data import Eip712Domain
from payvault.protocol.types.claim import ClaimRequest
from payvault.vault.core.transfer import InMemoryToken
from payvault.vault.core.vault import PayoutVault

NOW = 1_700_000_000
DEVNET = NETWORKS["devnet"]


class Clock:
    """Settable time source."""

    def __init__(self, now: int = NOW):
        self.now = now

    def __call__(self) -> float:
        return self.now


class Actor:
    def __init__(self, label: str):
        # Deterministic keys keep failures reproducible
        self.priv = sha256(f"payvault-test-{label}".encode())
        self.address = address_from_pubkey(public_key_from_private(self.priv))


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def actors():
    names = ["alice", "bob", "carol", "guardian", "governor", "depositor", "relayer", "vault", "sink"]
    return {name: Actor(name) for name in names}


@pytest.fixture
def token(actors):
    tok = InMemoryToken(custody=actors["vault"].address)
    tok.mint(actors["depositor"].address, 10**30)
    return tok


@pytest.fixture
def make_vault(actors, token, clock):
    """Builds a vault from {actor_name: weight}."""

    def _make(weights, config=DEVNET, token_override=None, events=None):
        names = list(weights)
        return PayoutVault(
            token_override or token,
            guardian=actors["guardian"].address,
            governor=actors["governor"].address,
            accounts=[actors[n].address for n in names],
            weights=[weights[n] for n in names],
            address=actors["vault"].address,
            config=config,
            clock=clock,
            events=events,
        )

    return _make


@pytest.fixture
def sign_claim():
    """Returns a signer producing hex signatures for a vault's domain."""

    def _sign(vault, signer, beneficiary, recipient, nonce, deadline):
        req = ClaimRequest(
            beneficiary=beneficiary,
            recipient=recipient,
            nonce=nonce,
            deadline=deadline,
        )
        req.sign(signer.priv, vault.domain)
        return req.signature

    return _sign


def domain_for(vault_address: str, chain_id: int = DEVNET.chain_id) -> Eip712Domain:
    return Eip712Domain(
        name=DEVNET.name,
        version=DEVNET.version,
        chain_id=chain_id,
        verifying_contract=vault_address,
    )
