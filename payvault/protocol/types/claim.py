from pydantic import BaseModel, Field

from ..crypto.keys import sign as crypto_sign
from ..crypto.typed_data import Eip712Domain, hash_claim, typed_data_digest


class ClaimRequest(BaseModel):
    """
    A claim a beneficiary authorizes a relayer to submit on their behalf.

    Never stored by the vault: the nonce must equal the beneficiary's live
    nonce at submission time, which makes every signature single-use.
    """
    beneficiary: str
    recipient: str
    nonce: int = Field(ge=0)
    deadline: int = Field(ge=0)  # unix seconds, inclusive
    signature: str = ""          # hex r || s || v

    def struct_hash(self) -> bytes:
        return hash_claim(self.beneficiary, self.recipient, self.nonce, self.deadline)

    def digest(self, domain: Eip712Domain) -> bytes:
        return typed_data_digest(domain.separator(), self.struct_hash())

    def sign(self, priv_key_bytes: bytes, domain: Eip712Domain):
        """Signs the EIP-712 digest under the given domain."""
        self.signature = crypto_sign(self.digest(domain), priv_key_bytes).hex()

    @property
    def signature_bytes(self) -> bytes:
        return bytes.fromhex(self.signature.removeprefix("0x"))
