# MIT License
# Copyright (c) 2025 Hashborn

from typing import Dict

# Fixed-point factor for the payout-per-weight accumulator
SCALE = 10**18

# EIP-712 type strings (must match external signers byte for byte)
EIP712_DOMAIN_TYPE = "EIP712Domain(string name,string version,uint256 chainId,address verifyingContract)"
CLAIM_TYPE = "Claim(address beneficiary,address recipient,uint256 nonce,uint256 deadline)"

ZERO_ADDRESS = "0x" + "00" * 20


class VaultConfig:
    def __init__(self,
                 network_id: str,
                 chain_id: int,
                 name: str = "PayVault",
                 version: str = "1",
                 # Open policy: whether pause also blocks governor weight changes
                 pause_gates_admin: bool = False,
                 # Upper bound on accounts per set_weights batch
                 max_batch_size: int = 500):
        self.network_id = network_id
        self.chain_id = chain_id
        self.name = name
        self.version = version
        self.pause_gates_admin = pause_gates_admin
        self.max_batch_size = max_batch_size

    def replace(self, **overrides) -> "VaultConfig":
        """Returns a copy with the given fields overridden."""
        fields = dict(vars(self))
        fields.update(overrides)
        return VaultConfig(**fields)


NETWORKS: Dict[str, VaultConfig] = {
    "devnet": VaultConfig(
        network_id="devnet",
        chain_id=31337,
    ),
    "testnet": VaultConfig(
        network_id="testnet",
        chain_id=11155111,
    ),
    "mainnet": VaultConfig(
        network_id="mainnet",
        chain_id=1,
        max_batch_size=200,
    ),
}

# Default to devnet for now
CURRENT_NETWORK = NETWORKS["devnet"]
