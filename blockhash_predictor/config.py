"""
Network and contract configuration, loaded once per process.
"""
import os
from typing import Optional

import bittensor as bt
from eth_utils import to_checksum_address
from pydantic import BaseModel, ConfigDict, Field, field_validator

from blockhash_predictor.utils.validation import validate_address

DEFAULT_CHAIN_ID = 8119
DEFAULT_CHAIN_NAME = "Shardeum EVM Testnet"
DEFAULT_RPC_URL = "https://api-mezame.shardeum.org"
DEFAULT_EXPLORER_URL = "https://explorer-mezame.shardeum.org"
DEFAULT_CONTRACT_ADDRESS = to_checksum_address("0xe5ff751467ffde6f04e9469ca7d2dba9b4d0d16d")

# value shipped in the example .env, treated as unset
PRIVATE_KEY_PLACEHOLDER = "your_private_key_here"


class NativeCurrency(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = "SHM"
    symbol: str = "SHM"
    decimals: int = 18


class PredictorConfig(BaseModel):
    """
    Immutable configuration for one process. Build it with load_config().
    """

    model_config = ConfigDict(frozen=True)

    chain_id: int = Field(DEFAULT_CHAIN_ID, description="Required EVM chain id")
    chain_name: str = Field(DEFAULT_CHAIN_NAME, description="Human readable network name")
    rpc_url: str = Field(DEFAULT_RPC_URL, description="JSON-RPC endpoint of the network")
    explorer_url: str = Field(DEFAULT_EXPLORER_URL, description="Block explorer base url")
    contract_address: Optional[str] = Field(
        DEFAULT_CONTRACT_ADDRESS, description="Address of the BlockHashPredictor contract"
    )
    native_currency: NativeCurrency = Field(default_factory=NativeCurrency)
    private_key: Optional[str] = Field(
        None, description="Signing key for the CLI wallet", repr=False
    )
    receipt_timeout: Optional[float] = Field(
        None,
        description="Seconds to wait for a receipt, None waits until the transport gives up",
    )

    @field_validator("contract_address")
    @classmethod
    def _check_contract_address(cls, value):
        return validate_address(value) if value is not None else None

    @property
    def chain_id_hex(self) -> str:
        return hex(self.chain_id)

    @property
    def has_private_key(self) -> bool:
        return bool(self.private_key) and self.private_key != PRIVATE_KEY_PLACEHOLDER

    def tx_url(self, tx_hash: str) -> str:
        return f"{self.explorer_url.rstrip('/')}/tx/{tx_hash}"

    def address_url(self, address: str) -> str:
        return f"{self.explorer_url.rstrip('/')}/address/{address}"

    def chain_parameters(self) -> dict:
        """Parameters for a wallet_addEthereumChain request."""
        return {
            "chainId": self.chain_id_hex,
            "chainName": self.chain_name,
            "rpcUrls": [self.rpc_url],
            "blockExplorerUrls": [self.explorer_url],
            "nativeCurrency": self.native_currency.model_dump(),
        }


def load_config(**overrides) -> PredictorConfig:
    """Builds the process configuration from the environment.

    Arguments:
        overrides:
            Explicit values (usually CLI flags) that win over the
            environment. None values are ignored.

    Returns:
        config:
            A frozen PredictorConfig
    """
    values = {
        "rpc_url": os.getenv("RPC_URL"),
        "chain_id": os.getenv("CHAIN_ID"),
        "explorer_url": os.getenv("EXPLORER_URL"),
        "contract_address": os.getenv("CONTRACT_ADDRESS"),
        "private_key": os.getenv("PRIVATE_KEY"),
        "receipt_timeout": os.getenv("RECEIPT_TIMEOUT"),
    }
    values.update({k: v for k, v in overrides.items() if v is not None})
    values = {k: v for k, v in values.items() if v not in (None, "")}

    config = PredictorConfig(**values)
    bt.logging.debug(
        f"Loaded config: chain_id={config.chain_id}, rpc_url={config.rpc_url}, contract={config.contract_address}"
    )
    return config
