# The MIT License (MIT)
# Copyright © 2023 Yuma Rao

# Permission is hereby granted, free of charge, to any person obtaining a copy of this software and associated
# documentation files (the “Software”), to deal in the Software without restriction, including without limitation
# the rights to use, copy, modify, merge, publish, distribute, sublicense, and/or sell copies of the Software,
# and to permit persons to whom the Software is furnished to do so, subject to the following conditions:

# The above copyright notice and this permission notice shall be included in all copies or substantial portions of
# the Software.

# THE SOFTWARE IS PROVIDED “AS IS”, WITHOUT WARRANTY OF ANY KIND, EXPRESS OR IMPLIED, INCLUDING BUT NOT LIMITED TO
# THE WARRANTIES OF MERCHANTABILITY, FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL
# THE AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER LIABILITY, WHETHER IN AN ACTION
# OF CONTRACT, TORT OR OTHERWISE, ARISING FROM, OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER
# DEALINGS IN THE SOFTWARE.


from typing import Optional

from eth_utils import to_checksum_address
from web3 import AsyncHTTPProvider, AsyncWeb3

from blockhash_predictor.chain.snapshot import ChainSnapshotProvider
from blockhash_predictor.config import PredictorConfig
from blockhash_predictor.contract.abi import BLOCKHASH_PREDICTOR_ABI
from blockhash_predictor.contract.client import PredictionClient
from blockhash_predictor.contract.transactions import TransactionCoordinator
from blockhash_predictor.store.predictions import PredictionStore
from blockhash_predictor.wallet.provider import LocalKeyProvider, WalletProvider
from blockhash_predictor.wallet.session import WalletSession


class BlockHashPredictor:
    """
    Wires the session, snapshot provider, contract client and store around
    one web3 connection.
    """

    def __init__(self, config: PredictorConfig, w3, contract, provider: WalletProvider):
        self.config = config
        self.w3 = w3
        self.contract = contract
        self.session = WalletSession(provider, config)
        self.snapshots = ChainSnapshotProvider(w3)
        self.coordinator = TransactionCoordinator(
            w3, contract_address=contract.address, receipt_timeout=config.receipt_timeout
        )
        self.client = PredictionClient(self.session, contract, self.coordinator)
        self.store = PredictionStore(self.client)

    @classmethod
    def from_config(cls, config: PredictorConfig, w3: Optional[AsyncWeb3] = None):
        """Builds the CLI variant, signing with config.private_key."""
        if w3 is None:
            w3 = AsyncWeb3(AsyncHTTPProvider(config.rpc_url))
        contract = w3.eth.contract(
            address=to_checksum_address(config.contract_address),
            abi=BLOCKHASH_PREDICTOR_ABI,
        )
        provider = LocalKeyProvider(w3, config.private_key)
        return cls(config, w3, contract, provider)

    async def connect(self) -> str:
        return await self.session.connect()

    async def close(self) -> None:
        disconnect = getattr(self.w3.provider, "disconnect", None)
        if disconnect is not None:
            await disconnect()
