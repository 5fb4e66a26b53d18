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

import bittensor as bt
from eth_utils import to_checksum_address

from blockhash_predictor.config import PredictorConfig
from blockhash_predictor.errors import ConnectionError
from blockhash_predictor.protocol import SessionState
from blockhash_predictor.wallet.provider import UNRECOGNIZED_CHAIN, WalletProvider, WalletRequestError


class WalletSession:
    """
    Holds the signing identity and the network the wallet is on.

    State machine: DISCONNECTED -> CONNECTING -> CONNECTED, and back to
    DISCONNECTED when any step of connect() fails. There is no automatic
    reconnect. Only connect() replaces the signer; every other component
    reads it.
    """

    def __init__(self, provider: WalletProvider, config: PredictorConfig):
        self.provider = provider
        self.config = config
        self.state = SessionState.DISCONNECTED
        self.address: Optional[str] = None
        self.chain_id: Optional[int] = None
        self.signer = None

    @property
    def connected(self) -> bool:
        return self.state == SessionState.CONNECTED

    async def connect(self) -> str:
        """Switches the wallet to the configured chain and reads its address.

        Returns:
            address:
                Checksummed address of the signing identity

        Raises:
            ConnectionError:
                Any step failed. The message is the underlying one.
        """
        if self.state == SessionState.CONNECTING:
            raise ConnectionError("Wallet connection already in progress")

        self._reset()
        self.state = SessionState.CONNECTING
        bt.logging.debug(f"Connecting wallet to chain {self.config.chain_id}")
        try:
            chain_id = int(await self.provider.request("eth_chainId"), 16)
            if chain_id != self.config.chain_id:
                await self._switch_chain()
                chain_id = self.config.chain_id

            accounts = await self.provider.request("eth_requestAccounts")
            if not accounts:
                raise ConnectionError("Wallet returned no accounts")
            signer = self.provider.get_signer()
            address = to_checksum_address(accounts[0])
        except Exception as e:
            self._reset()
            bt.logging.error(f"Wallet connection failed: {e}")
            if isinstance(e, ConnectionError):
                raise
            raise ConnectionError(str(e)) from e

        self.address = address
        self.chain_id = chain_id
        self.signer = signer
        self.state = SessionState.CONNECTED
        bt.logging.info(f"Wallet {address} connected on chain {chain_id}")
        return address

    def disconnect(self) -> None:
        self._reset()
        bt.logging.debug("Wallet disconnected")

    def require_connected(self) -> None:
        if not self.connected:
            raise ConnectionError("Wallet not connected")

    async def _switch_chain(self) -> None:
        switch_params = [{"chainId": self.config.chain_id_hex}]
        try:
            await self.provider.request("wallet_switchEthereumChain", switch_params)
        except WalletRequestError as e:
            if e.code != UNRECOGNIZED_CHAIN:
                raise
            bt.logging.info(f"Chain {self.config.chain_id} unknown to the wallet, adding it")
            await self.provider.request("wallet_addEthereumChain", [self.config.chain_parameters()])
            await self.provider.request("wallet_switchEthereumChain", switch_params)

    def _reset(self) -> None:
        self.state = SessionState.DISCONNECTED
        self.address = None
        self.chain_id = None
        self.signer = None
