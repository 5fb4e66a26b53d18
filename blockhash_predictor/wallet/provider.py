"""
Wallet providers exposing an EIP-1193 style request surface.

The browser wallet of the web front-end and the local private key of the CLI
both answer the same requests, so WalletSession drives either one.
"""
from typing import Any, Dict, List, Optional

import bittensor as bt
from eth_account import Account
from web3 import AsyncHTTPProvider

from blockhash_predictor.wallet.signer import LocalAccountSigner

# EIP-1193 / MetaMask provider error codes
USER_REJECTED = 4001
UNAUTHORIZED = 4100
UNSUPPORTED_METHOD = 4200
UNRECOGNIZED_CHAIN = 4902


class WalletRequestError(Exception):
    """An error returned by a wallet provider request."""

    def __init__(self, code: int, message: str):
        super().__init__(message)
        self.code = code


class WalletProvider:
    """
    Base class for wallet providers.
    Override request() and get_signer() in the child classes.
    """

    async def request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        raise WalletRequestError(UNSUPPORTED_METHOD, f"Method {method} is not supported")

    def get_signer(self):
        raise WalletRequestError(UNAUTHORIZED, "Provider has no signing identity")


class LocalKeyProvider(WalletProvider):
    """
    Wallet backed by a private key and the node the AsyncWeb3 instance talks to.

    The node decides which chain is active. Switching to another chain only
    works once that chain has been registered with wallet_addEthereumChain,
    which re-points the HTTP provider at the registered RPC url.
    """

    def __init__(self, w3, private_key: str):
        self.w3 = w3
        self.account = Account.from_key(private_key)
        self.networks: Dict[int, str] = {}

    async def request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        params = params or []
        if method == "eth_chainId":
            return hex(await self.w3.eth.chain_id)
        if method in ("eth_requestAccounts", "eth_accounts"):
            return [self.account.address]
        if method == "wallet_switchEthereumChain":
            return await self._switch_chain(int(params[0]["chainId"], 16))
        if method == "wallet_addEthereumChain":
            return self._add_chain(params[0])
        return await super().request(method, params)

    def get_signer(self):
        return LocalAccountSigner(self.w3, self.account)

    async def _switch_chain(self, chain_id: int) -> None:
        if await self.w3.eth.chain_id == chain_id:
            return None
        if chain_id not in self.networks:
            raise WalletRequestError(
                UNRECOGNIZED_CHAIN,
                f"Unrecognized chain ID {hex(chain_id)}. Try adding the chain using wallet_addEthereumChain first.",
            )

        bt.logging.info(f"Switching provider to {self.networks[chain_id]} for chain {chain_id}")
        self.w3.provider = AsyncHTTPProvider(self.networks[chain_id])
        active = await self.w3.eth.chain_id
        if active != chain_id:
            raise WalletRequestError(
                UNRECOGNIZED_CHAIN,
                f"RPC {self.networks[chain_id]} serves chain {active}, expected {chain_id}",
            )
        return None

    def _add_chain(self, chain: Dict[str, Any]) -> None:
        rpc_urls = chain.get("rpcUrls") or []
        if not rpc_urls:
            raise WalletRequestError(UNSUPPORTED_METHOD, "wallet_addEthereumChain requires rpcUrls")
        chain_id = int(chain["chainId"], 16)
        self.networks[chain_id] = rpc_urls[0]
        bt.logging.debug(f"Registered chain {chain_id} ({chain.get('chainName')}) at {rpc_urls[0]}")
        return None
