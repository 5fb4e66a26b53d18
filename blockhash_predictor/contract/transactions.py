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


import asyncio
from typing import Awaitable, Callable, Dict, List, Optional

import aiohttp
import bittensor as bt
from eth_utils import to_hex
from pydantic import BaseModel, ConfigDict, Field
from web3.exceptions import (
    ContractLogicError,
    ProviderConnectionError,
    TimeExhausted,
    Web3RPCError,
)

from blockhash_predictor.contract.abi import get_event_abi
from blockhash_predictor.contract.events import DecodedEvent, scan_logs
from blockhash_predictor.errors import (
    ChainMismatchError,
    InsufficientFundsError,
    PredictorError,
    RPCError,
    SignerRejectedError,
    TransactionError,
    TransactionInFlightError,
    TransactionRevertedError,
)
from blockhash_predictor.protocol import TransactionState
from blockhash_predictor.wallet.provider import USER_REJECTED, WalletRequestError


class TransactionOutcome(BaseModel):
    """
    A confirmed transaction and the events of interest it emitted.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    tx_hash: str = Field(..., description="Hash of the confirmed transaction")
    block_number: Optional[int] = Field(None, description="Block the transaction was included in")
    events: List[DecodedEvent] = Field(default_factory=list, description="Matching decoded events")

    @property
    def event(self) -> Optional[DecodedEvent]:
        # several matching events: the last one wins
        return self.events[-1] if self.events else None


def classify_error(error: Exception) -> PredictorError:
    """Maps a wallet, web3 or transport failure to the typed error surfaced to callers.

    The message of the original error is kept as is.
    """
    message = str(error)
    lowered = message.lower()

    if isinstance(error, PredictorError):
        return error
    if isinstance(error, WalletRequestError):
        if error.code == USER_REJECTED:
            return SignerRejectedError(message)
        return TransactionError(message)
    if isinstance(error, ContractLogicError):
        return TransactionRevertedError(message)
    if isinstance(error, (TimeExhausted, ProviderConnectionError, aiohttp.ClientError, asyncio.TimeoutError)):
        return RPCError(message)
    if isinstance(error, (Web3RPCError, ValueError)):
        if "insufficient funds" in lowered:
            return InsufficientFundsError(message)
        if "chain id" in lowered or "chainid" in lowered:
            return ChainMismatchError(message)
        if "revert" in lowered:
            return TransactionRevertedError(message)
        return TransactionError(message)
    return TransactionError(message)


class TransactionCoordinator:
    """
    Wraps a state-changing transaction: sends it, awaits inclusion and
    decodes the event it emitted. Each action name has its own state, so a
    submit and a reveal can be in flight at the same time but two submits
    cannot.
    """

    def __init__(self, w3, contract_address: Optional[str] = None, receipt_timeout: Optional[float] = None):
        self.w3 = w3
        self.contract_address = contract_address
        self.receipt_timeout = receipt_timeout
        self.states: Dict[str, TransactionState] = {}

    def state(self, action: str) -> TransactionState:
        return self.states.get(action, TransactionState.IDLE)

    def in_flight(self, action: str) -> bool:
        return self.state(action) == TransactionState.SUBMITTING

    async def execute(
        self,
        action: str,
        send: Callable[[], Awaitable],
        event_name: Optional[str] = None,
    ) -> TransactionOutcome:
        """Runs one transaction to confirmation.

        Args:
            action:
                Name of the triggering action, used for the in-flight guard
            send:
                Coroutine function that builds, signs and broadcasts the
                transaction and returns its hash
            event_name:
                Contract event to decode from the receipt logs

        Returns:
            outcome:
                The transaction hash and the decoded events

        Raises:
            TransactionInFlightError:
                The action already has a pending transaction
            TransactionError:
                The transaction was rejected, underfunded or reverted
            RPCError:
                The node could not be reached or the wait was exhausted
        """
        if self.in_flight(action):
            raise TransactionInFlightError(f"A {action} transaction is already awaiting confirmation")

        self.states[action] = TransactionState.SUBMITTING
        try:
            tx_hash = to_hex(await send())
            bt.logging.info(f"{action}: transaction {tx_hash} sent, waiting for confirmation")
            receipt = await self._wait_for_receipt(tx_hash)
            if receipt.get("status") == 0:
                raise TransactionRevertedError(f"Transaction {tx_hash} reverted on-chain")
        except asyncio.CancelledError:
            self.states[action] = TransactionState.FAILED
            bt.logging.warning(f"{action} cancelled before confirmation")
            raise
        except Exception as e:
            self.states[action] = TransactionState.FAILED
            error = classify_error(e)
            bt.logging.error(f"{action} failed: {type(error).__name__}: {error}")
            if error is e:
                raise
            raise error from e

        events = []
        if event_name:
            events = scan_logs(get_event_abi(event_name), receipt.get("logs", []), self.contract_address)
            if not events:
                bt.logging.warning(f"{action}: no {event_name} event found in transaction {tx_hash}")

        self.states[action] = TransactionState.CONFIRMED
        bt.logging.info(f"{action}: transaction {tx_hash} confirmed in block {receipt.get('blockNumber')}")
        return TransactionOutcome(tx_hash=tx_hash, block_number=receipt.get("blockNumber"), events=events)

    async def _wait_for_receipt(self, tx_hash: str):
        # None: no client side limit, wait until mined or the transport gives up
        return await self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.receipt_timeout)
