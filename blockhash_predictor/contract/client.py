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
from typing import List, Union

import aiohttp
import bittensor as bt
from eth_utils import to_bytes
from web3.exceptions import Web3Exception

from blockhash_predictor.contract.abi import PREDICTION_REVEALED, PREDICTION_SUBMITTED
from blockhash_predictor.contract.transactions import TransactionCoordinator
from blockhash_predictor.errors import ChainMismatchError, RPCError
from blockhash_predictor.protocol import LedgerStats, Prediction, RevealResult, SubmissionResult
from blockhash_predictor.utils.validation import validate_address, validate_bytes32, validate_prediction_id
from blockhash_predictor.wallet.session import WalletSession

SUBMIT_ACTION = "submit"
REVEAL_ACTION = "reveal"

READ_ERRORS = (Web3Exception, aiohttp.ClientError, asyncio.TimeoutError)


class PredictionClient:
    """
    Invokes the BlockHashPredictor contract: submit and reveal through the
    TransactionCoordinator, plus the read-only views.
    """

    def __init__(self, session: WalletSession, contract, coordinator: TransactionCoordinator):
        self.session = session
        self.contract = contract
        self.coordinator = coordinator

    async def submit(self, predicted_hash: str) -> SubmissionResult:
        """Commits a predicted hash for the next block.

        Args:
            predicted_hash:
                0x-prefixed 32-byte hex string

        Returns:
            result:
                Transaction hash and the ledger assigned id. The id is None
                when the receipt carried no PredictionSubmitted event.

        Raises:
            ValidationError:
                The hash is malformed, raised before any network call
            ConnectionError:
                The wallet session is not connected
            TransactionError:
                Rejected, underfunded or reverted transaction
            RPCError:
                Transport failure while sending or confirming
        """
        predicted_hash = validate_bytes32(predicted_hash)
        self._check_session()

        async def send():
            call = self.contract.functions.submitPrediction(to_bytes(hexstr=predicted_hash))
            return await self._send(call)

        bt.logging.info(f"Submitting prediction {predicted_hash}")
        outcome = await self.coordinator.execute(SUBMIT_ACTION, send, PREDICTION_SUBMITTED)

        prediction_id = target_block = None
        if outcome.event:
            prediction_id = outcome.event.args["predictionId"]
            target_block = outcome.event.args["targetBlock"]
            bt.logging.info(f"Prediction {prediction_id} stored for block {target_block}")

        return SubmissionResult(
            tx_hash=outcome.tx_hash,
            prediction_id=prediction_id,
            target_block=target_block,
            predicted_hash=predicted_hash,
        )

    async def reveal(self, prediction_id: Union[int, str]) -> RevealResult:
        """Reveals a past prediction.

        Ownership and timing are enforced by the contract, a violation comes
        back as a TransactionRevertedError. The decoded outcome is returned for
        information only, nothing local is updated: re-read the ledger to see
        the new state.
        """
        prediction_id = validate_prediction_id(prediction_id)
        self._check_session()

        async def send():
            return await self._send(self.contract.functions.revealPrediction(prediction_id))

        bt.logging.info(f"Revealing prediction {prediction_id}")
        outcome = await self.coordinator.execute(REVEAL_ACTION, send, PREDICTION_REVEALED)

        actual_hash = correct = None
        if outcome.event:
            actual_hash = outcome.event.args["actualHash"]
            correct = outcome.event.args["correct"]
            bt.logging.info(f"Prediction {prediction_id} revealed: actual={actual_hash} correct={correct}")

        return RevealResult(
            tx_hash=outcome.tx_hash,
            prediction_id=prediction_id,
            actual_hash=actual_hash,
            correct=correct,
        )

    async def get_prediction(self, prediction_id: int) -> Prediction:
        record = await self._read(self.contract.functions.getPrediction(prediction_id), "getPrediction")
        return Prediction.create(prediction_id, record)

    async def get_user_predictions(self, owner: str) -> List[int]:
        ids = await self._read(self.contract.functions.getUserPredictions(validate_address(owner)), "getUserPredictions")
        return [int(i) for i in ids]

    async def total_predictions(self) -> int:
        return await self._read(self.contract.functions.totalPredictions(), "totalPredictions")

    async def current_block_number(self) -> int:
        return await self._read(self.contract.functions.currentBlockNumber(), "currentBlockNumber")

    async def get_block_hash(self, block_number: int) -> str:
        value = await self._read(self.contract.functions.getBlockHash(block_number), "getBlockHash")
        return "0x" + bytes(value).hex()

    async def ledger_stats(self) -> LedgerStats:
        total = await self.total_predictions()
        latest_number = await self._read(self.contract.functions.latestStoredBlockNumber(), "latestStoredBlockNumber")
        latest_hash = await self._read(self.contract.functions.latestStoredHash(), "latestStoredHash")
        return LedgerStats(
            total_predictions=total,
            latest_stored_block_number=latest_number,
            latest_stored_hash="0x" + bytes(latest_hash).hex(),
        )

    def _check_session(self) -> None:
        self.session.require_connected()
        expected = self.session.config.chain_id
        if self.session.chain_id != expected:
            raise ChainMismatchError(
                f"Wallet is on chain {self.session.chain_id}, contract lives on chain {expected}"
            )

    async def _send(self, call) -> bytes:
        signer = self.session.signer
        tx = await call.build_transaction({"from": signer.address, "chainId": self.session.chain_id})
        return await signer.send_transaction(tx)

    async def _read(self, call, name: str):
        try:
            return await call.call()
        except READ_ERRORS as e:
            bt.logging.error(f"{name} call failed: {e}")
            raise RPCError(str(e)) from e
