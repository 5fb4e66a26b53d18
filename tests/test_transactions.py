"""
test script for the transaction coordinator and failure classification
"""

import asyncio

import aiohttp
import pytest
from unittest.mock import AsyncMock, MagicMock
from web3.exceptions import ContractLogicError, TimeExhausted, Web3RPCError

from blockhash_predictor.contract.abi import PREDICTION_SUBMITTED
from blockhash_predictor.contract.transactions import TransactionCoordinator, classify_error
from blockhash_predictor.errors import (
    ChainMismatchError,
    InsufficientFundsError,
    RPCError,
    SignerRejectedError,
    TransactionError,
    TransactionInFlightError,
    TransactionRevertedError,
)
from blockhash_predictor.protocol import TransactionState
from blockhash_predictor.wallet.provider import USER_REJECTED, WalletRequestError
from tests.conftest import CONTRACT_ADDRESS, OWNER, encode_log

TX_HASH = bytes.fromhex("ab" * 32)
TX_HASH_HEX = "0x" + "ab" * 32


def make_w3(receipt):
    w3 = MagicMock()
    w3.eth.wait_for_transaction_receipt = AsyncMock(return_value=receipt)
    return w3


def submitted(prediction_id, log_index=0):
    return encode_log(
        PREDICTION_SUBMITTED,
        {"predictionId": prediction_id, "predictor": OWNER, "targetBlock": 101, "predictedHash": b"\x11" * 32},
        log_index=log_index,
    )


@pytest.mark.parametrize(
    "error,expected",
    [
        (WalletRequestError(USER_REJECTED, "User rejected the request."), SignerRejectedError),
        (WalletRequestError(4100, "Unauthorized"), TransactionError),
        (ContractLogicError("execution reverted: already revealed"), TransactionRevertedError),
        (Web3RPCError("insufficient funds for gas * price + value"), InsufficientFundsError),
        (Web3RPCError("invalid chain id for signer"), ChainMismatchError),
        (ValueError({"code": -32000, "message": "insufficient funds for transfer"}), InsufficientFundsError),
        (TimeExhausted("Transaction 0xab is not in the chain after 120 seconds"), RPCError),
        (aiohttp.ClientConnectionError("Cannot connect to host"), RPCError),
        (asyncio.TimeoutError(), RPCError),
        (Web3RPCError("nonce too low"), TransactionError),
    ],
)
def test_classify_error(error, expected):
    classified = classify_error(error)
    assert type(classified) is expected


def test_classify_keeps_message():
    error = ValueError("insufficient funds for gas * price + value")
    assert str(classify_error(error)) == "insufficient funds for gas * price + value"


def test_classify_keeps_typed_errors():
    error = ChainMismatchError("wrong chain")
    assert classify_error(error) is error


@pytest.mark.asyncio
async def test_execute_decodes_event():
    receipt = {"status": 1, "blockNumber": 102, "logs": [submitted(5)]}
    coordinator = TransactionCoordinator(make_w3(receipt), contract_address=CONTRACT_ADDRESS)

    outcome = await coordinator.execute("submit", AsyncMock(return_value=TX_HASH), PREDICTION_SUBMITTED)

    assert outcome.tx_hash == TX_HASH_HEX
    assert outcome.block_number == 102
    assert outcome.event.args["predictionId"] == 5
    assert coordinator.state("submit") == TransactionState.CONFIRMED
    coordinator.w3.eth.wait_for_transaction_receipt.assert_awaited_once_with(TX_HASH_HEX, timeout=None)


@pytest.mark.asyncio
async def test_execute_last_matching_event_wins():
    receipt = {"status": 1, "blockNumber": 102, "logs": [submitted(5, 0), submitted(6, 1)]}
    coordinator = TransactionCoordinator(make_w3(receipt), contract_address=CONTRACT_ADDRESS)

    outcome = await coordinator.execute("submit", AsyncMock(return_value=TX_HASH), PREDICTION_SUBMITTED)
    assert outcome.event.args["predictionId"] == 6


@pytest.mark.asyncio
async def test_execute_without_event_still_succeeds():
    receipt = {"status": 1, "blockNumber": 102, "logs": []}
    coordinator = TransactionCoordinator(make_w3(receipt), contract_address=CONTRACT_ADDRESS)

    outcome = await coordinator.execute("submit", AsyncMock(return_value=TX_HASH), PREDICTION_SUBMITTED)

    assert outcome.event is None
    assert coordinator.state("submit") == TransactionState.CONFIRMED


@pytest.mark.asyncio
async def test_execute_reverted_receipt():
    receipt = {"status": 0, "blockNumber": 102, "logs": []}
    coordinator = TransactionCoordinator(make_w3(receipt))

    with pytest.raises(TransactionRevertedError, match="reverted"):
        await coordinator.execute("reveal", AsyncMock(return_value=TX_HASH))
    assert coordinator.state("reveal") == TransactionState.FAILED


@pytest.mark.asyncio
async def test_execute_wraps_send_failure():
    coordinator = TransactionCoordinator(make_w3({}))
    error = ContractLogicError("execution reverted: already revealed")

    with pytest.raises(TransactionRevertedError) as exc_info:
        await coordinator.execute("reveal", AsyncMock(side_effect=error))

    assert exc_info.value.__cause__ is error
    assert "already revealed" in str(exc_info.value)
    coordinator.w3.eth.wait_for_transaction_receipt.assert_not_awaited()


@pytest.mark.asyncio
async def test_execute_receipt_wait_exhausted():
    w3 = MagicMock()
    w3.eth.wait_for_transaction_receipt = AsyncMock(side_effect=TimeExhausted("not in the chain after 5 seconds"))
    coordinator = TransactionCoordinator(w3, receipt_timeout=5)

    with pytest.raises(RPCError):
        await coordinator.execute("submit", AsyncMock(return_value=TX_HASH))
    w3.eth.wait_for_transaction_receipt.assert_awaited_once_with(TX_HASH_HEX, timeout=5)


@pytest.mark.asyncio
async def test_in_flight_guard_is_per_action():
    release = asyncio.Event()
    receipt = {"status": 1, "blockNumber": 1, "logs": []}
    coordinator = TransactionCoordinator(make_w3(receipt))

    async def slow_send():
        await release.wait()
        return TX_HASH

    pending = asyncio.ensure_future(coordinator.execute("submit", slow_send))
    await asyncio.sleep(0)
    assert coordinator.state("submit") == TransactionState.SUBMITTING

    with pytest.raises(TransactionInFlightError):
        await coordinator.execute("submit", AsyncMock(return_value=TX_HASH))

    # a different action is not blocked
    outcome = await coordinator.execute("reveal", AsyncMock(return_value=TX_HASH))
    assert outcome.tx_hash == TX_HASH_HEX

    release.set()
    await pending
    assert coordinator.state("submit") == TransactionState.CONFIRMED


def test_initial_state_is_idle():
    coordinator = TransactionCoordinator(MagicMock())
    assert coordinator.state("submit") == TransactionState.IDLE
    assert not coordinator.in_flight("submit")


@pytest.mark.asyncio
async def test_cancelled_action_can_run_again():
    receipt = {"status": 1, "blockNumber": 1, "logs": []}
    coordinator = TransactionCoordinator(make_w3(receipt))

    async def never_sent():
        await asyncio.Event().wait()

    pending = asyncio.ensure_future(coordinator.execute("submit", never_sent))
    await asyncio.sleep(0)
    pending.cancel()
    with pytest.raises(asyncio.CancelledError):
        await pending

    assert coordinator.state("submit") == TransactionState.FAILED
    outcome = await coordinator.execute("submit", AsyncMock(return_value=TX_HASH))
    assert outcome.tx_hash == TX_HASH_HEX
