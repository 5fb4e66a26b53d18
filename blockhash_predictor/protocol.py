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


from enum import Enum
from typing import List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from blockhash_predictor.utils.validation import ZERO_HASH, validate_address, validate_bytes32


class SessionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class TransactionState(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class ChainSnapshot(BaseModel):
    """
    Latest block of the network and the candidate hashes derived from it.
    """

    model_config = ConfigDict(frozen=True)

    block_number: int = Field(..., ge=0, description="Number of the latest block")
    block_hash: str = Field(..., description="Hash of the latest block")
    target_block: int = Field(..., description="Block the prediction is judged against")
    candidates: List[str] = Field(
        ..., min_length=4, max_length=4, description="Candidate hashes, salt 1..4 in order"
    )

    @field_validator("block_hash")
    @classmethod
    def _check_block_hash(cls, value):
        return validate_bytes32(value)

    @field_validator("candidates")
    @classmethod
    def _check_candidates(cls, value):
        return [validate_bytes32(c) for c in value]

    @model_validator(mode="after")
    def _check_target(self):
        if self.target_block != self.block_number + 1:
            raise ValueError("target_block must be block_number + 1")
        return self


class Prediction(BaseModel):
    """
    One prediction record as stored by the ledger.
    """

    model_config = ConfigDict(frozen=True)

    id: int = Field(..., ge=0, description="Ledger assigned prediction id")
    owner: str = Field(..., description="Address that submitted the prediction")
    target_block: int = Field(..., ge=0, description="Block the prediction is judged against")
    predicted_hash: str = Field(..., description="Submitted guess")
    actual_hash: Optional[str] = Field(None, description="Hash of the target block, once revealed")
    revealed: bool = Field(False, description="Whether the prediction has been revealed")
    correct: bool = Field(False, description="Whether the guess matched, once revealed")
    timestamp: Optional[int] = Field(None, description="Submission time recorded by the contract")

    @field_validator("owner")
    @classmethod
    def _check_owner(cls, value):
        return validate_address(value)

    @field_validator("predicted_hash")
    @classmethod
    def _check_predicted_hash(cls, value):
        return validate_bytes32(value)

    @field_validator("actual_hash")
    @classmethod
    def _check_actual_hash(cls, value):
        return validate_bytes32(value) if value is not None else None

    @model_validator(mode="after")
    def _check_reveal_state(self):
        if not self.revealed and (self.correct or self.actual_hash is not None):
            raise ValueError("an unrevealed prediction has no actual hash and is never correct")
        return self

    @property
    def status(self) -> str:
        if not self.revealed:
            return "PENDING"
        return "CORRECT" if self.correct else "WRONG"

    @classmethod
    def create(cls, prediction_id: int, record: Sequence):
        """
        takes the getPrediction tuple and returns a Prediction object
        """
        owner = record[0]
        target_block = record[1]
        predicted_hash = _as_hex(record[2])
        actual_hash = _as_hex(record[3])
        revealed = bool(record[4])
        correct = bool(record[5])
        timestamp = record[6] if len(record) > 6 else None

        if not revealed and actual_hash == ZERO_HASH:
            actual_hash = None

        return cls(
            id=prediction_id,
            owner=owner,
            target_block=target_block,
            predicted_hash=predicted_hash,
            actual_hash=actual_hash,
            revealed=revealed,
            correct=correct,
            timestamp=timestamp,
        )


class SubmissionResult(BaseModel):
    tx_hash: str = Field(..., description="Hash of the submit transaction")
    prediction_id: Optional[int] = Field(
        None, description="Id from the PredictionSubmitted event, None when no event was found"
    )
    target_block: Optional[int] = Field(None, description="Target block from the event")
    predicted_hash: str = Field(..., description="Submitted guess")


class RevealResult(BaseModel):
    tx_hash: str = Field(..., description="Hash of the reveal transaction")
    prediction_id: int = Field(..., description="Revealed prediction id")
    actual_hash: Optional[str] = Field(None, description="Actual hash from the PredictionRevealed event")
    correct: Optional[bool] = Field(None, description="Outcome from the PredictionRevealed event")


class LedgerStats(BaseModel):
    total_predictions: int = Field(..., description="Predictions stored across all users")
    latest_stored_block_number: Optional[int] = Field(None, description="Last block hash stored by the contract")
    latest_stored_hash: Optional[str] = Field(None, description="Last hash stored by the contract")


def _as_hex(value) -> str:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    return value.lower() if isinstance(value, str) else value
