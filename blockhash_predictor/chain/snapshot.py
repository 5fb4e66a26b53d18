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
from typing import List

import aiohttp
import bittensor as bt
from eth_utils import to_hex
from web3 import Web3
from web3.exceptions import Web3Exception

from blockhash_predictor.errors import RPCError
from blockhash_predictor.protocol import ChainSnapshot
from blockhash_predictor.utils.validation import validate_bytes32

CANDIDATE_SALTS = (1, 2, 3, 4)


def candidate(block_hash: str, block_number: int, salt: int) -> str:
    """
    keccak256(abi.encodePacked(bytes32 blockHash, uint256 blockNumber, uint256 salt))
    as lowercase 0x hex. Pure: identical inputs give identical output.
    """
    digest = Web3.solidity_keccak(
        ["bytes32", "uint256", "uint256"],
        [validate_bytes32(block_hash), block_number, salt],
    )
    return to_hex(digest)


def derive_candidates(block_hash: str, block_number: int) -> List[str]:
    return [candidate(block_hash, block_number, salt) for salt in CANDIDATE_SALTS]


class ChainSnapshotProvider:
    """
    Reads the latest block and derives the candidate hashes offered to the
    user. No retries: callers decide whether to call again on failure.
    """

    def __init__(self, w3):
        self.w3 = w3

    async def snapshot(self) -> ChainSnapshot:
        try:
            block = await self.w3.eth.get_block("latest")
        except (Web3Exception, aiohttp.ClientError, asyncio.TimeoutError) as e:
            bt.logging.error(f"Unable to fetch latest block: {e}")
            raise RPCError(str(e)) from e

        if not block or block.get("hash") is None or block.get("number") is None:
            raise RPCError("Latest block could not be fetched")

        block_number = block["number"]
        block_hash = to_hex(block["hash"])
        bt.logging.debug(f"Snapshot at block {block_number} ({block_hash})")
        return ChainSnapshot(
            block_number=block_number,
            block_hash=block_hash,
            target_block=block_number + 1,
            candidates=derive_candidates(block_hash, block_number),
        )
