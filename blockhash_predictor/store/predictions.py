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


from typing import List

import bittensor as bt

from blockhash_predictor.contract.client import PredictionClient
from blockhash_predictor.protocol import Prediction
from blockhash_predictor.utils.validation import validate_address
from blockhash_predictor.wallet.session import WalletSession


class PredictionStore:
    """
    Rebuilds a user's prediction history from the ledger.

    Nothing is cached: every call is a full refresh, so a record read after a
    reveal always reflects the ledger and never a merge with an older copy.
    """

    def __init__(self, client: PredictionClient):
        self.client = client

    async def list(self, owner: str) -> List[Prediction]:
        """Returns every prediction owned by an address.

        The order is the one the ledger returns ids in (ascending by
        creation); records are not re-sorted. If any single record read
        fails the whole call fails, partial histories are never returned.

        Args:
            owner:
                Address whose predictions are listed

        Returns:
            predictions:
                The records, empty when the address never predicted

        Raises:
            ValidationError:
                owner is not an address
            RPCError:
                The id list or one of the records could not be read
        """
        owner = validate_address(owner)
        prediction_ids = await self.client.get_user_predictions(owner)
        bt.logging.debug(f"Found {len(prediction_ids)} predictions for {owner}")

        predictions = []
        for prediction_id in prediction_ids:
            predictions.append(await self.client.get_prediction(prediction_id))
        return predictions

    async def list_for_session(self, session: WalletSession) -> List[Prediction]:
        session.require_connected()
        return await self.list(session.address)
