"""
ABI of the deployed BlockHashPredictor contract, limited to what we call.
"""


def _param(name, type_, indexed=None):
    param = {"internalType": type_, "name": name, "type": type_}
    if indexed is not None:
        param["indexed"] = indexed
    return param


def _view(name, inputs, outputs):
    return {
        "inputs": inputs,
        "name": name,
        "outputs": outputs,
        "stateMutability": "view",
        "type": "function",
    }


PREDICTION_SUBMITTED = "PredictionSubmitted"
PREDICTION_REVEALED = "PredictionRevealed"

BLOCKHASH_PREDICTOR_ABI = [
    {
        "inputs": [_param("_predictedHash", "bytes32")],
        "name": "submitPrediction",
        "outputs": [_param("", "uint256")],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [_param("_predictionId", "uint256")],
        "name": "revealPrediction",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    _view("currentBlockNumber", [], [_param("", "uint256")]),
    _view("getBlockHash", [_param("_blockNumber", "uint256")], [_param("", "bytes32")]),
    _view("totalPredictions", [], [_param("", "uint256")]),
    _view(
        "getPrediction",
        [_param("_id", "uint256")],
        [
            _param("predictor", "address"),
            _param("targetBlock", "uint256"),
            _param("predictedHash", "bytes32"),
            _param("actualHash", "bytes32"),
            _param("revealed", "bool"),
            _param("correct", "bool"),
            _param("timestamp", "uint256"),
        ],
    ),
    _view("getUserPredictions", [_param("_user", "address")], [_param("", "uint256[]")]),
    _view("latestStoredHash", [], [_param("", "bytes32")]),
    _view("latestStoredBlockNumber", [], [_param("", "uint256")]),
    {
        "anonymous": False,
        "inputs": [
            _param("predictionId", "uint256", indexed=True),
            _param("predictor", "address", indexed=True),
            _param("targetBlock", "uint256", indexed=False),
            _param("predictedHash", "bytes32", indexed=False),
        ],
        "name": PREDICTION_SUBMITTED,
        "type": "event",
    },
    {
        "anonymous": False,
        "inputs": [
            _param("predictionId", "uint256", indexed=True),
            _param("predictor", "address", indexed=True),
            _param("actualHash", "bytes32", indexed=False),
            _param("correct", "bool", indexed=False),
        ],
        "name": PREDICTION_REVEALED,
        "type": "event",
    },
]


def get_event_abi(name: str, abi=BLOCKHASH_PREDICTOR_ABI) -> dict:
    for entry in abi:
        if entry.get("type") == "event" and entry.get("name") == name:
            return entry
    raise KeyError(f"Event {name} not found in ABI")
