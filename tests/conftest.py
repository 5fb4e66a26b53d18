import pytest
from eth_abi import encode
from eth_utils import keccak, to_checksum_address
from web3.exceptions import ContractLogicError

from blockhash_predictor.config import PredictorConfig
from blockhash_predictor.contract.abi import PREDICTION_REVEALED, PREDICTION_SUBMITTED, get_event_abi
from blockhash_predictor.contract.client import PredictionClient
from blockhash_predictor.contract.events import event_topic
from blockhash_predictor.contract.transactions import TransactionCoordinator
from blockhash_predictor.store.predictions import PredictionStore
from blockhash_predictor.wallet.provider import UNRECOGNIZED_CHAIN, WalletProvider, WalletRequestError
from blockhash_predictor.wallet.session import WalletSession

# hardhat / anvil default account #0, never funded outside local networks
TEST_PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
OWNER = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
OTHER_USER = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
CONTRACT_ADDRESS = to_checksum_address("0xe5ff751467ffde6f04e9469ca7d2dba9b4d0d16d")
CHAIN_ID = 8119

ZERO_BYTES32 = b"\x00" * 32


def encode_log(event_name, values, address=CONTRACT_ADDRESS, log_index=0):
    """Builds a receipt log entry the way a node returns it."""
    event_abi = get_event_abi(event_name)
    indexed = [i for i in event_abi["inputs"] if i["indexed"]]
    unindexed = [i for i in event_abi["inputs"] if not i["indexed"]]
    topics = [event_topic(event_abi)]
    topics += [encode([i["type"]], [values[i["name"]]]) for i in indexed]
    data = encode([i["type"] for i in unindexed], [values[i["name"]] for i in unindexed])
    return {
        "address": address,
        "topics": topics,
        "data": data,
        "logIndex": log_index,
        "transactionIndex": 0,
        "blockNumber": 0,
    }


class FakeLedger:
    """
    In-memory stand-in for the BlockHashPredictor contract and the node it
    runs on. Every transaction is mined in its own block.
    """

    def __init__(self, block_number=100, chain_id=CHAIN_ID):
        self.chain_id = chain_id
        self.block_number = block_number
        self.block_hashes = {block_number: b"\xaa" * 32}
        self.predictions = []
        self.receipts = {}
        self.tx_count = 0
        self.fail_reads = set()

    def block_hash(self, number):
        if number not in self.block_hashes:
            self.block_hashes[number] = keccak(text=f"block-{number}")
        return self.block_hashes[number]

    def mine(self, blocks=1):
        for _ in range(blocks):
            self.block_number += 1
            self.block_hash(self.block_number)

    def _revert(self, reason):
        raise ContractLogicError(f"execution reverted: {reason}")

    # views

    def view(self, name, *args):
        if name in self.fail_reads:
            self._revert(f"{name} failed")
        if name == "getUserPredictions":
            return [p["id"] for p in self.predictions if p["owner"] == args[0]]
        if name == "getPrediction":
            if args[0] >= len(self.predictions):
                self._revert("invalid prediction id")
            p = self.predictions[args[0]]
            return [p["owner"], p["target"], p["predicted"], p["actual"], p["revealed"], p["correct"], p["timestamp"]]
        if name == "totalPredictions":
            return len(self.predictions)
        if name == "currentBlockNumber":
            return self.block_number
        if name == "getBlockHash":
            return self.block_hash(args[0])
        if name == "latestStoredBlockNumber":
            return self.block_number
        if name == "latestStoredHash":
            return self.block_hash(self.block_number)
        raise AttributeError(name)

    # transactions

    def estimate(self, name, args, sender):
        if name == "revealPrediction":
            prediction_id = args[0]
            if prediction_id >= len(self.predictions):
                self._revert("invalid prediction id")
            p = self.predictions[prediction_id]
            if p["owner"] != sender:
                self._revert("not your prediction")
            if p["revealed"]:
                self._revert("already revealed")
            if self.block_number <= p["target"]:
                self._revert("target block not reached")

    def execute(self, tx):
        self.estimate(tx["fn"], tx["args"], tx["from"])
        self.tx_count += 1
        tx_hash = keccak(text=f"tx-{self.tx_count}")
        logs = []

        if tx["fn"] == "submitPrediction":
            prediction_id = len(self.predictions)
            target = self.block_number + 1
            self.predictions.append(
                {
                    "id": prediction_id,
                    "owner": tx["from"],
                    "target": target,
                    "predicted": tx["args"][0],
                    "actual": ZERO_BYTES32,
                    "revealed": False,
                    "correct": False,
                    "timestamp": 1_700_000_000 + prediction_id,
                }
            )
            logs.append(
                encode_log(
                    PREDICTION_SUBMITTED,
                    {
                        "predictionId": prediction_id,
                        "predictor": tx["from"],
                        "targetBlock": target,
                        "predictedHash": tx["args"][0],
                    },
                )
            )
        elif tx["fn"] == "revealPrediction":
            p = self.predictions[tx["args"][0]]
            p["actual"] = self.block_hash(p["target"])
            p["correct"] = p["actual"] == p["predicted"]
            p["revealed"] = True
            logs.append(
                encode_log(
                    PREDICTION_REVEALED,
                    {
                        "predictionId": p["id"],
                        "predictor": p["owner"],
                        "actualHash": p["actual"],
                        "correct": p["correct"],
                    },
                )
            )

        self.mine()
        self.receipts["0x" + tx_hash.hex()] = {
            "transactionHash": tx_hash,
            "status": 1,
            "blockNumber": self.block_number,
            "logs": logs,
        }
        return tx_hash


class FakeCall:
    def __init__(self, ledger, name, args):
        self.ledger = ledger
        self.name = name
        self.args = args

    async def call(self):
        return self.ledger.view(self.name, *self.args)

    async def build_transaction(self, params):
        self.ledger.estimate(self.name, self.args, params["from"])
        return {
            "to": CONTRACT_ADDRESS,
            "from": params["from"],
            "chainId": params["chainId"],
            "fn": self.name,
            "args": self.args,
        }


class FakeFunctions:
    def __init__(self, ledger):
        self.ledger = ledger

    def __getattr__(self, name):
        return lambda *args: FakeCall(self.ledger, name, args)


class FakeContract:
    def __init__(self, ledger):
        self.address = CONTRACT_ADDRESS
        self.functions = FakeFunctions(ledger)


class FakeEth:
    def __init__(self, ledger):
        self.ledger = ledger

    @property
    def chain_id(self):
        async def _chain_id():
            return self.ledger.chain_id

        return _chain_id()

    async def get_block(self, block_identifier):
        number = self.ledger.block_number
        return {"number": number, "hash": self.ledger.block_hash(number)}

    async def wait_for_transaction_receipt(self, tx_hash, timeout=None):
        return self.ledger.receipts[tx_hash]


class FakeWeb3:
    def __init__(self, ledger):
        self.eth = FakeEth(ledger)
        self.provider = None


class FakeSigner:
    def __init__(self, ledger, address=OWNER):
        self.ledger = ledger
        self.address = address
        self.sent = []

    async def send_transaction(self, tx):
        self.sent.append(tx)
        return self.ledger.execute(tx)


class FakeWalletProvider(WalletProvider):
    """
    Browser-style wallet: starts on some chain, knows a set of chains and
    records every request it receives.
    """

    def __init__(self, signer, chain_id=CHAIN_ID, known_chains=(CHAIN_ID,), accounts=(OWNER,), failures=None):
        self.signer = signer
        self.chain_id = chain_id
        self.known_chains = set(known_chains)
        self.accounts = list(accounts)
        self.failures = failures or {}
        self.requests = []

    async def request(self, method, params=None):
        self.requests.append(method)
        if method in self.failures:
            raise self.failures[method]
        if method == "eth_chainId":
            return hex(self.chain_id)
        if method == "eth_requestAccounts":
            return self.accounts
        if method == "wallet_switchEthereumChain":
            chain_id = int(params[0]["chainId"], 16)
            if chain_id not in self.known_chains:
                raise WalletRequestError(UNRECOGNIZED_CHAIN, f"Unrecognized chain ID {hex(chain_id)}")
            self.chain_id = chain_id
            return None
        if method == "wallet_addEthereumChain":
            self.known_chains.add(int(params[0]["chainId"], 16))
            return None
        return await super().request(method, params)

    def get_signer(self):
        return self.signer


@pytest.fixture
def config():
    return PredictorConfig(contract_address=CONTRACT_ADDRESS, private_key=TEST_PRIVATE_KEY)


@pytest.fixture
def ledger():
    return FakeLedger()


@pytest.fixture
def w3(ledger):
    return FakeWeb3(ledger)


@pytest.fixture
def contract(ledger):
    return FakeContract(ledger)


@pytest.fixture
def signer(ledger):
    return FakeSigner(ledger)


@pytest.fixture
def wallet_provider(signer):
    return FakeWalletProvider(signer)


@pytest.fixture
def session(wallet_provider, config):
    return WalletSession(wallet_provider, config)


@pytest.fixture
def coordinator(w3):
    return TransactionCoordinator(w3, contract_address=CONTRACT_ADDRESS)


@pytest.fixture
def client(session, contract, coordinator):
    return PredictionClient(session, contract, coordinator)


@pytest.fixture
def store(client):
    return PredictionStore(client)
