"""
Typed failures raised by the prediction lifecycle.

ValidationError is caught before any network call, ConnectionError aborts
session establishment, RPCError surfaces on reads and transport failures and
TransactionError (with its subclasses) on submit/reveal.
"""
from eth_utils.exceptions import ValidationError as EthValidationError


class PredictorError(Exception):
    """Base class for every error raised by blockhash_predictor."""


class ValidationError(PredictorError, EthValidationError):
    """Malformed predicted hash, prediction id or address."""


class ConnectionError(PredictorError):
    """Wallet unavailable, or the chain switch/add request was refused."""


class RPCError(PredictorError):
    """Unreachable endpoint, request timeout or unreadable ledger state."""


class TransactionError(PredictorError):
    """A state-changing transaction did not go through."""


class SignerRejectedError(TransactionError):
    pass


class InsufficientFundsError(TransactionError):
    pass


class ChainMismatchError(TransactionError):
    pass


class TransactionRevertedError(TransactionError):
    pass


class TransactionInFlightError(TransactionError):
    """The same action already has a transaction awaiting confirmation."""
