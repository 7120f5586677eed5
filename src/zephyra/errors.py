"""Error taxonomy for the Zephyra client.

Components raise these internally and convert them to result models at
their public boundary; nothing is retried automatically.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Stable error codes carried by every failed result."""

    PRECONDITION_FAILED = "precondition_failed"
    INVALID_AMOUNT = "invalid_amount"
    NO_WALLET_PROVIDER = "no_wallet_provider"
    USER_REJECTED = "user_rejected"
    CONNECTION_ERROR = "connection_error"
    TRANSACTION_FAILED = "transaction_failed"
    PARTIAL_READ_FAILURE = "partial_read_failure"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    NOT_ELIGIBLE = "not_eligible"
    MISSING_ADDRESS = "missing_address"
    MISSING_CAPABILITY = "missing_capability"


class TransactionStage(str, Enum):
    """Step of an approve-then-act sequence that failed."""

    APPROVAL = "approval"
    ACTION = "action"


class ZephyraError(Exception):
    """Base class for all client errors."""

    kind: ErrorKind = ErrorKind.PRECONDITION_FAILED


class PreconditionFailed(ZephyraError):
    """Bad or missing input; no network call was made."""

    kind = ErrorKind.PRECONDITION_FAILED


class InvalidAmount(PreconditionFailed):
    """Amount text is not a representable non-negative decimal."""

    kind = ErrorKind.INVALID_AMOUNT


class NoWalletProvider(ZephyraError):
    """No injected wallet provider is available."""

    kind = ErrorKind.NO_WALLET_PROVIDER


class UserRejected(ZephyraError):
    """The user declined the wallet request."""

    kind = ErrorKind.USER_REJECTED


class WalletConnectionError(ZephyraError):
    """Session could not be established for any other reason."""

    kind = ErrorKind.CONNECTION_ERROR


class TransactionFailed(ZephyraError):
    """An approval or primary action failed.

    ``stage`` tells the caller whether anything happened on-chain:
    an approval failure means nothing changed, an action failure means
    an earlier approval may already be mined.
    """

    kind = ErrorKind.TRANSACTION_FAILED

    def __init__(self, stage: TransactionStage, message: str, tx_hash: Optional[str] = None):
        super().__init__(message)
        self.stage = stage
        self.tx_hash = tx_hash


class PartialReadFailure(ZephyraError):
    """One read of an aggregate fetch failed; the whole fetch is abandoned."""

    kind = ErrorKind.PARTIAL_READ_FAILURE


class InsufficientBalance(ZephyraError):
    """Wallet balance does not cover the requested amount."""

    kind = ErrorKind.INSUFFICIENT_BALANCE


class NotEligible(ZephyraError):
    """Position is not liquidatable by the caller."""

    kind = ErrorKind.NOT_ELIGIBLE


class MissingAddress(ZephyraError):
    """Logical contract name has no address in the active deployment."""

    kind = ErrorKind.MISSING_ADDRESS


class MissingCapability(ZephyraError):
    """Contract does not expose a function the client needs."""

    kind = ErrorKind.MISSING_CAPABILITY
