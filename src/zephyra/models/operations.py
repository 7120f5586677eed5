"""Transaction operation models.

A ``PendingOperation`` lives only for the duration of one user action; it
is never persisted.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from zephyra.errors import TransactionStage, ZephyraError
from zephyra.models.base import ServiceResult


class OperationKind(str, Enum):
    """Which half of an approve-then-act sequence."""

    APPROVE = "approve"
    ACT = "act"


class OperationStatus(str, Enum):
    """Lifecycle of a single on-chain operation."""

    IDLE = "idle"
    AWAITING_APPROVAL = "awaiting-approval"  # waiting on the wallet prompt
    APPROVED = "approved"  # approval transaction confirmed
    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class PendingOperation(BaseModel):
    """One in-flight approval or action."""

    action: str = Field(..., description="User action this belongs to (deposit, mint, ...)")
    kind: OperationKind = Field(..., description="approve or act")
    target: str = Field(..., description="Logical contract the call goes to")
    function: str = Field(..., description="Contract function name")
    status: OperationStatus = Field(default=OperationStatus.IDLE)
    tx_hash: Optional[str] = Field(None, description="Transaction hash once submitted")
    error: Optional[str] = Field(None, description="Failure reason")


class TransactionOutcome(ServiceResult):
    """Result of an approve-then-act sequence."""

    action: str = Field(..., description="User action (deposit, mint, ...)")
    stage: Optional[TransactionStage] = Field(
        None, description="Failing stage for transaction failures"
    )
    approval_tx_hash: Optional[str] = Field(None, description="Approval tx, if one was needed")
    tx_hash: Optional[str] = Field(None, description="Primary action tx hash")
    operations: list[PendingOperation] = Field(
        default_factory=list, description="Operations in the order they ran"
    )

    @classmethod
    def failure(
        cls,
        action: str,
        exc: ZephyraError,
        operations: Optional[list[PendingOperation]] = None,
        approval_tx_hash: Optional[str] = None,
    ) -> "TransactionOutcome":
        return cls(
            **cls.error_fields(exc),
            action=action,
            stage=getattr(exc, "stage", None),
            approval_tx_hash=approval_tx_hash,
            tx_hash=getattr(exc, "tx_hash", None),
            operations=list(operations or []),
        )
