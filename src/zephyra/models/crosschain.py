"""Cross-chain transfer models (Chainlink CCIP)."""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from zephyra.models.base import ServiceResult
from zephyra.models.operations import TransactionOutcome


class CrossChainDestination(BaseModel):
    """A lane the router can deliver to."""

    key: str
    name: str
    selector: int
    chain_id: int
    wrapped_zusd: str


class TokenAmount(BaseModel):
    token: str
    amount: int


class CrossChainEnvelope(BaseModel):
    """EVM2AnyMessage in the shape the router expects."""

    receiver: bytes = Field(..., description="abi.encode(receiver address)")
    data: bytes = Field(default=b"", description="Payload for the receiver (empty for token-only)")
    token_amounts: list[TokenAmount] = Field(default_factory=list)
    fee_token: str = Field(..., description="Fee token; the zero address means native")
    extra_args: bytes = Field(..., description="EVMExtraArgsV1 with the gas-limit hint")

    def as_tuple(self) -> tuple:
        return (
            self.receiver,
            self.data,
            [(t.token, t.amount) for t in self.token_amounts],
            self.fee_token,
            self.extra_args,
        )


class CrossChainQuote(BaseModel):
    """Fee quoted for one exact envelope and destination."""

    destination: CrossChainDestination
    receiver: str
    amount: Decimal
    amount_raw: int
    envelope: CrossChainEnvelope
    fee: int = Field(..., description="Native fee in wei")
    fee_display: Decimal


class CrossChainQuoteResult(ServiceResult):
    quote: Optional[CrossChainQuote] = None


class CrossChainTransferResult(ServiceResult):
    """Submission outcome. Delivery on the destination chain is tracked externally."""

    outcome: Optional[TransactionOutcome] = None
    tx_hash: Optional[str] = None
    message_id: Optional[str] = None
    fee_paid: Optional[int] = None
    explorer_url: Optional[str] = None
