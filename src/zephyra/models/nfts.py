"""NFT and raffle models."""

from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from zephyra.models.base import ServiceResult


class DiscoveryStrategyKind(str, Enum):
    """How ownership was enumerated."""

    ENUMERABLE = "enumerable"
    EVENT_REPLAY = "event_replay"


class NFTRecord(BaseModel):
    """A token currently owned by the queried wallet."""

    token_id: int = Field(..., description="Token ID, unique per contract")
    name: str = Field(default="", description="Metadata name")
    description: str = Field(default="", description="Metadata description")
    image: str = Field(..., description="Displayable image reference")
    decode_error: Optional[str] = Field(None, description="Why metadata could not be decoded")


class NFTDiscoveryResult(ServiceResult):
    """Ownership list for one wallet and contract."""

    owner: str
    contract_address: Optional[str] = None
    strategy: Optional[DiscoveryStrategyKind] = None
    records: list[NFTRecord] = Field(default_factory=list)
    truncated: bool = Field(default=False, description="More tokens exist than were fetched")


class RaffleState(str, Enum):
    """On-chain raffle state: 0 is Open, anything else Closed."""

    OPEN = "Open"
    CLOSED = "Closed"

    @classmethod
    def from_raw(cls, value: int) -> "RaffleState":
        return cls.OPEN if int(value) == 0 else cls.CLOSED


class RaffleStatus(BaseModel):
    """Everything the raffle page shows."""

    state: RaffleState
    entry_fee: Decimal = Field(..., description="Entry fee in native currency")
    entry_fee_raw: int
    players: list[str] = Field(default_factory=list)
    recent_winner: Optional[str] = Field(None, description="None until a winner is drawn")
    has_entered: bool = Field(default=False, description="Whether the queried address is a player")


class RaffleStatusResult(ServiceResult):
    status: Optional[RaffleStatus] = None
