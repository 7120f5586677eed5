"""Market (liquidation) view models."""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from zephyra.models.base import ServiceResult
from zephyra.models.dashboard import HealthFactorView


class CollateralPosition(BaseModel):
    symbol: str
    amount: Decimal


class MarketParticipant(BaseModel):
    """Read-only projection of one protocol user, rebuilt on every view."""

    address: str
    collateral: list[CollateralPosition] = Field(default_factory=list)
    minted_debt: Decimal
    health_factor: HealthFactorView
    liquidatable: bool = Field(
        default=False, description="Health factor below 1 and not the caller"
    )


class MarketResult(ServiceResult):
    participants: list[MarketParticipant] = Field(default_factory=list)


class ProtocolStats(BaseModel):
    """Protocol-wide totals derived from the participant list."""

    participants: int
    total_minted: Decimal
    total_collateral: dict[str, Decimal] = Field(default_factory=dict)
    liquidatable_positions: int
    supported_chains: int


class ProtocolStatsResult(ServiceResult):
    stats: Optional[ProtocolStats] = None
