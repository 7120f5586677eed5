"""Dashboard view models."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from zephyra.models.base import ServiceResult


class HealthFactorView(BaseModel):
    """Health factor ready for display.

    ``unbounded`` is set when the vault reports its "no debt" sentinel; in
    that case ``value`` is None and the label is the safe indicator.
    """

    raw: int = Field(..., description="Raw 1e18-scaled value from the vault")
    value: Optional[Decimal] = Field(None, description="Ratio, None when unbounded")
    unbounded: bool = Field(default=False, description="No debt: position cannot be liquidated")
    label: str = Field(..., description="Display string")

    @property
    def is_below_one(self) -> bool:
        return self.value is not None and self.value < 1


class CollateralBalance(BaseModel):
    """Deposited amount of one collateral asset."""

    symbol: str
    contract_address: str
    amount: Decimal
    amount_raw: int


class DashboardSnapshot(BaseModel):
    """Complete dashboard read; never partially filled."""

    address: str
    health_factor: HealthFactorView
    minted_debt: Decimal = Field(..., description="ZUSD minted against the position")
    zusd_balance: Decimal = Field(..., description="ZUSD held in the wallet")
    collateral_balances: list[CollateralBalance] = Field(default_factory=list)
    fetched_at: datetime

    def collateral(self, symbol: str) -> Optional[CollateralBalance]:
        for balance in self.collateral_balances:
            if balance.symbol == symbol:
                return balance
        return None


class DashboardResult(ServiceResult):
    """Snapshot fetch outcome; ``snapshot`` is None on failure."""

    snapshot: Optional[DashboardSnapshot] = None


class ZusdBalanceResult(ServiceResult):
    """Wallet ZUSD balance; ``balance`` is None on failure, never zero."""

    address: Optional[str] = None
    balance: Optional[Decimal] = None
    balance_raw: Optional[int] = None
