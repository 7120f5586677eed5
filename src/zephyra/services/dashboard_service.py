"""Dashboard aggregator.

All reads for one snapshot go out together; the snapshot is returned only
when every read succeeded. A failed fetch is reported as such and is never
merged with an earlier snapshot.
"""

import asyncio
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from zephyra.amounts import from_base_units, format_amount, shorten_address
from zephyra.config import Settings, get_settings
from zephyra.errors import PartialReadFailure, PreconditionFailed, ZephyraError
from zephyra.models.dashboard import (
    CollateralBalance,
    DashboardResult,
    DashboardSnapshot,
    HealthFactorView,
    ZusdBalanceResult,
)
from zephyra.services.asset_catalog import AssetCatalog
from zephyra.services.contract_registry import CallingIdentity, ContractRegistry
from zephyra.services.session_manager import SessionManager

logger = logging.getLogger(__name__)

# Vault reports health factor scaled by 1e18
HEALTH_FACTOR_DECIMALS = 18
UNBOUNDED_LABEL = "∞ (safe)"


def health_factor_view(raw: int, sentinel: float = 1e10) -> HealthFactorView:
    """Render a raw health factor.

    The vault returns uint256 max when nothing is minted; anything above
    ``sentinel`` is treated as that "no debt" marker and never shown as a
    number.
    """
    value = from_base_units(raw, HEALTH_FACTOR_DECIMALS)
    if value > Decimal(str(sentinel)):
        return HealthFactorView(raw=raw, value=None, unbounded=True, label=UNBOUNDED_LABEL)
    return HealthFactorView(raw=raw, value=value, unbounded=False, label=format_amount(value, 2))


class DashboardService:
    """Builds DashboardSnapshot view-models from parallel vault/token reads."""

    def __init__(
        self,
        registry: ContractRegistry,
        assets: AssetCatalog,
        identity: CallingIdentity,
        settings: Optional[Settings] = None,
        session_manager: Optional[SessionManager] = None,
    ):
        self.registry = registry
        self.assets = assets
        self.identity = identity
        self.settings = settings or get_settings()
        self.session_manager = session_manager

    async def fetch_snapshot(self, address: str) -> DashboardResult:
        """Fetch a complete snapshot for ``address``."""
        try:
            snapshot = await self._fetch(address)
        except ZephyraError as e:
            logger.warning(f"Dashboard fetch failed for {shorten_address(address)}: {e}")
            return DashboardResult(**DashboardResult.error_fields(e))
        return DashboardResult(success=True, snapshot=snapshot)

    async def get_zusd_balance(self, address: Optional[str] = None) -> ZusdBalanceResult:
        """ZUSD held by ``address``, defaulting to the connected wallet."""
        try:
            if address is None:
                if self.session_manager is None:
                    raise PreconditionFailed("Wallet not connected")
                address = self.session_manager.require_session().address
            zusd = self.registry.handle("zusd", self.identity)
            try:
                raw = int(await zusd.call("balanceOf", address))
            except Exception as e:
                raise PartialReadFailure(f"ZUSD balance read failed: {e}") from e
        except ZephyraError as e:
            return ZusdBalanceResult(**ZusdBalanceResult.error_fields(e), address=address)
        return ZusdBalanceResult(
            success=True,
            address=address,
            balance=from_base_units(raw, self.assets.zusd.decimals),
            balance_raw=raw,
        )

    async def _fetch(self, address: str) -> DashboardSnapshot:
        vault = self.registry.handle("vault", self.identity)
        zusd = self.registry.handle("zusd", self.identity)
        collateral = self.assets.collateral

        reads = [
            vault.call("getMintedZusd", address),
            vault.call("getHealthFactor", address),
            zusd.call("balanceOf", address),
            *(
                vault.call("getUserCollateralBalance", address, asset.contract_address)
                for asset in collateral
            ),
        ]
        results = await asyncio.gather(*reads, return_exceptions=True)

        failures = [r for r in results if isinstance(r, BaseException)]
        if failures:
            raise PartialReadFailure(
                f"{len(failures)} of {len(results)} dashboard reads failed: {failures[0]}"
            )

        minted_raw, health_raw, zusd_raw, *collateral_raw = results
        zusd_decimals = self.assets.zusd.decimals

        return DashboardSnapshot(
            address=address,
            health_factor=health_factor_view(
                int(health_raw), self.settings.health_factor_sentinel
            ),
            minted_debt=from_base_units(minted_raw, zusd_decimals),
            zusd_balance=from_base_units(zusd_raw, zusd_decimals),
            collateral_balances=[
                CollateralBalance(
                    symbol=asset.symbol,
                    contract_address=asset.contract_address,
                    amount=from_base_units(raw, asset.decimals),
                    amount_raw=int(raw),
                )
                for asset, raw in zip(collateral, collateral_raw)
            ],
            fetched_at=datetime.now(timezone.utc),
        )
