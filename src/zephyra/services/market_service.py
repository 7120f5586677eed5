"""Market (liquidation) scanner.

Lists every protocol participant with their position and flags the ones a
caller may liquidate. Eligibility is re-checked against a fresh health
factor before a liquidation is submitted.
"""

import asyncio
import logging
from decimal import Decimal
from typing import Optional

from zephyra.amounts import from_base_units, parse_positive, shorten_address
from zephyra.chains import CCIP_LANES
from zephyra.config import Settings, get_settings
from zephyra.errors import NotEligible, PartialReadFailure, ZephyraError
from zephyra.models.dashboard import HealthFactorView
from zephyra.models.market import (
    CollateralPosition,
    MarketParticipant,
    MarketResult,
    ProtocolStats,
    ProtocolStatsResult,
)
from zephyra.models.operations import TransactionOutcome
from zephyra.services.contract_registry import CallingIdentity
from zephyra.services.dashboard_service import health_factor_view
from zephyra.services.transaction_orchestrator import ActionPlan, TokenSpend, TransactionOrchestrator

logger = logging.getLogger(__name__)


def is_liquidatable(health_factor: HealthFactorView, address: str, caller: Optional[str]) -> bool:
    """Below 1.0 and not the caller's own position."""
    if caller and address.lower() == caller.lower():
        return False
    return health_factor.is_below_one


class MarketService:
    """Participant listing and liquidation entry point."""

    def __init__(
        self,
        orchestrator: TransactionOrchestrator,
        identity: CallingIdentity,
        settings: Optional[Settings] = None,
    ):
        self.orchestrator = orchestrator
        self.session_manager = orchestrator.session_manager
        self.registry = orchestrator.registry
        self.assets = orchestrator.assets
        self.identity = identity
        self.settings = settings or get_settings()

    def _caller(self) -> Optional[str]:
        session = self.session_manager.session
        return session.address if session else None

    async def _participant(self, vault, user: str, caller: Optional[str]) -> MarketParticipant:
        collateral = self.assets.collateral
        minted_raw, health_raw, *collateral_raw = await asyncio.gather(
            vault.call("getMintedZusd", user),
            vault.call("getHealthFactor", user),
            *(vault.call("getUserCollateralBalance", user, a.contract_address) for a in collateral),
        )
        health = health_factor_view(int(health_raw), self.settings.health_factor_sentinel)
        return MarketParticipant(
            address=user,
            collateral=[
                CollateralPosition(symbol=a.symbol, amount=from_base_units(raw, a.decimals))
                for a, raw in zip(collateral, collateral_raw)
            ],
            minted_debt=from_base_units(minted_raw, self.assets.zusd.decimals),
            health_factor=health,
            liquidatable=is_liquidatable(health, user, caller),
        )

    async def _participants(self) -> list[MarketParticipant]:
        vault = self.registry.handle("vault", self.identity)
        caller = self._caller()
        try:
            users = list(await vault.call("getUsers"))
            results = await asyncio.gather(
                *(self._participant(vault, user, caller) for user in users),
                return_exceptions=True,
            )
        except ZephyraError:
            raise
        except Exception as e:
            raise PartialReadFailure(f"Could not list protocol users: {e}") from e

        failures = [r for r in results if isinstance(r, BaseException)]
        if failures:
            raise PartialReadFailure(
                f"{len(failures)} of {len(results)} positions failed to load: {failures[0]}"
            )
        return list(results)

    async def list_participants(self) -> MarketResult:
        """Every protocol user, in on-chain order."""
        try:
            participants = await self._participants()
        except ZephyraError as e:
            logger.warning(f"Market fetch failed: {e}")
            return MarketResult(**MarketResult.error_fields(e))
        return MarketResult(success=True, participants=participants)

    async def protocol_stats(self) -> ProtocolStatsResult:
        """Totals across all participants."""
        try:
            participants = await self._participants()
        except ZephyraError as e:
            return ProtocolStatsResult(**ProtocolStatsResult.error_fields(e))

        total_collateral = {a.symbol: Decimal(0) for a in self.assets.collateral}
        for participant in participants:
            for position in participant.collateral:
                total_collateral[position.symbol] += position.amount

        stats = ProtocolStats(
            participants=len(participants),
            total_minted=sum((p.minted_debt for p in participants), Decimal(0)),
            total_collateral=total_collateral,
            liquidatable_positions=sum(1 for p in participants if p.health_factor.is_below_one),
            supported_chains=len(CCIP_LANES),
        )
        return ProtocolStatsResult(success=True, stats=stats)

    async def liquidate(
        self,
        target: str,
        collateral_symbol: str,
        debt_to_cover: str,
    ) -> TransactionOutcome:
        """Repay ``debt_to_cover`` ZUSD of ``target``'s debt for their collateral."""
        try:
            session = self.session_manager.require_session()
            asset = self.assets.get_collateral(collateral_symbol)
            amount_raw = parse_positive(debt_to_cover, self.assets.zusd.decimals)

            if target.lower() == session.address.lower():
                raise NotEligible("Cannot liquidate your own position")

            vault = self.registry.handle("vault", session.signer)
            try:
                health_raw = await vault.call("getHealthFactor", target)
            except Exception as e:
                raise PartialReadFailure(f"Could not read health factor: {e}") from e

            health = health_factor_view(int(health_raw), self.settings.health_factor_sentinel)
            if not is_liquidatable(health, target, session.address):
                raise NotEligible(
                    f"Position {shorten_address(target)} is not liquidatable "
                    f"(health factor {health.label})"
                )
        except ZephyraError as e:
            logger.warning(f"Liquidation of {shorten_address(target)} rejected: {e}")
            return TransactionOutcome.failure("liquidate", e)

        logger.info(f"Liquidating {shorten_address(target)}: {debt_to_cover} ZUSD against {asset.symbol}")
        return await self.orchestrator.execute(
            ActionPlan(
                action="liquidate",
                target="vault",
                function="liquidate",
                args=(asset.contract_address, target, amount_raw),
                spend=TokenSpend(token="zusd", spender="vault", amount=amount_raw),
            )
        )
