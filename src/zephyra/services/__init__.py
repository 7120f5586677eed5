"""Client components: session, contracts, transactions and read models."""

from zephyra.services.asset_catalog import AssetCatalog
from zephyra.services.contract_registry import ContractHandle, ContractRegistry
from zephyra.services.crosschain_service import CrossChainService
from zephyra.services.dashboard_service import DashboardService, health_factor_view
from zephyra.services.market_service import MarketService, is_liquidatable
from zephyra.services.nft_discovery import (
    EnumerableStrategy,
    EventReplayStrategy,
    MetadataResolver,
    NFTDiscoveryEngine,
)
from zephyra.services.raffle_service import RaffleService
from zephyra.services.session_manager import SessionManager
from zephyra.services.transaction_orchestrator import (
    ActionPlan,
    TokenSpend,
    TransactionOrchestrator,
)

__all__ = [
    "AssetCatalog",
    "ContractHandle",
    "ContractRegistry",
    "CrossChainService",
    "DashboardService",
    "health_factor_view",
    "MarketService",
    "is_liquidatable",
    "EnumerableStrategy",
    "EventReplayStrategy",
    "MetadataResolver",
    "NFTDiscoveryEngine",
    "RaffleService",
    "SessionManager",
    "ActionPlan",
    "TokenSpend",
    "TransactionOrchestrator",
]
