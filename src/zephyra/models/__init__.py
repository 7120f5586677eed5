"""Pydantic models returned by the client components."""

from zephyra.models.assets import AssetDescriptor
from zephyra.models.base import ServiceResult
from zephyra.models.crosschain import (
    CrossChainDestination,
    CrossChainEnvelope,
    CrossChainQuote,
    CrossChainQuoteResult,
    CrossChainTransferResult,
)
from zephyra.models.dashboard import (
    CollateralBalance,
    DashboardResult,
    DashboardSnapshot,
    HealthFactorView,
    ZusdBalanceResult,
)
from zephyra.models.market import (
    MarketParticipant,
    MarketResult,
    ProtocolStats,
    ProtocolStatsResult,
)
from zephyra.models.nfts import (
    DiscoveryStrategyKind,
    NFTDiscoveryResult,
    NFTRecord,
    RaffleState,
    RaffleStatus,
    RaffleStatusResult,
)
from zephyra.models.operations import (
    OperationKind,
    OperationStatus,
    PendingOperation,
    TransactionOutcome,
)

__all__ = [
    "AssetDescriptor",
    "ServiceResult",
    # Cross-chain
    "CrossChainDestination",
    "CrossChainEnvelope",
    "CrossChainQuote",
    "CrossChainQuoteResult",
    "CrossChainTransferResult",
    # Dashboard
    "CollateralBalance",
    "DashboardResult",
    "DashboardSnapshot",
    "HealthFactorView",
    "ZusdBalanceResult",
    # Market
    "MarketParticipant",
    "MarketResult",
    "ProtocolStats",
    "ProtocolStatsResult",
    # NFTs
    "DiscoveryStrategyKind",
    "NFTDiscoveryResult",
    "NFTRecord",
    "RaffleState",
    "RaffleStatus",
    "RaffleStatusResult",
    # Operations
    "OperationKind",
    "OperationStatus",
    "PendingOperation",
    "TransactionOutcome",
]
