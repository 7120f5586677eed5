"""Client facade wiring every component around one session."""

import logging
from typing import Optional

from zephyra.config import Settings, get_settings
from zephyra.services.asset_catalog import AssetCatalog
from zephyra.services.contract_registry import CallingIdentity, ContractRegistry
from zephyra.services.crosschain_service import CrossChainService
from zephyra.services.dashboard_service import DashboardService
from zephyra.services.market_service import MarketService
from zephyra.services.nft_discovery import NFTDiscoveryEngine
from zephyra.services.raffle_service import RaffleService
from zephyra.services.session_manager import Navigator, SessionManager
from zephyra.services.transaction_orchestrator import TransactionOrchestrator
from zephyra.wallet.provider import WalletProvider
from zephyra.wallet.signer import ReadOnlyConnection

logger = logging.getLogger(__name__)


class ZephyraClient:
    """Owns the session manager and the services built on top of it.

    Reads go through a read-only connection to the deployment RPC so views
    work without a wallet; writes always use the session signer.
    """

    def __init__(
        self,
        provider: Optional[WalletProvider],
        settings: Optional[Settings] = None,
        navigator: Optional[Navigator] = None,
        registry: Optional[ContractRegistry] = None,
        reader: Optional[CallingIdentity] = None,
    ):
        self.settings = settings or get_settings()
        self.registry = registry or ContractRegistry.from_settings(self.settings)
        self.reader = reader or ReadOnlyConnection.from_url(
            self.settings.rpc_url, self.settings.http_timeout
        )
        self.session_manager = SessionManager(provider, navigator, self.settings)

        self.assets: Optional[AssetCatalog] = None
        self.orchestrator: Optional[TransactionOrchestrator] = None
        self.dashboard: Optional[DashboardService] = None
        self.nfts: Optional[NFTDiscoveryEngine] = None
        self.crosschain: Optional[CrossChainService] = None
        self.market: Optional[MarketService] = None
        self.raffle: Optional[RaffleService] = None

    async def start(self) -> None:
        """Load the asset catalog and build the services."""
        self.assets = await AssetCatalog.load(self.registry, self.reader)
        self.orchestrator = TransactionOrchestrator(self.session_manager, self.registry, self.assets)
        self.dashboard = DashboardService(
            self.registry, self.assets, self.reader, self.settings, self.session_manager
        )
        self.nfts = NFTDiscoveryEngine(self.registry, self.reader, self.settings)
        self.crosschain = CrossChainService(self.orchestrator, self.settings)
        self.market = MarketService(self.orchestrator, self.reader, self.settings)
        self.raffle = RaffleService(self.orchestrator, self.reader)

        await self.session_manager.start()
        logger.info(f"Zephyra client started (chain {self.settings.chain_id})")

    async def close(self) -> None:
        await self.session_manager.stop()
        await self.session_manager.disconnect()
        logger.info("Zephyra client stopped")

    async def __aenter__(self) -> "ZephyraClient":
        await self.start()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()
