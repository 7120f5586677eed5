"""Asset catalog.

Loaded once at startup. Collateral decimals come from each token's own
``decimals()`` (WETH has 18, WBTC 8); ZUSD is fixed at 18.
"""

import asyncio
import logging
from typing import Optional

from zephyra.errors import PreconditionFailed
from zephyra.models.assets import AssetDescriptor
from zephyra.services.contract_registry import CallingIdentity, ContractRegistry

logger = logging.getLogger(__name__)

ZUSD_SYMBOL = "ZUSD"
ZUSD_DECIMALS = 18
DEFAULT_COLLATERAL = ("WETH", "WBTC")


class AssetCatalog:
    """Immutable set of asset descriptors for the process lifetime."""

    def __init__(self, zusd: AssetDescriptor, collateral: list[AssetDescriptor]):
        self._zusd = zusd
        self._collateral = tuple(collateral)
        self._by_symbol = {a.symbol.upper(): a for a in (zusd, *collateral)}

    @classmethod
    async def load(
        cls,
        registry: ContractRegistry,
        identity: CallingIdentity,
        collateral_symbols: tuple[str, ...] = DEFAULT_COLLATERAL,
    ) -> "AssetCatalog":
        """Resolve addresses and on-chain decimals for every configured asset."""
        zusd = AssetDescriptor(
            symbol=ZUSD_SYMBOL,
            contract_address=registry.address("zusd"),
            decimals=ZUSD_DECIMALS,
        )

        symbols = [s for s in collateral_symbols if registry.has(s)]
        decimals = await asyncio.gather(
            *(registry.handle(s, identity).call("decimals") for s in symbols)
        )

        collateral = [
            AssetDescriptor(
                symbol=symbol,
                contract_address=registry.address(symbol),
                decimals=int(d),
            )
            for symbol, d in zip(symbols, decimals)
        ]
        loaded = ", ".join(f"{a.symbol}({a.decimals})" for a in collateral)
        logger.info(f"Asset catalog loaded: {loaded}")
        return cls(zusd, collateral)

    @property
    def zusd(self) -> AssetDescriptor:
        return self._zusd

    @property
    def collateral(self) -> tuple[AssetDescriptor, ...]:
        return self._collateral

    def find(self, symbol: str) -> Optional[AssetDescriptor]:
        return self._by_symbol.get(symbol.upper())

    def get_collateral(self, symbol: str) -> AssetDescriptor:
        """Collateral descriptor by symbol.

        Raises:
            PreconditionFailed: If the symbol is not a collateral asset
        """
        asset = self.find(symbol)
        if asset is None or asset.symbol == ZUSD_SYMBOL:
            raise PreconditionFailed(f"Unsupported collateral: {symbol}")
        return asset
