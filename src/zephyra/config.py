"""Application configuration using pydantic-settings.

One deployment of the Zephyra protocol per process: a single RPC endpoint,
a single chain id and a fixed set of contract addresses.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="ZEPHYRA_",
        extra="ignore",
    )

    # ======================
    # Environment
    # ======================
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=False, description="Enable debug logging")
    log_level: str = Field(default="INFO", description="Root log level")

    # ======================
    # Network
    # ======================
    rpc_url: str = Field(
        default="https://ethereum-sepolia-rpc.publicnode.com",
        description="Read-only RPC endpoint of the deployment chain",
    )
    chain_id: int = Field(default=11155111, description="Deployment chain ID (Sepolia)")
    enforce_network: bool = Field(
        default=True,
        description="Block writes when the wallet is on a different chain than the deployment",
    )
    receipt_poll_interval: float = Field(
        default=2.0, description="Seconds between receipt polls while waiting for confirmation"
    )
    http_timeout: float = Field(default=10.0, description="Timeout for HTTP metadata fetches")

    # ======================
    # Contract addresses
    # ======================
    zusd_address: str = Field(default="", description="ZUSD stablecoin contract")
    vault_address: str = Field(default="", description="Zephyra vault contract")
    weth_address: str = Field(default="", description="WETH collateral token")
    wbtc_address: str = Field(default="", description="WBTC collateral token")
    nft_address: str = Field(default="", description="Zephyra NFT / raffle contract")
    ccip_router_address: str = Field(default="", description="Chainlink CCIP router")

    # ======================
    # NFT discovery
    # ======================
    nft_max_fetch: int = Field(default=20, description="Maximum tokens inspected per discovery")
    nft_from_block: int = Field(default=0, description="First block scanned for mint events")
    ipfs_gateway: str = Field(
        default="https://ipfs.io/ipfs/", description="Gateway used to rewrite ipfs:// references"
    )
    nft_placeholder_image: str = Field(
        default="/images/nft-placeholder.png",
        description="Image shown when metadata cannot be decoded",
    )

    # ======================
    # Vault
    # ======================
    health_factor_sentinel: float = Field(
        default=1e10,
        description="Health factors above this value mean 'no debt' and render as unbounded",
    )

    # ======================
    # Cross-chain (CCIP)
    # ======================
    ccip_gas_limit: int = Field(default=200_000, description="Gas limit hint for the destination")
    ccip_explorer_url: str = Field(
        default="https://ccip.chain.link/msg/", description="Message explorer base URL"
    )

    # ======================
    # Local wallet (CLI only)
    # ======================
    private_key: Optional[str] = Field(default=None, description="Hex private key of the local wallet")
    mnemonic: Optional[str] = Field(default=None, description="12/24 word seed phrase")
    account_count: int = Field(default=1, description="Accounts derived from the mnemonic")

    @property
    def has_wallet(self) -> bool:
        """Check if local key material is configured."""
        if self.private_key:
            return True
        return bool(self.mnemonic and len(self.mnemonic.split()) >= 12)

    def contract_addresses(self) -> dict[str, str]:
        """Logical contract name -> configured address (empty when unset)."""
        return {
            "zusd": self.zusd_address,
            "vault": self.vault_address,
            "nft": self.nft_address,
            "messenger": self.ccip_router_address,
            "WETH": self.weth_address,
            "WBTC": self.wbtc_address,
        }

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "rpc_url": self.rpc_url,
            "chain_id": self.chain_id,
            "enforce_network": self.enforce_network,
            "contracts": {
                name: address or "(not set)"
                for name, address in self.contract_addresses().items()
            },
            "nft": {
                "max_fetch": self.nft_max_fetch,
                "from_block": self.nft_from_block,
                "ipfs_gateway": self.ipfs_gateway,
            },
            "health_factor_sentinel": self.health_factor_sentinel,
            "ccip": {
                "gas_limit": self.ccip_gas_limit,
                "explorer": self.ccip_explorer_url,
            },
            "private_key": "***" if self.private_key else "(not set)",
            "mnemonic": "***" if self.mnemonic else "(not set)",
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
