"""Network metadata and CCIP lanes.

Zephyra is deployed on Sepolia; ZUSD moves to Base Sepolia and
Avalanche Fuji through Chainlink CCIP as WrappedZUSD.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class NetworkConfig:
    """Configuration for an EVM network."""

    name: str
    label: str
    chain_id: int
    rpc_url: str
    explorer_url: str
    native_symbol: str = "ETH"
    is_testnet: bool = True


@dataclass(frozen=True)
class CcipLane:
    """A destination reachable through the CCIP router."""

    key: str
    name: str
    selector: int
    chain_id: int
    wrapped_zusd: str


# ======================
# Networks
# ======================

NETWORKS: dict[int, NetworkConfig] = {
    1: NetworkConfig(
        name="mainnet",
        label="Ethereum",
        chain_id=1,
        rpc_url="https://eth.llamarpc.com",
        explorer_url="https://etherscan.io",
        is_testnet=False,
    ),
    11155111: NetworkConfig(
        name="sepolia",
        label="Sepolia",
        chain_id=11155111,
        rpc_url="https://ethereum-sepolia-rpc.publicnode.com",
        explorer_url="https://sepolia.etherscan.io",
    ),
    84532: NetworkConfig(
        name="base-sepolia",
        label="Base Sepolia",
        chain_id=84532,
        rpc_url="https://sepolia.base.org",
        explorer_url="https://sepolia.basescan.org",
    ),
    43113: NetworkConfig(
        name="fuji",
        label="Avalanche Fuji",
        chain_id=43113,
        rpc_url="https://api.avax-test.network/ext/bc/C/rpc",
        explorer_url="https://testnet.snowtrace.io",
        native_symbol="AVAX",
    ),
}


# ======================
# CCIP destinations
# ======================

CCIP_LANES: dict[str, CcipLane] = {
    "baseSepolia": CcipLane(
        key="baseSepolia",
        name="Base Sepolia",
        selector=10344971235874465080,
        chain_id=84532,
        wrapped_zusd="0xae4f4c9997f6d3ec6378e7365b5e587126907306",
    ),
    "fuji": CcipLane(
        key="fuji",
        name="Avalanche Fuji",
        selector=14767482510784806043,
        chain_id=43113,
        wrapped_zusd="0x2b0f837b3a3d7210e296529c99ce46f5d1d90043",
    ),
}


def get_network(chain_id: int) -> Optional[NetworkConfig]:
    """Get network by chain ID."""
    return NETWORKS.get(chain_id)


def network_label(chain_id: int) -> str:
    """Human-readable network name, falling back to the raw chain ID."""
    network = NETWORKS.get(chain_id)
    return network.label if network else f"chain-{chain_id}"


def find_lane(destination) -> Optional[CcipLane]:
    """Resolve a lane by key ("fuji") or by chain selector (int or decimal string)."""
    if isinstance(destination, str) and destination in CCIP_LANES:
        return CCIP_LANES[destination]
    try:
        selector = int(destination)
    except (TypeError, ValueError):
        return None
    for lane in CCIP_LANES.values():
        if lane.selector == selector:
            return lane
    return None
