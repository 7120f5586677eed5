"""Pytest configuration and fixtures.

Contract access is replaced by in-memory handles that record every read
and write, so tests can assert exactly which calls reached the chain and
in what order.
"""

import os
from typing import Any, Callable, Optional

import pytest
import pytest_asyncio

# Set test environment
os.environ["ZEPHYRA_ENVIRONMENT"] = "test"
os.environ["ZEPHYRA_DEBUG"] = "true"

from zephyra.config import Settings
from zephyra.errors import MissingAddress
from zephyra.models.assets import AssetDescriptor
from zephyra.services.asset_catalog import AssetCatalog
from zephyra.services.session_manager import SessionManager
from zephyra.services.transaction_orchestrator import TransactionOrchestrator
from zephyra.wallet.provider import WalletProvider
from zephyra.wallet.signer import USER_REJECTED_CODE, ProviderRpcError, Signer

SEPOLIA = 11155111

# Digit-only addresses are their own checksum form
ZUSD = "0x" + "1" * 40
VAULT = "0x" + "2" * 40
WETH = "0x" + "3" * 40
WBTC = "0x" + "4" * 40
NFT = "0x" + "5" * 40
ROUTER = "0x" + "6" * 40
USER = "0x" + "7" * 40
OTHER = "0x" + "8" * 40
THIRD = "0x" + "9" * 40

ADDRESSES = {
    "zusd": ZUSD,
    "vault": VAULT,
    "WETH": WETH,
    "WBTC": WBTC,
    "nft": NFT,
    "messenger": ROUTER,
}

_MISSING = object()


class FakeSigner(Signer):
    """Signer that never touches a node."""

    def __init__(self, address: str):
        self.address = address
        self.web3 = None

    async def send_transaction(self, tx: dict) -> str:
        raise AssertionError("FakeSigner cannot send transactions")


class FakeHandle:
    """Contract handle with scripted reads and recorded writes.

    ``reads`` maps a function name to a value, an exception instance, or a
    callable receiving the call arguments.
    """

    def __init__(self, name: str, address: str, journal: list):
        self.name = name
        self.address = address
        self.reads: dict[str, Any] = {}
        self.logs: list[dict] = []
        self.calls: list[tuple] = []
        self.sent: list[tuple] = []
        self.log_queries: list[list] = []
        self.transact_error: Optional[Exception] = None
        self.wait_error: Optional[Exception] = None
        self._journal = journal

    def on(self, fn: str, result: Any) -> "FakeHandle":
        self.reads[fn] = result
        return self

    async def call(self, fn: str, *args: Any, value: Optional[int] = None, sender: Optional[str] = None) -> Any:
        self.calls.append((fn, args, value))
        self._journal.append(("call", self.name, fn))
        result = self.reads.get(fn, _MISSING)
        if result is _MISSING:
            raise RuntimeError(f"unexpected read {self.name}.{fn}")
        if isinstance(result, Exception):
            raise result
        if callable(result):
            result = result(*args)
            if isinstance(result, Exception):
                raise result
        return result

    async def transact(self, fn: str, *args: Any, value: int = 0) -> str:
        self._journal.append(("transact", self.name, fn))
        if self.transact_error is not None:
            raise self.transact_error
        self.sent.append((fn, args, value))
        return "0x" + format(len(self._journal), "064x")

    async def wait(self, tx_hash: str) -> dict:
        if self.wait_error is not None:
            raise self.wait_error
        return {"status": 1, "transactionHash": tx_hash}

    async def get_logs(self, topics: list, from_block: int = 0, to_block: Any = "latest") -> list:
        self.log_queries.append(topics)
        return list(self.logs)


class FakeRegistry:
    """ContractRegistry stand-in returning one FakeHandle per contract."""

    def __init__(self, addresses: Optional[dict[str, str]] = None):
        self.journal: list[tuple] = []
        self._addresses = dict(ADDRESSES if addresses is None else addresses)
        self.handles = {
            name: FakeHandle(name, address, self.journal)
            for name, address in self._addresses.items()
        }
        self.identities: list[tuple] = []

    def has(self, name: str) -> bool:
        return name in self._addresses

    def address(self, name: str) -> str:
        if name not in self._addresses:
            raise MissingAddress(f"No address configured for contract '{name}'")
        return self._addresses[name]

    def handle(self, name: str, identity: Any) -> FakeHandle:
        self.address(name)
        self.identities.append((name, identity))
        return self.handles[name]

    def __getitem__(self, name: str) -> FakeHandle:
        return self.handles[name]

    @property
    def writes(self) -> list[tuple]:
        return [(name, fn) for kind, name, fn in self.journal if kind == "transact"]


class FakeProvider(WalletProvider):
    """Scriptable EIP-1193 provider."""

    def __init__(self, accounts: list[str], chain_id: int = SEPOLIA):
        self.accounts = list(accounts)
        self.chain_id = chain_id
        self.reject = False
        self.listeners: dict[str, list[Callable]] = {}
        self.requests: list[str] = []

    async def request(self, method: str, params: Optional[list] = None) -> Any:
        self.requests.append(method)
        if method == "eth_requestAccounts":
            if self.reject:
                raise ProviderRpcError(USER_REJECTED_CODE, "User rejected the request.")
            return list(self.accounts)
        if method == "eth_chainId":
            return hex(self.chain_id)
        raise ProviderRpcError(4200, f"Unsupported method: {method}")

    def on(self, event: str, listener: Callable) -> None:
        self.listeners.setdefault(event, []).append(listener)

    def remove_listener(self, event: str, listener: Callable) -> None:
        self.listeners.get(event, []).remove(listener)

    def signer_for(self, address: str) -> Signer:
        return FakeSigner(address)

    def emit(self, event: str, payload: Any) -> None:
        for listener in list(self.listeners.get(event, [])):
            listener(payload)


class FakeNavigator:
    def __init__(self, view: str = "/"):
        self.view = view
        self.visited: list[str] = []

    def current_view(self) -> str:
        return self.view

    def navigate(self, view: str) -> None:
        self.visited.append(view)
        self.view = view


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from any local .env file."""
    return Settings(
        _env_file=None,
        chain_id=SEPOLIA,
        zusd_address=ZUSD,
        vault_address=VAULT,
        weth_address=WETH,
        wbtc_address=WBTC,
        nft_address=NFT,
        ccip_router_address=ROUTER,
        receipt_poll_interval=0,
    )


@pytest.fixture
def registry() -> FakeRegistry:
    return FakeRegistry()


@pytest.fixture
def assets() -> AssetCatalog:
    return AssetCatalog(
        AssetDescriptor(symbol="ZUSD", contract_address=ZUSD, decimals=18),
        [
            AssetDescriptor(symbol="WETH", contract_address=WETH, decimals=18),
            AssetDescriptor(symbol="WBTC", contract_address=WBTC, decimals=8),
        ],
    )


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider([USER])


@pytest.fixture
def session_manager(provider, settings) -> SessionManager:
    return SessionManager(provider, settings=settings)


@pytest_asyncio.fixture
async def connected(session_manager) -> SessionManager:
    """Session manager with USER connected on Sepolia."""
    result = await session_manager.connect()
    assert result.success
    return session_manager


@pytest.fixture
def orchestrator(session_manager, registry, assets) -> TransactionOrchestrator:
    return TransactionOrchestrator(session_manager, registry, assets)
