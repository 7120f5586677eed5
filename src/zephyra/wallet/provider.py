"""Wallet provider boundary.

``WalletProvider`` mirrors the EIP-1193 surface a browser wallet injects:
JSON-RPC style ``request`` calls plus ``accountsChanged`` / ``chainChanged``
notifications. The client consumes it and never implements wallet logic
of its own.

``LocalWalletProvider`` is a concrete provider over in-memory keys for the
CLI and scripting. Keys come from a hex private key or from a seed phrase
derived along m/44'/60'/0'/0/{index}.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

from eth_account import Account
from web3 import AsyncWeb3

from zephyra.chains import get_network
from zephyra.config import Settings
from zephyra.wallet.signer import (
    USER_REJECTED_CODE,
    LocalAccountSigner,
    ProviderRpcError,
    Signer,
)

logger = logging.getLogger(__name__)

ACCOUNTS_CHANGED = "accountsChanged"
CHAIN_CHANGED = "chainChanged"

# EIP-1193 "Unsupported Method" / EIP-3085 "Unrecognized chain"
UNSUPPORTED_METHOD_CODE = 4200
UNRECOGNIZED_CHAIN_CODE = 4902

Listener = Callable[[Any], None]


class WalletProvider(ABC):
    """Injected wallet, as seen by the client."""

    @abstractmethod
    async def request(self, method: str, params: Optional[list] = None) -> Any:
        """Send an EIP-1193 request (eth_requestAccounts, eth_chainId, ...)."""

    @abstractmethod
    def on(self, event: str, listener: Listener) -> None:
        """Subscribe to a provider notification."""

    @abstractmethod
    def remove_listener(self, event: str, listener: Listener) -> None:
        """Unsubscribe a listener registered with ``on``."""

    @abstractmethod
    def signer_for(self, address: str) -> Signer:
        """Signing identity for a connected account."""


def derive_private_key(mnemonic: str, index: int = 0) -> bytes:
    """Derive an EVM private key from a seed phrase (BIP44, coin type 60)."""
    from bip_utils import Bip39SeedGenerator, Bip44, Bip44Changes, Bip44Coins

    seed = Bip39SeedGenerator(mnemonic).Generate()
    bip44 = Bip44.FromSeed(seed, Bip44Coins.ETHEREUM)
    account = bip44.Purpose().Coin().Account(0).Change(Bip44Changes.CHAIN_EXT)
    return account.AddressIndex(index).PrivateKey().Raw().ToBytes()


class LocalWalletProvider(WalletProvider):
    """EIP-1193 style provider over local accounts.

    Only the active account is exposed, as browser wallets do. Switching
    account or chain emits the same notifications an extension would.
    """

    def __init__(
        self,
        accounts: list,
        rpc_urls: dict[int, str],
        chain_id: int,
        confirm: Optional[Callable[[dict], bool]] = None,
        http_timeout: float = 10.0,
    ):
        if not accounts:
            raise ValueError("LocalWalletProvider needs at least one account")
        if chain_id not in rpc_urls:
            raise ValueError(f"No RPC URL for chain {chain_id}")
        self._accounts = list(accounts)
        self._rpc_urls = dict(rpc_urls)
        self._chain_id = chain_id
        self._confirm = confirm
        self._http_timeout = http_timeout
        self._active = 0
        self._unlocked = False
        self._listeners: dict[str, list[Listener]] = {}
        self._web3_by_chain: dict[int, AsyncWeb3] = {}

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        confirm: Optional[Callable[[dict], bool]] = None,
    ) -> "LocalWalletProvider":
        """Build from ZEPHYRA_PRIVATE_KEY or ZEPHYRA_MNEMONIC."""
        if settings.private_key:
            accounts = [Account.from_key(settings.private_key)]
        elif settings.has_wallet:
            accounts = [
                Account.from_key(derive_private_key(settings.mnemonic, i))
                for i in range(max(1, settings.account_count))
            ]
        else:
            raise ValueError("No wallet configured: set ZEPHYRA_PRIVATE_KEY or ZEPHYRA_MNEMONIC")

        rpc_urls = {settings.chain_id: settings.rpc_url}
        return cls(
            accounts,
            rpc_urls,
            settings.chain_id,
            confirm=confirm,
            http_timeout=settings.http_timeout,
        )

    # ---- EIP-1193 ---------------------------------------------------------

    @property
    def chain_id(self) -> int:
        return self._chain_id

    @property
    def active_address(self) -> str:
        return AsyncWeb3.to_checksum_address(self._accounts[self._active].address)

    async def request(self, method: str, params: Optional[list] = None) -> Any:
        if method == "eth_requestAccounts":
            if self._confirm is not None and not self._confirm({"method": method}):
                raise ProviderRpcError(USER_REJECTED_CODE, "User rejected the request.")
            self._unlocked = True
            return [self.active_address]

        if method == "eth_accounts":
            return [self.active_address] if self._unlocked else []

        if method == "eth_chainId":
            return hex(self._chain_id)

        if method == "wallet_switchEthereumChain":
            target = int(params[0]["chainId"], 16)
            self.switch_chain(target)
            return None

        raise ProviderRpcError(UNSUPPORTED_METHOD_CODE, f"Unsupported method: {method}")

    def on(self, event: str, listener: Listener) -> None:
        self._listeners.setdefault(event, []).append(listener)

    def remove_listener(self, event: str, listener: Listener) -> None:
        listeners = self._listeners.get(event, [])
        if listener in listeners:
            listeners.remove(listener)

    def signer_for(self, address: str) -> Signer:
        for account in self._accounts:
            if account.address.lower() == address.lower():
                return LocalAccountSigner(account, self._web3(self._chain_id), self._confirm)
        raise ProviderRpcError(4100, f"Account {address} is not authorized")

    # ---- Wallet-side actions ---------------------------------------------

    def switch_account(self, index: int) -> None:
        """Change the active account and notify listeners."""
        if index < 0 or index >= len(self._accounts):
            raise IndexError("account index out of range")
        self._active = index
        logger.info(f"Wallet account switched to {self.active_address[:10]}...")
        self._emit(ACCOUNTS_CHANGED, [self.active_address] if self._unlocked else [])

    def switch_chain(self, chain_id: int, rpc_url: Optional[str] = None) -> None:
        """Change the active chain and notify listeners."""
        if rpc_url:
            self._rpc_urls[chain_id] = rpc_url
        if chain_id not in self._rpc_urls:
            network = get_network(chain_id)
            if network is None:
                raise ProviderRpcError(UNRECOGNIZED_CHAIN_CODE, f"Unrecognized chain {chain_id}")
            self._rpc_urls[chain_id] = network.rpc_url
        self._chain_id = chain_id
        logger.info(f"Wallet chain switched to {chain_id}")
        self._emit(CHAIN_CHANGED, hex(chain_id))

    def lock(self) -> None:
        """Lock the wallet: it reports zero accounts."""
        self._unlocked = False
        self._emit(ACCOUNTS_CHANGED, [])

    def _emit(self, event: str, payload: Any) -> None:
        for listener in list(self._listeners.get(event, [])):
            listener(payload)

    def _web3(self, chain_id: int) -> AsyncWeb3:
        if chain_id not in self._web3_by_chain:
            provider = AsyncWeb3.AsyncHTTPProvider(
                self._rpc_urls[chain_id],
                request_kwargs={"timeout": self._http_timeout},
            )
            self._web3_by_chain[chain_id] = AsyncWeb3(provider)
        return self._web3_by_chain[chain_id]
