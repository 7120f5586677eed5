"""Wallet boundary: injected provider and signing identities."""

from zephyra.wallet.provider import (
    ACCOUNTS_CHANGED,
    CHAIN_CHANGED,
    LocalWalletProvider,
    WalletProvider,
)
from zephyra.wallet.signer import (
    LocalAccountSigner,
    ProviderRpcError,
    ReadOnlyConnection,
    Signer,
)

__all__ = [
    "ACCOUNTS_CHANGED",
    "CHAIN_CHANGED",
    "LocalWalletProvider",
    "WalletProvider",
    "LocalAccountSigner",
    "ProviderRpcError",
    "ReadOnlyConnection",
    "Signer",
]
