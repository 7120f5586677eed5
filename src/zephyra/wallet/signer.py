"""Signing identities and read-only connections.

A ``Signer`` is what a connected wallet hands the client: an address plus
the ability to sign and submit transactions. The client never sees key
material; ``LocalAccountSigner`` keeps it inside the wallet layer.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Optional

from web3 import AsyncWeb3
from web3.exceptions import TransactionNotFound

logger = logging.getLogger(__name__)

# EIP-1193 "User Rejected Request"
USER_REJECTED_CODE = 4001


class ProviderRpcError(Exception):
    """Error raised by a wallet provider, with an EIP-1193 code."""

    def __init__(self, code: int, message: str):
        super().__init__(message)
        self.code = code

    @property
    def user_rejected(self) -> bool:
        return self.code == USER_REJECTED_CODE


class TransactionReverted(Exception):
    """Receipt came back with status 0."""

    def __init__(self, tx_hash: str):
        super().__init__(f"Transaction {tx_hash} failed (reverted)")
        self.tx_hash = tx_hash


@dataclass(frozen=True)
class ReadOnlyConnection:
    """Network connection used for queries only."""

    web3: AsyncWeb3

    @classmethod
    def from_url(cls, rpc_url: str, timeout: float = 10.0) -> "ReadOnlyConnection":
        provider = AsyncWeb3.AsyncHTTPProvider(rpc_url, request_kwargs={"timeout": timeout})
        return cls(web3=AsyncWeb3(provider))


class Signer(ABC):
    """A wallet account able to sign and submit transactions."""

    address: str
    web3: AsyncWeb3

    @abstractmethod
    async def send_transaction(self, tx: dict) -> str:
        """Sign and broadcast ``tx``; return the transaction hash (0x hex)."""


class LocalAccountSigner(Signer):
    """Signer backed by an in-memory eth-account key.

    ``confirm`` plays the role of the wallet prompt: returning False rejects
    the request with EIP-1193 code 4001.
    """

    def __init__(
        self,
        account,
        web3: AsyncWeb3,
        confirm: Optional[Callable[[dict], bool]] = None,
    ):
        self._account = account
        self.web3 = web3
        self.address = AsyncWeb3.to_checksum_address(account.address)
        self._confirm = confirm

    async def send_transaction(self, tx: dict) -> str:
        if self._confirm is not None and not self._confirm(tx):
            raise ProviderRpcError(USER_REJECTED_CODE, "User rejected the request.")

        tx_params = dict(tx)
        tx_params.setdefault("from", self.address)

        if "nonce" not in tx_params:
            tx_params["nonce"] = await self.web3.eth.get_transaction_count(self.address, "pending")

        if "chainId" not in tx_params:
            tx_params["chainId"] = await self.web3.eth.chain_id

        if "gas" not in tx_params:
            tx_params["gas"] = await self.web3.eth.estimate_gas(tx_params)

        if "gasPrice" not in tx_params and "maxFeePerGas" not in tx_params:
            tx_params["gasPrice"] = await self.web3.eth.gas_price

        signed_tx = self._account.sign_transaction(tx_params)

        # eth-account >= 0.13 uses raw_transaction, older versions rawTransaction
        raw_tx = getattr(signed_tx, "raw_transaction", None) or signed_tx.rawTransaction
        tx_hash = await self.web3.eth.send_raw_transaction(raw_tx)
        tx_hash_hex = AsyncWeb3.to_hex(tx_hash)

        logger.info(f"Transaction sent: {tx_hash_hex} from {self.address[:10]}...")
        return tx_hash_hex


async def wait_for_receipt(
    web3: AsyncWeb3,
    tx_hash: str,
    poll_interval: float = 2.0,
) -> dict[str, Any]:
    """Poll until the transaction is mined.

    There is no client-side timeout: a stalled node suspends the caller
    until it answers.

    Raises:
        TransactionReverted: If the receipt status is 0
    """
    while True:
        try:
            receipt = await web3.eth.get_transaction_receipt(tx_hash)
        except TransactionNotFound:
            receipt = None

        if receipt is not None:
            if receipt["status"] == 0:
                raise TransactionReverted(tx_hash)
            return dict(receipt)

        await asyncio.sleep(poll_interval)
