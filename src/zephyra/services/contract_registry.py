"""Contract handle registry.

Maps a logical contract name and a calling identity to an invocable
handle. Writes go through the session signer, reads through a read-only
connection. Handles are built per call and never cached, so an identity
change can never leak a stale signer.
"""

import logging
from typing import Any, Optional, Union

from web3 import AsyncWeb3
from web3.exceptions import ABIFunctionNotFound

from zephyra.abis import abi_for
from zephyra.config import Settings
from zephyra.errors import MissingAddress, MissingCapability, PreconditionFailed
from zephyra.wallet.signer import ReadOnlyConnection, Signer, wait_for_receipt

logger = logging.getLogger(__name__)

CallingIdentity = Union[Signer, ReadOnlyConnection]


class ContractHandle:
    """A contract bound to one calling identity."""

    def __init__(
        self,
        name: str,
        address: str,
        abi: list,
        identity: CallingIdentity,
        poll_interval: float = 2.0,
    ):
        self.name = name
        self.address = AsyncWeb3.to_checksum_address(address)
        self.identity = identity
        self._poll_interval = poll_interval
        self._contract = identity.web3.eth.contract(address=self.address, abi=abi)

    @property
    def can_sign(self) -> bool:
        return isinstance(self.identity, Signer)

    def _function(self, fn: str, args: tuple):
        try:
            return getattr(self._contract.functions, fn)(*args)
        except (ABIFunctionNotFound, AttributeError) as e:
            raise MissingCapability(f"{self.name} has no function {fn}") from e

    async def call(
        self,
        fn: str,
        *args: Any,
        value: Optional[int] = None,
        sender: Optional[str] = None,
    ) -> Any:
        """Read-only call (eth_call)."""
        params: dict[str, Any] = {}
        if sender:
            params["from"] = AsyncWeb3.to_checksum_address(sender)
        if value:
            params["value"] = int(value)
        return await self._function(fn, args).call(params)

    async def transact(self, fn: str, *args: Any, value: int = 0) -> str:
        """Build, sign and submit a state-changing call; returns the tx hash."""
        if not isinstance(self.identity, Signer):
            raise PreconditionFailed(f"{self.name} handle is read-only; cannot call {fn}")
        tx = await self._function(fn, args).build_transaction(
            {"from": self.identity.address, "value": int(value)}
        )
        return await self.identity.send_transaction(tx)

    async def wait(self, tx_hash: str) -> dict:
        """Block until ``tx_hash`` is mined; raises if it reverted."""
        return await wait_for_receipt(self.identity.web3, tx_hash, self._poll_interval)

    async def get_logs(self, topics: list, from_block: int = 0, to_block: Any = "latest") -> list:
        """Raw logs emitted by this contract matching ``topics``."""
        return await self.identity.web3.eth.get_logs(
            {
                "address": self.address,
                "topics": topics,
                "fromBlock": from_block,
                "toBlock": to_block,
            }
        )


class ContractRegistry:
    """Resolves logical names (zusd, vault, nft, messenger, WETH, ...) to handles."""

    def __init__(self, addresses: dict[str, str], poll_interval: float = 2.0):
        self._addresses = {name: addr for name, addr in addresses.items() if addr}
        self._poll_interval = poll_interval

    @classmethod
    def from_settings(cls, settings: Settings) -> "ContractRegistry":
        return cls(settings.contract_addresses(), settings.receipt_poll_interval)

    def has(self, name: str) -> bool:
        return name in self._addresses

    def address(self, name: str) -> str:
        """Configured address for ``name``.

        Raises:
            MissingAddress: If the active deployment has no address for it
        """
        address = self._addresses.get(name)
        if not address:
            raise MissingAddress(f"No address configured for contract '{name}'")
        return AsyncWeb3.to_checksum_address(address)

    def handle(self, name: str, identity: CallingIdentity) -> ContractHandle:
        return ContractHandle(
            name,
            self.address(name),
            abi_for(name),
            identity,
            poll_interval=self._poll_interval,
        )
