"""NFT discovery engine.

Ownership is enumerated in one of two ways, chosen once per contract by an
ERC-165 probe:

- ``EnumerableStrategy``: the contract implements ERC721Enumerable, so
  tokens are listed by index up to the wallet's balance.
- ``EventReplayStrategy``: otherwise mint events (``Transfer`` from the
  zero address) addressed to the wallet are replayed. Event history does
  not reflect later transfers, so every candidate is re-checked with
  ``ownerOf`` before it is included.

Both strategies stop at the same ``max_fetch`` bound. Metadata problems
never abort discovery; they produce a record with a placeholder image and
``decode_error`` set.
"""

import asyncio
import base64
import binascii
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional
from urllib.parse import unquote

import httpx

from zephyra.abis import ERC721_ENUMERABLE_INTERFACE_ID, TRANSFER_EVENT_TOPIC, ZERO_ADDRESS
from zephyra.amounts import shorten_address
from zephyra.config import Settings, get_settings
from zephyra.errors import PartialReadFailure, ZephyraError
from zephyra.models.nfts import DiscoveryStrategyKind, NFTDiscoveryResult, NFTRecord
from zephyra.services.contract_registry import CallingIdentity, ContractHandle, ContractRegistry

logger = logging.getLogger(__name__)

JSON_DATA_PREFIX = "data:application/json"
SVG_DATA_PREFIX = "data:image/svg+xml;base64,"


class MetadataError(Exception):
    """Token metadata could not be decoded."""


def address_topic(address: str) -> str:
    """Left-pad an address to a 32-byte log topic."""
    return "0x" + address.lower().replace("0x", "").rjust(64, "0")


def topic_to_int(topic: Any) -> int:
    if isinstance(topic, (bytes, bytearray)):
        return int.from_bytes(topic, "big")
    return int(str(topic), 16)


class MetadataResolver:
    """Decodes tokenURI documents and normalizes their image references."""

    def __init__(
        self,
        ipfs_gateway: str,
        placeholder_image: str,
        http_timeout: float = 10.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.ipfs_gateway = ipfs_gateway if ipfs_gateway.endswith("/") else ipfs_gateway + "/"
        self.placeholder_image = placeholder_image
        self.http_timeout = http_timeout
        self._http_client = http_client

    def gateway_url(self, reference: str) -> str:
        """ipfs://<cid>/path -> <gateway><cid>/path"""
        path = reference[len("ipfs://"):]
        if path.startswith("ipfs/"):
            path = path[len("ipfs/"):]
        return self.ipfs_gateway + path

    def resolve_image(self, image: Optional[str]) -> str:
        """Direct URL, then ipfs rewrite, then inline embedded data."""
        if not image or not isinstance(image, str):
            raise MetadataError("metadata has no image")
        image = image.strip()

        if image.startswith(("http://", "https://")):
            return image
        if image.startswith("ipfs://"):
            return self.gateway_url(image)
        if image.startswith("data:"):
            return image
        if image.lstrip().startswith("<svg") or image.lstrip().startswith("<?xml"):
            return SVG_DATA_PREFIX + base64.b64encode(image.encode()).decode()

        try:
            base64.b64decode(image, validate=True)
        except (binascii.Error, ValueError) as e:
            raise MetadataError(f"unrecognized image reference: {image[:32]}") from e
        return SVG_DATA_PREFIX + image

    async def load_document(self, token_uri: str) -> dict:
        """Decode (or fetch) the metadata JSON a tokenURI points at."""
        uri = token_uri.strip()
        try:
            if uri.startswith(JSON_DATA_PREFIX):
                header, _, payload = uri.partition(",")
                if header.endswith(";base64"):
                    text = base64.b64decode(payload).decode("utf-8")
                else:
                    text = unquote(payload)
                return self._parse(text)

            if uri.startswith("{"):
                return self._parse(uri)

            if uri.startswith("ipfs://"):
                return await self._fetch(self.gateway_url(uri))

            if uri.startswith(("http://", "https://")):
                return await self._fetch(uri)
        except (binascii.Error, UnicodeDecodeError) as e:
            raise MetadataError(f"invalid base64 metadata: {e}") from e

        raise MetadataError(f"unsupported tokenURI scheme: {uri[:32]}")

    async def _fetch(self, url: str) -> dict:
        try:
            if self._http_client is not None:
                response = await self._http_client.get(url)
            else:
                async with httpx.AsyncClient(timeout=self.http_timeout) as client:
                    response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise MetadataError(f"metadata fetch failed: {e}") from e
        return self._parse(response.text)

    @staticmethod
    def _parse(text: str) -> dict:
        try:
            document = json.loads(text)
        except json.JSONDecodeError as e:
            raise MetadataError(f"invalid metadata JSON: {e.msg}") from e
        if not isinstance(document, dict):
            raise MetadataError("metadata is not a JSON object")
        return document

    async def build_record(self, token_id: int, token_uri: str) -> NFTRecord:
        try:
            document = await self.load_document(token_uri)
            image = self.resolve_image(document.get("image") or document.get("image_data"))
        except MetadataError as e:
            logger.debug(f"Metadata decode failed for token {token_id}: {e}")
            return self.placeholder(token_id, str(e))

        return NFTRecord(
            token_id=token_id,
            name=str(document.get("name") or f"#{token_id}"),
            description=str(document.get("description") or ""),
            image=image,
        )

    def placeholder(self, token_id: int, error: str) -> NFTRecord:
        return NFTRecord(
            token_id=token_id,
            name=f"#{token_id}",
            image=self.placeholder_image,
            decode_error=error,
        )


class NFTStrategy(ABC):
    """One way of listing the tokens a wallet owns."""

    kind: DiscoveryStrategyKind

    def __init__(self, nft: ContractHandle, resolver: MetadataResolver, max_fetch: int):
        self.nft = nft
        self.resolver = resolver
        self.max_fetch = max_fetch
        self.truncated = False

    @abstractmethod
    async def token_ids(self, owner: str) -> list[int]:
        """Token IDs currently owned by ``owner`` (bounded by max_fetch)."""

    async def discover(self, owner: str) -> list[NFTRecord]:
        token_ids = await self.token_ids(owner)
        return list(await asyncio.gather(*(self._record(t) for t in token_ids)))

    async def _record(self, token_id: int) -> NFTRecord:
        try:
            token_uri = await self.nft.call("tokenURI", token_id)
        except Exception as e:
            return self.resolver.placeholder(token_id, f"tokenURI failed: {e}")
        return await self.resolver.build_record(token_id, token_uri)


class EnumerableStrategy(NFTStrategy):
    """ERC721Enumerable: balanceOf + tokenOfOwnerByIndex."""

    kind = DiscoveryStrategyKind.ENUMERABLE

    async def token_ids(self, owner: str) -> list[int]:
        balance = int(await self.nft.call("balanceOf", owner))
        count = min(balance, self.max_fetch)
        self.truncated = balance > count
        ids = await asyncio.gather(
            *(self.nft.call("tokenOfOwnerByIndex", owner, i) for i in range(count))
        )
        return [int(i) for i in ids]


class EventReplayStrategy(NFTStrategy):
    """Mint-event replay with on-chain ownership re-verification."""

    kind = DiscoveryStrategyKind.EVENT_REPLAY

    def __init__(
        self,
        nft: ContractHandle,
        resolver: MetadataResolver,
        max_fetch: int,
        from_block: int = 0,
    ):
        super().__init__(nft, resolver, max_fetch)
        self.from_block = from_block

    async def candidates(self, owner: str) -> list[int]:
        logs = await self.nft.get_logs(
            [TRANSFER_EVENT_TOPIC, address_topic(ZERO_ADDRESS), address_topic(owner)],
            from_block=self.from_block,
        )
        seen: dict[int, None] = {}
        for log in logs:
            topics = log["topics"]
            if len(topics) < 4:
                continue
            seen[topic_to_int(topics[3])] = None
        return list(seen)

    async def token_ids(self, owner: str) -> list[int]:
        candidates = await self.candidates(owner)
        # Most recent mints are the likeliest to still be held
        self.truncated = len(candidates) > self.max_fetch
        if self.truncated:
            candidates = candidates[-self.max_fetch:]

        owners = await asyncio.gather(
            *(self.nft.call("ownerOf", token_id) for token_id in candidates),
            return_exceptions=True,
        )
        owned = []
        for token_id, current in zip(candidates, owners):
            # ownerOf reverts for burned tokens
            if isinstance(current, BaseException):
                continue
            if str(current).lower() == owner.lower():
                owned.append(token_id)
        return owned


class NFTDiscoveryEngine:
    """Picks a strategy per contract and returns normalized ownership lists."""

    def __init__(
        self,
        registry: ContractRegistry,
        identity: CallingIdentity,
        settings: Optional[Settings] = None,
        resolver: Optional[MetadataResolver] = None,
    ):
        self.registry = registry
        self.identity = identity
        self.settings = settings or get_settings()
        self.resolver = resolver or MetadataResolver(
            self.settings.ipfs_gateway,
            self.settings.nft_placeholder_image,
            self.settings.http_timeout,
        )
        self._kinds: dict[str, DiscoveryStrategyKind] = {}

    async def supports_enumeration(self, nft: ContractHandle) -> bool:
        """ERC-165 probe; any failure counts as 'not supported'."""
        try:
            return bool(await nft.call("supportsInterface", ERC721_ENUMERABLE_INTERFACE_ID))
        except Exception as e:
            logger.debug(f"supportsInterface probe failed on {nft.address}: {e}")
            return False

    async def select_strategy(self, contract: str = "nft") -> NFTStrategy:
        nft = self.registry.handle(contract, self.identity)
        kind = self._kinds.get(nft.address)
        if kind is None:
            enumerable = await self.supports_enumeration(nft)
            kind = DiscoveryStrategyKind.ENUMERABLE if enumerable else DiscoveryStrategyKind.EVENT_REPLAY
            self._kinds[nft.address] = kind
            logger.info(f"NFT {nft.address} discovery strategy: {kind.value}")

        if kind == DiscoveryStrategyKind.ENUMERABLE:
            return EnumerableStrategy(nft, self.resolver, self.settings.nft_max_fetch)
        return EventReplayStrategy(
            nft,
            self.resolver,
            self.settings.nft_max_fetch,
            from_block=self.settings.nft_from_block,
        )

    async def discover(self, owner: str, contract: str = "nft") -> NFTDiscoveryResult:
        """Tokens of ``contract`` currently owned by ``owner``."""
        try:
            strategy = await self.select_strategy(contract)
            records = await strategy.discover(owner)
        except ZephyraError as e:
            return NFTDiscoveryResult(owner=owner, **NFTDiscoveryResult.error_fields(e))
        except Exception as e:
            logger.warning(f"NFT discovery failed for {shorten_address(owner)}: {e}")
            failure = PartialReadFailure(f"NFT discovery failed: {e}")
            return NFTDiscoveryResult(owner=owner, **NFTDiscoveryResult.error_fields(failure))

        return NFTDiscoveryResult(
            success=True,
            owner=owner,
            contract_address=strategy.nft.address,
            strategy=strategy.kind,
            records=records,
            truncated=strategy.truncated,
        )
