"""Tests for the contract handle registry and asset catalog."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from web3 import AsyncWeb3

from tests.conftest import ADDRESSES, USER, VAULT, WBTC, WETH, FakeRegistry
from zephyra.errors import MissingAddress, MissingCapability, PreconditionFailed
from zephyra.services.asset_catalog import AssetCatalog
from zephyra.services.contract_registry import ContractRegistry
from zephyra.wallet.signer import ReadOnlyConnection, Signer

LOCAL_RPC = "http://127.0.0.1:8545"


class OfflineSigner(Signer):
    def __init__(self, web3):
        self.address = USER
        self.web3 = web3
        self.send_transaction = AsyncMock(return_value="0xabc")

    async def send_transaction(self, tx: dict) -> str:  # replaced per instance
        raise NotImplementedError


@pytest.fixture
def reader():
    return ReadOnlyConnection.from_url(LOCAL_RPC)


@pytest.fixture
def contracts():
    return ContractRegistry(dict(ADDRESSES, legacy=""))


class TestRegistry:
    """Tests for ContractRegistry."""

    def test_missing_address(self, contracts, reader):
        assert not contracts.has("legacy")
        with pytest.raises(MissingAddress):
            contracts.address("legacy")
        with pytest.raises(MissingAddress):
            contracts.handle("unknown", reader)

    def test_address_is_checksummed(self):
        contracts = ContractRegistry({"vault": "0xabcdef0000000000000000000000000000000001"})

        address = contracts.address("vault")

        assert AsyncWeb3.is_checksum_address(address)
        assert address.lower() == "0xabcdef0000000000000000000000000000000001"

    def test_handles_are_not_cached(self, contracts, reader):
        first = contracts.handle("vault", reader)
        second = contracts.handle("vault", reader)

        assert first is not second
        assert first.address == VAULT

    def test_read_only_handle_cannot_sign(self, contracts, reader):
        assert not contracts.handle("vault", reader).can_sign

    def test_unknown_function(self, contracts, reader):
        handle = contracts.handle("vault", reader)

        with pytest.raises(MissingCapability):
            handle._function("flashLoan", ())

    @pytest.mark.asyncio
    async def test_read_only_handle_rejects_writes(self, contracts, reader):
        handle = contracts.handle("vault", reader)

        with pytest.raises(PreconditionFailed):
            await handle.transact("mintZusd", 1)


class TestHandleCalls:
    """Tests for ContractHandle call/transact plumbing."""

    @pytest.mark.asyncio
    async def test_call_passes_sender_and_value(self, contracts, reader):
        handle = contracts.handle("messenger", reader)
        handle._contract = MagicMock()
        function = handle._contract.functions.ccipSend.return_value
        function.call = AsyncMock(return_value=b"\x01" * 32)

        result = await handle.call("ccipSend", 1, ("m",), value=5, sender=USER)

        assert result == b"\x01" * 32
        handle._contract.functions.ccipSend.assert_called_once_with(1, ("m",))
        function.call.assert_awaited_once_with({"from": USER, "value": 5})

    @pytest.mark.asyncio
    async def test_transact_goes_through_signer(self, contracts, reader):
        signer = OfflineSigner(reader.web3)
        handle = contracts.handle("vault", signer)
        handle._contract = MagicMock()
        function = handle._contract.functions.mintZusd.return_value
        function.build_transaction = AsyncMock(return_value={"to": VAULT, "data": "0x"})

        tx_hash = await handle.transact("mintZusd", 10)

        assert tx_hash == "0xabc"
        assert handle.can_sign
        function.build_transaction.assert_awaited_once_with({"from": USER, "value": 0})
        signer.send_transaction.assert_awaited_once_with({"to": VAULT, "data": "0x"})


class TestAssetCatalog:
    """Tests for AssetCatalog.load."""

    @pytest.mark.asyncio
    async def test_decimals_read_from_chain(self):
        registry = FakeRegistry()
        registry["WETH"].on("decimals", 18)
        registry["WBTC"].on("decimals", 8)

        catalog = await AssetCatalog.load(registry, identity=object())

        assert catalog.zusd.decimals == 18
        assert [(a.symbol, a.decimals) for a in catalog.collateral] == [("WETH", 18), ("WBTC", 8)]
        assert catalog.get_collateral("wbtc").contract_address == WBTC

    @pytest.mark.asyncio
    async def test_unconfigured_collateral_skipped(self):
        addresses = {name: a for name, a in ADDRESSES.items() if name != "WBTC"}
        registry = FakeRegistry(addresses)
        registry["WETH"].on("decimals", 18)

        catalog = await AssetCatalog.load(registry, identity=object())

        assert [a.contract_address for a in catalog.collateral] == [WETH]
        with pytest.raises(PreconditionFailed):
            catalog.get_collateral("WBTC")

    def test_zusd_is_not_collateral(self, assets):
        with pytest.raises(PreconditionFailed):
            assets.get_collateral("ZUSD")
