"""Tests for the market scanner and liquidation entry point."""

from decimal import Decimal

import pytest

from tests.conftest import OTHER, THIRD, USER, VAULT, WBTC, WETH
from zephyra.amounts import UINT256_MAX
from zephyra.errors import ErrorKind
from zephyra.services.dashboard_service import health_factor_view
from zephyra.services.market_service import MarketService, is_liquidatable

ONE = 10**18

HEALTH = {USER: ONE // 2, OTHER: ONE // 2, THIRD: UINT256_MAX}
MINTED = {USER: 100 * ONE, OTHER: 300 * ONE, THIRD: 0}
COLLATERAL = {
    (USER, WETH): ONE,
    (USER, WBTC): 0,
    (OTHER, WETH): 2 * ONE,
    (OTHER, WBTC): 10_000_000,
    (THIRD, WETH): 0,
    (THIRD, WBTC): 0,
}


@pytest.fixture
def market(registry):
    vault = registry["vault"]
    vault.on("getUsers", [USER, OTHER, THIRD])
    vault.on("getHealthFactor", lambda user: HEALTH[user])
    vault.on("getMintedZusd", lambda user: MINTED[user])
    vault.on("getUserCollateralBalance", lambda user, token: COLLATERAL[(user, token)])
    registry["zusd"].on("allowance", 0)
    return registry


@pytest.fixture
def service(orchestrator, settings):
    return MarketService(orchestrator, identity=object(), settings=settings)


class TestEligibility:
    """Tests for is_liquidatable."""

    def test_below_one_is_liquidatable(self):
        assert is_liquidatable(health_factor_view(ONE // 2), OTHER, USER)

    def test_self_never_liquidatable(self):
        mixed_case = "0xAbCdEf0000000000000000000000000000000001"

        assert not is_liquidatable(health_factor_view(ONE // 2), mixed_case, mixed_case.lower())

    def test_healthy_and_unbounded_not_liquidatable(self):
        assert not is_liquidatable(health_factor_view(ONE), OTHER, USER)
        assert not is_liquidatable(health_factor_view(UINT256_MAX), OTHER, USER)

    def test_no_caller(self):
        assert is_liquidatable(health_factor_view(ONE // 2), OTHER, None)


class TestListParticipants:
    """Tests for MarketService.list_participants."""

    @pytest.mark.asyncio
    async def test_order_and_flags(self, connected, market, service):
        result = await service.list_participants()

        assert result.success
        assert [p.address for p in result.participants] == [USER, OTHER, THIRD]
        assert [p.liquidatable for p in result.participants] == [False, True, False]

        other = result.participants[1]
        assert other.minted_debt == Decimal(300)
        assert [(c.symbol, c.amount) for c in other.collateral] == [
            ("WETH", Decimal(2)),
            ("WBTC", Decimal("0.1")),
        ]
        assert result.participants[2].health_factor.unbounded

    @pytest.mark.asyncio
    async def test_without_session_nobody_is_self(self, market, service):
        result = await service.list_participants()

        assert [p.liquidatable for p in result.participants] == [True, True, False]

    @pytest.mark.asyncio
    async def test_failed_position_fails_listing(self, market, service):
        market["vault"].on("getMintedZusd", lambda user: RuntimeError("rpc") if user == OTHER else 0)

        result = await service.list_participants()

        assert not result.success
        assert result.error_kind == ErrorKind.PARTIAL_READ_FAILURE
        assert result.participants == []

    @pytest.mark.asyncio
    async def test_protocol_stats(self, market, service):
        result = await service.protocol_stats()

        stats = result.stats
        assert stats.participants == 3
        assert stats.total_minted == Decimal(400)
        assert stats.total_collateral == {"WETH": Decimal(3), "WBTC": Decimal("0.1")}
        assert stats.liquidatable_positions == 2
        assert stats.supported_chains == 2


class TestLiquidate:
    """Tests for MarketService.liquidate."""

    @pytest.mark.asyncio
    async def test_liquidates_eligible_position(self, connected, market, service):
        outcome = await service.liquidate(OTHER, "WETH", "50")

        assert outcome.success
        assert market.writes == [("zusd", "approve"), ("vault", "liquidate")]
        assert market["zusd"].sent == [("approve", (VAULT, 50 * ONE), 0)]
        assert market["vault"].sent == [("liquidate", (WETH, OTHER, 50 * ONE), 0)]

    @pytest.mark.asyncio
    async def test_self_rejected(self, connected, market, service):
        outcome = await service.liquidate(USER, "WETH", "50")

        assert outcome.error_kind == ErrorKind.NOT_ELIGIBLE
        assert market.writes == []

    @pytest.mark.asyncio
    async def test_recovered_position_rejected(self, connected, market, service):
        """Health factor is re-read at submission time."""
        market["vault"].on("getHealthFactor", lambda user: 2 * ONE)

        outcome = await service.liquidate(OTHER, "WETH", "50")

        assert outcome.error_kind == ErrorKind.NOT_ELIGIBLE
        assert market.writes == []

    @pytest.mark.asyncio
    async def test_invalid_amount(self, connected, market, service):
        outcome = await service.liquidate(OTHER, "WETH", "-1")

        assert outcome.error_kind == ErrorKind.INVALID_AMOUNT
        assert market.journal == []
