"""Tests for the session manager."""

import pytest

from tests.conftest import OTHER, SEPOLIA, USER, FakeNavigator, FakeProvider
from zephyra.errors import ErrorKind, PreconditionFailed
from zephyra.services.session_manager import DASHBOARD_VIEW, SessionManager
from zephyra.wallet.provider import ACCOUNTS_CHANGED, CHAIN_CHANGED


class TestConnect:
    """Tests for connect/disconnect."""

    @pytest.mark.asyncio
    async def test_connect_builds_session(self, session_manager):
        result = await session_manager.connect()

        assert result.success
        assert result.session.address == USER
        assert result.session.network_id == SEPOLIA
        assert result.session.network_label == "Sepolia"
        assert session_manager.is_connected
        assert session_manager.session.signer.address == USER
        assert not session_manager.connecting

    @pytest.mark.asyncio
    async def test_no_provider(self, settings):
        manager = SessionManager(None, settings=settings)

        result = await manager.connect()

        assert not result.success
        assert result.error_kind == ErrorKind.NO_WALLET_PROVIDER
        assert manager.session is None

    @pytest.mark.asyncio
    async def test_user_rejection(self, provider, session_manager):
        provider.reject = True

        result = await session_manager.connect()

        assert not result.success
        assert result.error_kind == ErrorKind.USER_REJECTED
        assert session_manager.session is None
        assert not session_manager.connecting

    @pytest.mark.asyncio
    async def test_empty_account_list_is_connection_error(self, settings):
        manager = SessionManager(FakeProvider([]), settings=settings)

        result = await manager.connect()

        assert result.error_kind == ErrorKind.CONNECTION_ERROR

    @pytest.mark.asyncio
    async def test_unknown_chain_gets_fallback_label(self, settings):
        manager = SessionManager(FakeProvider([USER], chain_id=999), settings=settings)

        result = await manager.connect()

        assert result.session.network_label == "chain-999"

    @pytest.mark.asyncio
    async def test_redirects_to_dashboard_once(self, provider, settings):
        navigator = FakeNavigator("/")
        manager = SessionManager(provider, navigator, settings)

        first = await manager.connect()
        second = await manager.connect()

        assert first.redirected
        assert not second.redirected
        assert navigator.visited == [DASHBOARD_VIEW]

    @pytest.mark.asyncio
    async def test_disconnect_clears_session_and_notifies(self, connected):
        seen = []
        connected.add_listener(seen.append)

        await connected.disconnect()

        assert connected.session is None
        assert seen == [None]


class TestNetworkGuard:
    """Tests for ensure_network."""

    @pytest.mark.asyncio
    async def test_wrong_network_rejected(self, settings):
        manager = SessionManager(FakeProvider([USER], chain_id=84532), settings=settings)
        await manager.connect()

        with pytest.raises(PreconditionFailed):
            manager.ensure_network(manager.session)

    @pytest.mark.asyncio
    async def test_guard_can_be_disabled(self, settings):
        settings.enforce_network = False
        manager = SessionManager(FakeProvider([USER], chain_id=84532), settings=settings)
        await manager.connect()

        manager.ensure_network(manager.session)

    def test_require_session_when_disconnected(self, session_manager):
        with pytest.raises(PreconditionFailed):
            session_manager.require_session()


class TestNotifications:
    """Tests for provider notification handling."""

    @pytest.mark.asyncio
    async def test_accounts_cleared_disconnects(self, provider, connected):
        await connected.start()
        try:
            provider.emit(ACCOUNTS_CHANGED, [])
            await connected.wait_idle()
            assert connected.session is None
        finally:
            await connected.stop()

    @pytest.mark.asyncio
    async def test_account_switch_rebuilds_session(self, provider, connected):
        await connected.start()
        try:
            provider.accounts = [OTHER]
            provider.emit(ACCOUNTS_CHANGED, [OTHER])
            await connected.wait_idle()
            assert connected.session.address == OTHER
        finally:
            await connected.stop()

    @pytest.mark.asyncio
    async def test_chain_change_rebuilds_session(self, provider, connected):
        await connected.start()
        try:
            provider.chain_id = 43113
            provider.emit(CHAIN_CHANGED, hex(43113))
            await connected.wait_idle()
            assert connected.session.network_id == 43113
            assert connected.session.network_label == "Avalanche Fuji"
        finally:
            await connected.stop()

    @pytest.mark.asyncio
    async def test_overlapping_notifications_resolve_to_latest(self, provider, connected):
        """Queued notifications are replayed one at a time."""
        seen = []
        connected.add_listener(lambda s: seen.append(s.address if s else None))
        await connected.start()
        try:
            provider.accounts = [OTHER]
            provider.emit(ACCOUNTS_CHANGED, [OTHER])
            provider.emit(CHAIN_CHANGED, hex(SEPOLIA))
            await connected.wait_idle()
        finally:
            await connected.stop()

        assert seen == [None, OTHER, None, OTHER]
        assert connected.session.address == OTHER

    @pytest.mark.asyncio
    async def test_start_subscribes_once(self, provider, session_manager):
        await session_manager.start()
        await session_manager.start()
        try:
            assert len(provider.listeners[ACCOUNTS_CHANGED]) == 1
        finally:
            await session_manager.stop()
        assert provider.listeners[ACCOUNTS_CHANGED] == []
