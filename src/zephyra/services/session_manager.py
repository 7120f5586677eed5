"""Session manager.

Owns the connection to the user's wallet and the single ``Session`` every
other component reads. Only this class mutates the session.

Provider notifications (account or network changes) arrive outside any
request; they are queued and replayed by one consumer task so overlapping
notifications resync one at a time.
"""

import asyncio
import inspect
import logging
from typing import Any, Callable, Optional, Protocol

from zephyra.amounts import shorten_address
from zephyra.chains import network_label
from zephyra.config import Settings, get_settings
from zephyra.errors import (
    NoWalletProvider,
    PreconditionFailed,
    UserRejected,
    WalletConnectionError,
    ZephyraError,
)
from zephyra.models.session import ConnectResult, Session
from zephyra.wallet.provider import ACCOUNTS_CHANGED, CHAIN_CHANGED, WalletProvider
from zephyra.wallet.signer import ProviderRpcError

logger = logging.getLogger(__name__)

DASHBOARD_VIEW = "/dashboard"

SessionListener = Callable[[Optional[Session]], Any]


class Navigator(Protocol):
    """UI routing hook; the client only asks where it is and where to go."""

    def current_view(self) -> str: ...

    def navigate(self, view: str) -> None: ...


class SessionManager:
    """Connect, disconnect and keep the session in sync with the wallet."""

    def __init__(
        self,
        provider: Optional[WalletProvider],
        navigator: Optional[Navigator] = None,
        settings: Optional[Settings] = None,
    ):
        self._provider = provider
        self._navigator = navigator
        self._settings = settings or get_settings()
        self._session: Optional[Session] = None
        self._connecting = False
        self._listeners: list[SessionListener] = []
        self._queue: Optional[asyncio.Queue] = None
        self._consumer: Optional[asyncio.Task] = None

    # ---- State ------------------------------------------------------------

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def connecting(self) -> bool:
        return self._connecting

    @property
    def is_connected(self) -> bool:
        return self._session is not None

    def require_session(self) -> Session:
        """Current session, or PreconditionFailed when disconnected."""
        if self._session is None:
            raise PreconditionFailed("Wallet not connected")
        return self._session

    def ensure_network(self, session: Session) -> None:
        """Reject writes from the wrong chain when enforcement is on."""
        if self._settings.enforce_network and session.network_id != self._settings.chain_id:
            raise PreconditionFailed(
                f"Wrong network: wallet is on {session.network_label}, "
                f"switch to {network_label(self._settings.chain_id)}"
            )

    def add_listener(self, listener: SessionListener) -> None:
        """Observe session changes (new session or None)."""
        self._listeners.append(listener)

    # ---- Connect / disconnect --------------------------------------------

    async def connect(self) -> ConnectResult:
        """Request account access and (re)build the session."""
        try:
            session = await self._connect()
        except ZephyraError as e:
            logger.warning(f"Wallet connect failed: {e}")
            return ConnectResult(**ConnectResult.error_fields(e))

        redirected = self._redirect_to_dashboard()
        return ConnectResult(success=True, session=session.info(), redirected=redirected)

    async def _connect(self) -> Session:
        if self._provider is None:
            raise NoWalletProvider("No wallet provider detected")

        self._connecting = True
        try:
            accounts = await self._provider.request("eth_requestAccounts")
            if not accounts:
                raise WalletConnectionError("Wallet returned no accounts")
            address = accounts[0]
            chain_id = int(await self._provider.request("eth_chainId"), 16)
            signer = self._provider.signer_for(address)
        except ProviderRpcError as e:
            if e.user_rejected:
                raise UserRejected("Connection request rejected") from e
            raise WalletConnectionError(str(e)) from e
        except ZephyraError:
            raise
        except Exception as e:
            raise WalletConnectionError(f"Connection failed: {e}") from e
        finally:
            self._connecting = False

        session = Session(
            signer=signer,
            address=signer.address,
            network_id=chain_id,
            network_label=network_label(chain_id),
        )
        logger.info(f"WALLET: connected {shorten_address(session.address)} on {session.network_label}")
        await self._set_session(session)
        return session

    def _redirect_to_dashboard(self) -> bool:
        if self._navigator is None:
            return False
        if self._navigator.current_view() == DASHBOARD_VIEW:
            return False
        self._navigator.navigate(DASHBOARD_VIEW)
        return True

    async def disconnect(self) -> None:
        """Clear the session. Never fails."""
        if self._session is not None:
            logger.info(f"WALLET: disconnected {shorten_address(self._session.address)}")
        await self._set_session(None)

    async def _set_session(self, session: Optional[Session]) -> None:
        self._session = session
        for listener in list(self._listeners):
            try:
                result = listener(session)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Session listener failed")

    # ---- Provider notifications -------------------------------------------

    async def start(self) -> None:
        """Subscribe to provider notifications (once)."""
        if self._consumer is not None or self._provider is None:
            return
        self._queue = asyncio.Queue()
        self._provider.on(ACCOUNTS_CHANGED, self._on_accounts_changed)
        self._provider.on(CHAIN_CHANGED, self._on_chain_changed)
        self._consumer = asyncio.create_task(self._consume())
        logger.debug("Session manager subscribed to wallet notifications")

    async def stop(self) -> None:
        """Unsubscribe and stop the resync task."""
        if self._consumer is None:
            return
        self._provider.remove_listener(ACCOUNTS_CHANGED, self._on_accounts_changed)
        self._provider.remove_listener(CHAIN_CHANGED, self._on_chain_changed)
        self._consumer.cancel()
        await asyncio.gather(self._consumer, return_exceptions=True)
        self._consumer = None
        self._queue = None

    async def wait_idle(self) -> None:
        """Wait until every queued notification has been handled."""
        if self._queue is not None:
            await self._queue.join()

    def _on_accounts_changed(self, accounts: list) -> None:
        self._queue.put_nowait((ACCOUNTS_CHANGED, list(accounts or [])))

    def _on_chain_changed(self, chain_id: Any) -> None:
        self._queue.put_nowait((CHAIN_CHANGED, chain_id))

    async def _consume(self) -> None:
        while True:
            event, payload = await self._queue.get()
            try:
                await self._resync(event, payload)
            except Exception:
                logger.exception(f"Wallet resync failed for {event}")
            finally:
                self._queue.task_done()

    async def _resync(self, event: str, payload: Any) -> None:
        if event == ACCOUNTS_CHANGED and not payload:
            await self.disconnect()
            return

        # Account or network changed: drop the old session, then reconnect
        logger.info(f"WALLET: {event}, resyncing session")
        await self.disconnect()
        await self.connect()
