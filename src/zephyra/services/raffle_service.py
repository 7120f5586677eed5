"""NFT raffle client.

The raffle lives on the NFT contract: entering costs exactly the on-chain
entry fee and each address may hold one ticket per round. Winner
selection happens on-chain; the client only reads the result.
"""

import asyncio
import logging
from typing import Optional

from zephyra.abis import ZERO_ADDRESS
from zephyra.amounts import from_base_units, shorten_address
from zephyra.errors import NotEligible, PartialReadFailure, ZephyraError
from zephyra.models.nfts import RaffleState, RaffleStatus, RaffleStatusResult
from zephyra.models.operations import TransactionOutcome
from zephyra.services.contract_registry import CallingIdentity, ContractHandle
from zephyra.services.transaction_orchestrator import ActionPlan, TransactionOrchestrator

logger = logging.getLogger(__name__)

NATIVE_DECIMALS = 18


class RaffleService:
    """Reads raffle state and enters the raffle."""

    def __init__(
        self,
        orchestrator: TransactionOrchestrator,
        identity: CallingIdentity,
        contract: str = "nft",
    ):
        self.orchestrator = orchestrator
        self.session_manager = orchestrator.session_manager
        self.registry = orchestrator.registry
        self.identity = identity
        self.contract = contract

    def _handle(self, identity: Optional[CallingIdentity] = None) -> ContractHandle:
        return self.registry.handle(self.contract, identity or self.identity)

    async def get_entry_fee(self, identity: Optional[CallingIdentity] = None) -> int:
        """Entry fee in wei."""
        return int(await self._handle(identity).call("getEntryFee"))

    async def get_players(self, identity: Optional[CallingIdentity] = None) -> list[str]:
        return [str(p) for p in await self._handle(identity).call("getAllPlayers")]

    async def get_recent_winner(self, identity: Optional[CallingIdentity] = None) -> Optional[str]:
        """Last winner, or None before the first draw."""
        winner = await self._handle(identity).call("getRecentWinner")
        if not winner or str(winner).lower() == ZERO_ADDRESS:
            return None
        return str(winner)

    async def get_raffle_state(self, identity: Optional[CallingIdentity] = None) -> RaffleState:
        return RaffleState.from_raw(await self._handle(identity).call("getRaffleState"))

    async def status(self, address: Optional[str] = None) -> RaffleStatusResult:
        """Fee, players, winner and state in one read; ``address`` marks entry."""
        if address is None:
            session = self.session_manager.session
            address = session.address if session else None

        try:
            fee, players, winner, state = await asyncio.gather(
                self.get_entry_fee(),
                self.get_players(),
                self.get_recent_winner(),
                self.get_raffle_state(),
            )
        except ZephyraError as e:
            return RaffleStatusResult(**RaffleStatusResult.error_fields(e))
        except Exception as e:
            failure = PartialReadFailure(f"Raffle read failed: {e}")
            return RaffleStatusResult(**RaffleStatusResult.error_fields(failure))

        has_entered = bool(address) and address.lower() in {p.lower() for p in players}
        return RaffleStatusResult(
            success=True,
            status=RaffleStatus(
                state=state,
                entry_fee=from_base_units(fee, NATIVE_DECIMALS),
                entry_fee_raw=fee,
                players=players,
                recent_winner=winner,
                has_entered=has_entered,
            ),
        )

    async def try_luck(self) -> TransactionOutcome:
        """Enter the current round, paying exactly the entry fee."""
        try:
            session = self.session_manager.require_session()
            try:
                fee, players, state = await asyncio.gather(
                    self.get_entry_fee(session.signer),
                    self.get_players(session.signer),
                    self.get_raffle_state(session.signer),
                )
            except ZephyraError:
                raise
            except Exception as e:
                raise PartialReadFailure(f"Raffle read failed: {e}") from e

            if state != RaffleState.OPEN:
                raise NotEligible("Raffle is closed")
            if session.address.lower() in {p.lower() for p in players}:
                raise NotEligible("Already entered in this round")
        except ZephyraError as e:
            logger.warning(f"Raffle entry rejected: {e}")
            return TransactionOutcome.failure("try_luck", e)

        logger.info(f"Entering raffle as {shorten_address(session.address)}")
        return await self.orchestrator.execute(
            ActionPlan(action="try_luck", target=self.contract, function="tryLuck", value=fee)
        )
