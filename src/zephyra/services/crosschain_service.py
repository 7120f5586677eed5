"""Cross-chain ZUSD transfers over Chainlink CCIP.

Sequence: validate, check balance, approve the router, quote the native
fee for the exact envelope, then ``ccipSend`` with exactly that fee.
Delivery on the destination chain is tracked in the CCIP explorer; this
module stops at submission.
"""

import logging
from typing import Optional, Union

from eth_abi import encode as abi_encode
from web3 import AsyncWeb3

from zephyra.abis import CCIP_EVM_EXTRA_ARGS_V1_TAG, ZERO_ADDRESS
from zephyra.amounts import from_base_units, parse_positive, shorten_address
from zephyra.chains import CCIP_LANES, CcipLane, find_lane
from zephyra.config import Settings, get_settings
from zephyra.errors import (
    InsufficientBalance,
    InvalidAmount,
    PreconditionFailed,
    TransactionFailed,
    TransactionStage,
    ZephyraError,
)
from zephyra.models.crosschain import (
    CrossChainDestination,
    CrossChainEnvelope,
    CrossChainQuote,
    CrossChainQuoteResult,
    CrossChainTransferResult,
    TokenAmount,
)
from zephyra.models.session import Session
from zephyra.services.transaction_orchestrator import ActionPlan, TokenSpend, TransactionOrchestrator

logger = logging.getLogger(__name__)

NATIVE_DECIMALS = 18


def destination_model(lane: CcipLane) -> CrossChainDestination:
    return CrossChainDestination(
        key=lane.key,
        name=lane.name,
        selector=lane.selector,
        chain_id=lane.chain_id,
        wrapped_zusd=lane.wrapped_zusd,
    )


def build_envelope(receiver: str, token: str, amount: int, gas_limit: int) -> CrossChainEnvelope:
    """EVM2AnyMessage paying fees in native currency."""
    return CrossChainEnvelope(
        receiver=abi_encode(["address"], [receiver]),
        data=b"",
        token_amounts=[TokenAmount(token=token, amount=amount)],
        fee_token=ZERO_ADDRESS,
        extra_args=CCIP_EVM_EXTRA_ARGS_V1_TAG + abi_encode(["uint256"], [gas_limit]),
    )


def check_fee(quoted: int, attached: int) -> None:
    """The attached payment must equal the quote for this exact envelope."""
    if attached < quoted:
        raise PreconditionFailed(f"Attached fee {attached} is below the quoted fee {quoted}")
    if attached != quoted:
        raise PreconditionFailed(f"Attached fee {attached} does not match the quoted fee {quoted}")


class CrossChainService:
    """Quotes and submits ZUSD transfers to other chains."""

    def __init__(
        self,
        orchestrator: TransactionOrchestrator,
        settings: Optional[Settings] = None,
        token: str = "zusd",
    ):
        self.orchestrator = orchestrator
        self.session_manager = orchestrator.session_manager
        self.registry = orchestrator.registry
        self.assets = orchestrator.assets
        self.settings = settings or get_settings()
        self.token = token

    def destinations(self) -> list[CrossChainDestination]:
        return [destination_model(lane) for lane in CCIP_LANES.values()]

    # ---- Validation --------------------------------------------------------

    def _validate(
        self,
        destination: Union[str, int],
        receiver: str,
        amount: Optional[str],
        amount_raw: Optional[int] = None,
    ) -> tuple[Session, CcipLane, str, int]:
        session = self.session_manager.require_session()

        lane = find_lane(destination)
        if lane is None:
            raise PreconditionFailed(f"Unknown destination chain: {destination}")

        if not receiver or not AsyncWeb3.is_address(receiver):
            raise PreconditionFailed(f"Invalid receiver address: {receiver!r}")

        if amount_raw is None:
            amount_raw = parse_positive(amount, self.assets.zusd.decimals)
        elif amount_raw <= 0:
            raise InvalidAmount(f"Amount must be positive: {amount_raw}")
        return session, lane, AsyncWeb3.to_checksum_address(receiver), amount_raw

    async def _check_balance(self, session: Session, amount_raw: int) -> None:
        token = self.registry.handle(self.token, session.signer)
        balance = int(await token.call("balanceOf", session.address))
        if balance < amount_raw:
            decimals = self.assets.zusd.decimals
            raise InsufficientBalance(
                f"Balance {from_base_units(balance, decimals)} ZUSD is below "
                f"{from_base_units(amount_raw, decimals)} ZUSD"
            )

    async def _quote(
        self,
        session: Session,
        lane: CcipLane,
        receiver: str,
        amount_raw: int,
    ) -> CrossChainQuote:
        envelope = build_envelope(
            receiver,
            self.registry.address(self.token),
            amount_raw,
            self.settings.ccip_gas_limit,
        )
        router = self.registry.handle("messenger", session.signer)
        fee = int(await router.call("getFee", lane.selector, envelope.as_tuple()))
        return CrossChainQuote(
            destination=destination_model(lane),
            receiver=receiver,
            amount=from_base_units(amount_raw, self.assets.zusd.decimals),
            amount_raw=amount_raw,
            envelope=envelope,
            fee=fee,
            fee_display=from_base_units(fee, NATIVE_DECIMALS),
        )

    # ---- Public API ---------------------------------------------------------

    async def quote(
        self,
        destination: Union[str, int],
        receiver: str,
        amount: str,
    ) -> CrossChainQuoteResult:
        """Native fee for sending ``amount`` ZUSD to ``receiver`` on ``destination``."""
        try:
            session, lane, receiver, amount_raw = self._validate(destination, receiver, amount)
            quote = await self._quote(session, lane, receiver, amount_raw)
        except ZephyraError as e:
            return CrossChainQuoteResult(**CrossChainQuoteResult.error_fields(e))
        except Exception as e:
            failure = PreconditionFailed(f"Fee quote failed: {e}")
            return CrossChainQuoteResult(**CrossChainQuoteResult.error_fields(failure))
        return CrossChainQuoteResult(success=True, quote=quote)

    async def transfer(
        self,
        destination: Union[str, int],
        receiver: str,
        amount: str,
    ) -> CrossChainTransferResult:
        """Send ZUSD cross-chain, paying exactly the freshly quoted fee."""
        return await self._send(destination, receiver, amount, attached_fee=None)

    async def submit(self, quote: CrossChainQuote, attached_fee: int) -> CrossChainTransferResult:
        """Submit a previously shown quote with the fee the user agreed to.

        The fee is checked against the quote before anything is signed and
        against a fresh quote right before submission.
        """
        try:
            check_fee(quote.fee, attached_fee)
        except ZephyraError as e:
            return CrossChainTransferResult(**CrossChainTransferResult.error_fields(e))
        return await self._send(
            quote.destination.key,
            quote.receiver,
            None,
            attached_fee=attached_fee,
            amount_raw=quote.amount_raw,
        )

    async def _send(
        self,
        destination: Union[str, int],
        receiver: str,
        amount: Optional[str],
        attached_fee: Optional[int],
        amount_raw: Optional[int] = None,
    ) -> CrossChainTransferResult:
        try:
            session, lane, receiver, amount_raw = self._validate(
                destination, receiver, amount, amount_raw
            )
            self.session_manager.ensure_network(session)
            await self._check_balance(session, amount_raw)
        except ZephyraError as e:
            logger.warning(f"Cross-chain transfer rejected: {e}")
            return CrossChainTransferResult(**CrossChainTransferResult.error_fields(e))
        except Exception as e:
            failure = TransactionFailed(TransactionStage.APPROVAL, f"Balance check failed: {e}")
            return CrossChainTransferResult(**CrossChainTransferResult.error_fields(failure))

        sent: dict = {}

        async def quote_and_price(session: Session, plan: ActionPlan) -> ActionPlan:
            quote = await self._quote(session, lane, receiver, amount_raw)
            fee = quote.fee if attached_fee is None else attached_fee
            check_fee(quote.fee, fee)

            router = self.registry.handle("messenger", session.signer)
            message = quote.envelope.as_tuple()
            message_id = await router.call(
                "ccipSend", lane.selector, message, value=fee, sender=session.address
            )
            sent["fee"] = fee
            sent["message_id"] = AsyncWeb3.to_hex(message_id)
            logger.info(
                f"CCIP send to {lane.name}: {quote.amount} ZUSD -> "
                f"{shorten_address(receiver)}, fee {quote.fee_display}"
            )
            return plan.with_args(lane.selector, message).with_value(fee)

        outcome = await self.orchestrator.execute(
            ActionPlan(
                action="crosschain_send",
                target="messenger",
                function="ccipSend",
                spend=TokenSpend(token=self.token, spender="messenger", amount=amount_raw),
            ),
            before_submit=quote_and_price,
        )

        if not outcome.success:
            return CrossChainTransferResult(
                success=False,
                error_kind=outcome.error_kind,
                error=outcome.error,
                outcome=outcome,
            )

        message_id = sent.get("message_id")
        return CrossChainTransferResult(
            success=True,
            outcome=outcome,
            tx_hash=outcome.tx_hash,
            message_id=message_id,
            fee_paid=sent.get("fee"),
            explorer_url=f"{self.settings.ccip_explorer_url}{message_id or outcome.tx_hash}",
        )
