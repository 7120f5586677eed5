"""Transaction orchestrator.

Every state-changing action follows the same sequence:

1. Validate preconditions (session, network, well-formed positive amounts).
   Failures here never touch the chain.
2. If a token is spent, read the allowance for the spender and approve
   only when it falls short, waiting for the approval to be mined.
3. Submit the primary call.
4. Wait for it to be mined.

Progress is published as ``PendingOperation`` transitions to registered
observers; rendering (toasts, spinners) is the observer's job. The
orchestrator keeps no state between calls, so independent actions may run
concurrently. Suppressing duplicate clicks is up to the UI.
"""

import inspect
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Awaitable, Callable, Optional

from zephyra.amounts import parse_positive, shorten_address
from zephyra.errors import (
    TransactionFailed,
    TransactionStage,
    ZephyraError,
)
from zephyra.models.operations import (
    OperationKind,
    OperationStatus,
    PendingOperation,
    TransactionOutcome,
)
from zephyra.models.session import Session
from zephyra.services.asset_catalog import AssetCatalog
from zephyra.services.contract_registry import ContractRegistry
from zephyra.services.session_manager import SessionManager
from zephyra.wallet.signer import ProviderRpcError

logger = logging.getLogger(__name__)

OperationObserver = Callable[[PendingOperation], Any]


@dataclass(frozen=True)
class TokenSpend:
    """Allowance an action needs before it can run."""

    token: str  # logical contract name of the token
    spender: str  # logical contract name of the spender
    amount: int  # base units


@dataclass(frozen=True)
class ActionPlan:
    """A primary contract call, optionally preceded by an approval."""

    action: str
    target: str
    function: str
    args: tuple = field(default_factory=tuple)
    spend: Optional[TokenSpend] = None
    value: int = 0

    def with_value(self, value: int) -> "ActionPlan":
        return replace(self, value=value)

    def with_args(self, *args: Any) -> "ActionPlan":
        return replace(self, args=tuple(args))


# Hook run after approval and right before submission; may rewrite the plan
BeforeSubmit = Callable[[Session, ActionPlan], Awaitable[ActionPlan]]


class TransactionOrchestrator:
    """Approve-then-act sequencing for every write the client makes."""

    def __init__(
        self,
        session_manager: SessionManager,
        registry: ContractRegistry,
        assets: AssetCatalog,
    ):
        self.session_manager = session_manager
        self.registry = registry
        self.assets = assets
        self._observers: list[OperationObserver] = []

    def add_observer(self, observer: OperationObserver) -> None:
        """Receive every PendingOperation transition."""
        self._observers.append(observer)

    # ---- Vault actions ----------------------------------------------------

    async def deposit(self, symbol: str, amount: str) -> TransactionOutcome:
        """Deposit collateral into the vault."""
        try:
            asset = self.assets.get_collateral(symbol)
            amount_raw = parse_positive(amount, asset.decimals)
        except ZephyraError as e:
            return TransactionOutcome.failure("deposit", e)

        return await self.execute(
            ActionPlan(
                action="deposit",
                target="vault",
                function="depositCollateral",
                args=(asset.contract_address, amount_raw),
                spend=TokenSpend(token=asset.symbol, spender="vault", amount=amount_raw),
            )
        )

    async def deposit_and_mint(
        self,
        symbol: str,
        collateral_amount: str,
        zusd_amount: str,
    ) -> TransactionOutcome:
        """Deposit collateral and mint ZUSD in one vault call."""
        try:
            asset = self.assets.get_collateral(symbol)
            collateral_raw = parse_positive(collateral_amount, asset.decimals)
            zusd_raw = parse_positive(zusd_amount, self.assets.zusd.decimals)
        except ZephyraError as e:
            return TransactionOutcome.failure("deposit_and_mint", e)

        return await self.execute(
            ActionPlan(
                action="deposit_and_mint",
                target="vault",
                function="depositCollateralAndMintZusd",
                args=(asset.contract_address, collateral_raw, zusd_raw),
                spend=TokenSpend(token=asset.symbol, spender="vault", amount=collateral_raw),
            )
        )

    async def mint(self, amount: str) -> TransactionOutcome:
        """Mint ZUSD against deposited collateral."""
        try:
            amount_raw = parse_positive(amount, self.assets.zusd.decimals)
        except ZephyraError as e:
            return TransactionOutcome.failure("mint", e)

        return await self.execute(
            ActionPlan(action="mint", target="vault", function="mintZusd", args=(amount_raw,))
        )

    async def burn(self, amount: str) -> TransactionOutcome:
        """Repay debt by burning ZUSD; the vault pulls the ZUSD."""
        try:
            amount_raw = parse_positive(amount, self.assets.zusd.decimals)
        except ZephyraError as e:
            return TransactionOutcome.failure("burn", e)

        return await self.execute(
            ActionPlan(
                action="burn",
                target="vault",
                function="burnZusd",
                args=(amount_raw,),
                spend=TokenSpend(token="zusd", spender="vault", amount=amount_raw),
            )
        )

    async def redeem(self, symbol: str, amount: str) -> TransactionOutcome:
        """Withdraw collateral from the vault."""
        try:
            asset = self.assets.get_collateral(symbol)
            amount_raw = parse_positive(amount, asset.decimals)
        except ZephyraError as e:
            return TransactionOutcome.failure("redeem", e)

        return await self.execute(
            ActionPlan(
                action="redeem",
                target="vault",
                function="redeemCollateral",
                args=(asset.contract_address, amount_raw),
            )
        )

    # ---- Generic sequence -------------------------------------------------

    async def execute(
        self,
        plan: ActionPlan,
        before_submit: Optional[BeforeSubmit] = None,
    ) -> TransactionOutcome:
        """Run ``plan`` through approve-then-act and report the outcome."""
        operations: list[PendingOperation] = []
        approval_hash: Optional[str] = None

        try:
            session = self.session_manager.require_session()
            self.session_manager.ensure_network(session)

            if plan.spend is not None:
                approval_hash = await self.ensure_allowance(
                    session, plan.action, plan.spend, operations
                )

            if before_submit is not None:
                plan = await self._prepare(session, plan, before_submit)

            tx_hash = await self._submit(session, plan, operations)
        except ZephyraError as e:
            logger.warning(f"{plan.action} failed: {e}")
            return TransactionOutcome.failure(plan.action, e, operations, approval_hash)

        logger.info(f"{plan.action} confirmed: {tx_hash}")
        return TransactionOutcome(
            success=True,
            action=plan.action,
            approval_tx_hash=approval_hash,
            tx_hash=tx_hash,
            operations=operations,
        )

    async def ensure_allowance(
        self,
        session: Session,
        action: str,
        spend: TokenSpend,
        operations: list[PendingOperation],
    ) -> Optional[str]:
        """Approve ``spend`` unless the current allowance already covers it.

        Returns:
            Approval tx hash, or None when no approval was needed
        """
        token = self.registry.handle(spend.token, session.signer)
        spender_address = self.registry.address(spend.spender)

        try:
            allowance = await token.call("allowance", session.address, spender_address)
        except Exception as e:
            raise TransactionFailed(
                TransactionStage.APPROVAL, f"Could not read allowance: {e}"
            ) from e

        if allowance >= spend.amount:
            logger.debug(f"Allowance sufficient for {action}: {allowance} >= {spend.amount}")
            return None

        op = PendingOperation(
            action=action,
            kind=OperationKind.APPROVE,
            target=spend.token,
            function="approve",
        )
        operations.append(op)
        logger.info(
            f"Approving {spend.token} for {spend.spender} ({shorten_address(session.address)})"
        )
        await self._run(
            op,
            TransactionStage.APPROVAL,
            token,
            "approve",
            (spender_address, spend.amount),
            0,
            confirmed=OperationStatus.APPROVED,
        )
        return op.tx_hash

    async def _prepare(
        self,
        session: Session,
        plan: ActionPlan,
        before_submit: BeforeSubmit,
    ) -> ActionPlan:
        # Runs after any approval; every failure here is an action-stage failure
        try:
            return await before_submit(session, plan)
        except ZephyraError as e:
            raise TransactionFailed(
                TransactionStage.ACTION, f"Preparation failed ({e.kind.value}): {e}"
            ) from e
        except Exception as e:
            raise TransactionFailed(TransactionStage.ACTION, f"Preparation failed: {e}") from e

    async def _submit(
        self,
        session: Session,
        plan: ActionPlan,
        operations: list[PendingOperation],
    ) -> str:
        handle = self.registry.handle(plan.target, session.signer)
        op = PendingOperation(
            action=plan.action,
            kind=OperationKind.ACT,
            target=plan.target,
            function=plan.function,
        )
        operations.append(op)
        await self._run(
            op,
            TransactionStage.ACTION,
            handle,
            plan.function,
            plan.args,
            plan.value,
            confirmed=OperationStatus.CONFIRMED,
        )
        return op.tx_hash

    async def _run(
        self,
        op: PendingOperation,
        stage: TransactionStage,
        handle,
        function: str,
        args: tuple,
        value: int,
        confirmed: OperationStatus,
    ) -> None:
        await self._transition(op, OperationStatus.AWAITING_APPROVAL)
        try:
            op.tx_hash = await handle.transact(function, *args, value=value)
            await self._transition(op, OperationStatus.SUBMITTED)
            await handle.wait(op.tx_hash)
        except ProviderRpcError as e:
            op.error = str(e)
            await self._transition(op, OperationStatus.FAILED)
            if e.user_rejected:
                raise TransactionFailed(stage, f"{function} rejected in wallet") from e
            raise TransactionFailed(stage, f"{function} failed: {e}", op.tx_hash) from e
        except Exception as e:
            op.error = str(e)
            await self._transition(op, OperationStatus.FAILED)
            raise TransactionFailed(stage, f"{function} failed: {e}", op.tx_hash) from e
        await self._transition(op, confirmed)

    async def _transition(self, op: PendingOperation, status: OperationStatus) -> None:
        op.status = status
        for observer in list(self._observers):
            try:
                result = observer(op.model_copy())
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Operation observer failed")
