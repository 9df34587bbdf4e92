#!/usr/bin/env python3
"""Drives an intent from request to executed deposit.

Two channels can be observed independently:

* lifecycle state (``subscribe_state``): the coarse ``IntentStep`` machine
  ``input -> fetching-route -> finding-yield -> composing -> ready ->
  executing -> completed | failed``. It only moves when a call returns or
  raises.
* progress (``subscribe_progress``): fine-grained ``ExecutionStatus`` events
  from the execution provider. They are recorded on the execution as
  ``ExecutionStep`` entries but never move the lifecycle state.

Failures record a message and stop; nothing is retried automatically.
"""
from __future__ import annotations

import dataclasses
import time
import uuid
from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol

from web3 import Web3

from constants import C_GREEN, C_RESET, CHAIN_CONFIG
from errors import BlacklistedProtocolError, IntentError, NoYieldFoundError, RouteNotFoundError
from intent.composer import compose_intent
from intent.models import (
    ComposedIntent,
    ExecutionState,
    ExecutionStatus,
    ExecutionStep,
    IntentExecution,
    IntentRequest,
    IntentStep,
    ProgressStatus,
    Route,
    StepStatus,
)
from intent.route_quoter import RouteQuoter
from preferences.models import UserPreferences
from services.http_utils import log_error
from yields.aggregator import YieldAggregator
from yields.models import YieldOpportunity

PROCESSING_STEPS = {
    IntentStep.FETCHING_ROUTE,
    IntentStep.FINDING_YIELD,
    IntentStep.COMPOSING,
    IntentStep.EXECUTING,
}
OPEN_STEP_STATUSES = (StepStatus.PENDING, StepStatus.IN_PROGRESS)


class ExecutionProvider(Protocol):
    async def execute_route(self, route: Route, on_update: Callable[[ExecutionStatus], None]): ...

    async def deposit(self, intent: ComposedIntent, route: Route, on_update: Callable[[ExecutionStatus], None]): ...


@dataclass
class IntentState:
    step: IntentStep = IntentStep.INPUT
    route: Optional[Route] = None
    target_yield: Optional[YieldOpportunity] = None
    composed_intent: Optional[ComposedIntent] = None
    execution: Optional[IntentExecution] = None
    error: Optional[str] = None


StateListener = Callable[[IntentState], None]
ProgressListener = Callable[[ExecutionStatus], None]


def explorer_url(chain_id: int, tx_hash: Optional[str]) -> Optional[str]:
    chain = CHAIN_CONFIG.get(chain_id)
    if not chain or not tx_hash:
        return None
    return f"{chain['explorer']}/tx/{tx_hash}"


class IntentOrchestrator:
    """Owns the lifecycle of one intent at a time."""

    def __init__(
        self,
        quoter: RouteQuoter,
        aggregator: YieldAggregator,
        executor: Optional[ExecutionProvider] = None,
        *,
        clock: Callable[[], float] = time.time,
        id_factory: Callable[[], str] = lambda: uuid.uuid4().hex,
    ) -> None:
        self.quoter = quoter
        self.aggregator = aggregator
        self.executor = executor
        self._clock = clock
        self._id_factory = id_factory
        self.state = IntentState()
        self._state_listeners: List[StateListener] = []
        self._progress_listeners: List[ProgressListener] = []

    # --- observation ---

    def subscribe_state(self, listener: StateListener) -> None:
        self._state_listeners.append(listener)

    def subscribe_progress(self, listener: ProgressListener) -> None:
        self._progress_listeners.append(listener)

    @property
    def can_execute(self) -> bool:
        return (
            self.state.step is IntentStep.READY
            and self.state.composed_intent is not None
            and self.state.route is not None
        )

    @property
    def is_processing(self) -> bool:
        return self.state.step in PROCESSING_STEPS

    def _update(self, **changes) -> None:
        previous = self.state.step
        self.state = dataclasses.replace(self.state, **changes)
        if self.state.step is not previous:
            for listener in list(self._state_listeners):
                listener(self.state)

    def _fail(self, message: str) -> None:
        self._update(step=IntentStep.FAILED, error=message)

    # --- lifecycle ---

    async def build_intent(self, request: IntentRequest, preferences: UserPreferences) -> IntentState:
        """Quotes a route, picks the best qualifying yield and composes the plan.

        Never raises; on failure the state is ``failed`` with a specific message.
        """
        if request.slippage is None:
            request = dataclasses.replace(request, slippage=preferences.slippage)

        self._update(
            step=IntentStep.FETCHING_ROUTE,
            route=None,
            target_yield=None,
            composed_intent=None,
            execution=None,
            error=None,
        )
        try:
            route = await self.quoter.get_best_route(request)
            if route is None:
                raise RouteNotFoundError()
            self._update(route=route, step=IntentStep.FINDING_YIELD)

            target_yield = await self.aggregator.get_best(
                request.to_chain,
                request.to_token,
                preferences.risk_tolerance.value,
                preferences.min_liquidity_usd,
            )
            if target_yield is None:
                raise NoYieldFoundError()
            if preferences.is_blacklisted(target_yield.protocol_slug):
                raise BlacklistedProtocolError(target_yield.protocol, target_yield.protocol_slug)
            self._update(target_yield=target_yield, step=IntentStep.COMPOSING)

            composed = compose_intent(request, target_yield, route)
            self._update(composed_intent=composed, step=IntentStep.READY)
        except IntentError as e:
            self._fail(e.message)
        except Exception as e:
            log_error(f"Failed to build intent: {e}")
            self._fail(str(e) or 'Failed to build intent')
        return self.state

    async def execute_intent(self) -> IntentState:
        """Executes the composed plan. Never raises."""
        route, composed = self.state.route, self.state.composed_intent
        if route is None or composed is None:
            self._fail('No intent to execute')
            return self.state
        if self.executor is None:
            self._fail('No execution provider configured')
            return self.state
        vault = composed.target_vault
        if not Web3.is_address(vault.address):
            self._fail(f"Cannot deposit into {vault.protocol}: {vault.address!r} is not a contract address")
            return self.state

        now = self._clock()
        execution = IntentExecution(
            id=self._id_factory(),
            intent=composed,
            route=route,
            created_at=now,
            updated_at=now,
            status=ExecutionState.EXECUTING,
        )
        self._update(step=IntentStep.EXECUTING, execution=execution, error=None)
        self._publish(ExecutionStatus(ProgressStatus.LOADING, 'Starting cross-chain transaction...'))

        try:
            await self.executor.execute_route(route, self._on_progress)
            await self.executor.deposit(composed, route, self._on_progress)
        except Exception as e:
            message = getattr(e, 'message', None) or str(e) or 'Execution failed'
            log_error(f"Intent execution {execution.id} failed: {message}")
            self._close_execution(execution, ExecutionState.FAILED, message)
            self._publish(ExecutionStatus(ProgressStatus.ERROR, message, error=message))
            self._fail(message)
            return self.state

        self._close_execution(execution, ExecutionState.COMPLETED)
        last_hash = next((s.tx_hash for s in reversed(execution.steps) if s.tx_hash), None)
        self._publish(ExecutionStatus(ProgressStatus.SUCCESS, 'Transaction completed successfully!', tx_hash=last_hash))
        print(f"{C_GREEN}Intent {execution.id} completed.{C_RESET}")
        self._update(step=IntentStep.COMPLETED)
        return self.state

    async def run(self, request: IntentRequest, preferences: UserPreferences) -> IntentState:
        """Builds and, if the build reached ``ready``, executes in one call."""
        await self.build_intent(request, preferences)
        if self.can_execute:
            await self.execute_intent()
        return self.state

    def reset(self) -> None:
        self._update(**vars(IntentState()))

    # --- progress bookkeeping ---

    def _publish(self, event: ExecutionStatus) -> None:
        for listener in list(self._progress_listeners):
            listener(event)

    def _on_progress(self, event: ExecutionStatus) -> None:
        execution = self.state.execution
        if execution is not None and not execution.is_terminal and event.step_type is not None:
            self._record_step(execution, event)
        self._publish(event)

    def _record_step(self, execution: IntentExecution, event: ExecutionStatus) -> None:
        now = self._clock()
        execution.updated_at = now
        open_step = next(
            (s for s in reversed(execution.steps) if s.type == event.step_type and s.status in OPEN_STEP_STATUSES),
            None,
        )
        new_status = {
            ProgressStatus.PENDING: StepStatus.PENDING,
            ProgressStatus.LOADING: StepStatus.IN_PROGRESS,
            ProgressStatus.SUCCESS: StepStatus.COMPLETED,
            ProgressStatus.ERROR: StepStatus.FAILED,
        }[event.status]

        if open_step is None or event.status is ProgressStatus.PENDING:
            execution.steps.append(ExecutionStep(
                type=event.step_type,
                status=new_status,
                chain_id=event.chain_id or execution.route.from_chain_id,
                message=event.message,
                timestamp=now,
                tx_hash=event.tx_hash,
                explorer_url=explorer_url(event.chain_id or execution.route.from_chain_id, event.tx_hash),
            ))
            return

        open_step.status = new_status
        open_step.message = event.message
        open_step.timestamp = now
        if event.chain_id:
            open_step.chain_id = event.chain_id
        if event.tx_hash:
            open_step.tx_hash = event.tx_hash
            open_step.explorer_url = explorer_url(open_step.chain_id, event.tx_hash)

    def _close_execution(self, execution: IntentExecution, status: ExecutionState, error: Optional[str] = None) -> None:
        if status is ExecutionState.FAILED:
            for step in execution.steps:
                if step.status in OPEN_STEP_STATUSES:
                    step.status = StepStatus.FAILED
        execution.status = status
        execution.error = error
        execution.updated_at = self._clock()
