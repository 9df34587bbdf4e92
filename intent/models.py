#!/usr/bin/env python3
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class IntentStep(str, Enum):
    INPUT = 'input'
    FETCHING_ROUTE = 'fetching-route'
    FINDING_YIELD = 'finding-yield'
    COMPOSING = 'composing'
    READY = 'ready'
    EXECUTING = 'executing'
    COMPLETED = 'completed'
    FAILED = 'failed'


class StepType(str, Enum):
    BRIDGE = 'bridge'
    SWAP = 'swap'
    APPROVE = 'approve'
    DEPOSIT = 'deposit'
    WITHDRAW = 'withdraw'


class StepStatus(str, Enum):
    PENDING = 'pending'
    IN_PROGRESS = 'in-progress'
    COMPLETED = 'completed'
    FAILED = 'failed'


class ExecutionState(str, Enum):
    PENDING = 'pending'
    EXECUTING = 'executing'
    COMPLETED = 'completed'
    FAILED = 'failed'


class ProgressStatus(str, Enum):
    PENDING = 'pending'
    LOADING = 'loading'
    SUCCESS = 'success'
    ERROR = 'error'


@dataclass
class IntentRequest:
    """``from_amount`` is a human-readable amount, e.g. "100.5"."""
    from_chain: int
    from_token: str
    from_amount: str
    to_chain: int
    to_token: str
    user_address: str
    ens_name: Optional[str] = None
    slippage: Optional[float] = None  # fraction, 0.01 == 1%


@dataclass(frozen=True)
class RouteStep:
    id: str
    type: str
    tool: str
    tool_name: str
    from_chain_id: int
    to_chain_id: int
    from_token: str
    to_token: str
    from_token_address: str
    from_amount: str
    execution_duration: float
    approval_address: Optional[str] = None

    @classmethod
    def from_lifi(cls, step: Dict[str, Any]) -> 'RouteStep':
        action = step.get('action') or {}
        estimate = step.get('estimate') or {}
        from_token = action.get('fromToken') or {}
        to_token = action.get('toToken') or {}
        return cls(
            id=str(step.get('id', '')),
            type=step.get('type', ''),
            tool=step.get('tool', ''),
            tool_name=(step.get('toolDetails') or {}).get('name') or step.get('tool', ''),
            from_chain_id=int(action.get('fromChainId') or 0),
            to_chain_id=int(action.get('toChainId') or 0),
            from_token=from_token.get('symbol', ''),
            to_token=to_token.get('symbol', ''),
            from_token_address=from_token.get('address', ''),
            from_amount=str(action.get('fromAmount') or estimate.get('fromAmount') or '0'),
            execution_duration=float(estimate.get('executionDuration') or 0),
            approval_address=estimate.get('approvalAddress'),
        )

    @property
    def is_cross_chain(self) -> bool:
        return self.from_chain_id != self.to_chain_id


@dataclass(frozen=True)
class Route:
    """A routing-service plan; read and passed through, never modified."""
    id: str
    from_chain_id: int
    to_chain_id: int
    from_amount: str
    to_amount: str
    to_amount_min: str
    to_token_decimals: int
    gas_cost_usd: float
    steps: Tuple[RouteStep, ...]
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_lifi(cls, data: Dict[str, Any]) -> 'Route':
        to_token = data.get('toToken') or {}
        return cls(
            id=str(data.get('id', '')),
            from_chain_id=int(data.get('fromChainId') or 0),
            to_chain_id=int(data.get('toChainId') or 0),
            from_amount=str(data.get('fromAmount') or '0'),
            to_amount=str(data.get('toAmount') or '0'),
            to_amount_min=str(data.get('toAmountMin') or data.get('toAmount') or '0'),
            to_token_decimals=int(to_token.get('decimals') or 0),
            gas_cost_usd=float(data.get('gasCostUSD') or 0),
            steps=tuple(RouteStep.from_lifi(step) for step in data.get('steps') or []),
            raw=data,
        )

    @property
    def estimated_duration(self) -> float:
        return sum(step.execution_duration for step in self.steps)


@dataclass(frozen=True)
class RouteQuote:
    routes: Tuple[Route, ...]
    best_route: Route
    from_amount: str
    to_amount: str
    gas_cost_usd: float
    estimated_time: float


@dataclass(frozen=True)
class TargetVault:
    address: str
    protocol: str
    deposit_function: str
    deposit_params: Tuple[Any, ...]


@dataclass(frozen=True)
class ComposedIntent:
    request: IntentRequest
    target_vault: TargetVault
    expected_apy: float
    total_steps: int
    estimated_gas_usd: float

    @property
    def to_chain(self) -> int:
        return self.request.to_chain

    @property
    def user_address(self) -> str:
        return self.request.user_address


@dataclass
class ExecutionStatus:
    """One progress event from the execution provider."""
    status: ProgressStatus
    message: str
    tx_hash: Optional[str] = None
    error: Optional[str] = None
    step_type: Optional[StepType] = None
    chain_id: Optional[int] = None


@dataclass
class ExecutionStep:
    type: StepType
    status: StepStatus
    chain_id: int
    message: str
    timestamp: float
    tx_hash: Optional[str] = None
    explorer_url: Optional[str] = None


@dataclass
class IntentExecution:
    """Mutated only by the orchestrator; terminal once completed or failed."""
    id: str
    intent: ComposedIntent
    route: Route
    created_at: float
    updated_at: float
    steps: List[ExecutionStep] = field(default_factory=list)
    status: ExecutionState = ExecutionState.PENDING
    error: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (ExecutionState.COMPLETED, ExecutionState.FAILED)
