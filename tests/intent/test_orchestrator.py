import pytest

from constants import CHAIN_CONFIG
from errors import ExecutionError, UnsupportedTokenError
from intent.models import (
    ExecutionState,
    ExecutionStatus,
    IntentRequest,
    IntentStep,
    ProgressStatus,
    Route,
    StepStatus,
    StepType,
)
from intent.orchestrator import IntentOrchestrator
from preferences.models import UserPreferences
from yields.models import OpportunityMetadata, RiskLevel, YieldOpportunity

USER = '0x00000000000000000000000000000000000A11CE'


def _route():
    return Route.from_lifi({
        'id': 'route-1',
        'fromChainId': 42161,
        'toChainId': 8453,
        'fromAmount': '100000000',
        'toAmount': '99500000',
        'toAmountMin': '99000000',
        'gasCostUSD': '1.50',
        'steps': [{
            'id': 'step-1',
            'type': 'cross',
            'tool': 'across',
            'action': {'fromChainId': 42161, 'toChainId': 8453},
            'estimate': {'executionDuration': 90},
        }],
    })


def _opportunity(slug='aave-v3', protocol='Aave V3', vault_address='0x4e65fe4dba92790696d040ac24aa414708f5c0ab'):
    return YieldOpportunity(
        id=f"defillama-Base-{slug}-USDC-0xpool",
        source='defillama',
        protocol=protocol,
        protocol_slug=slug,
        chain_id=8453,
        chain_name='Base',
        token='USDC',
        token_address='0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913',
        vault_address=vault_address,
        apy=0.05,
        tvl_usd=5_000_000,
        risk_level=RiskLevel.LOW,
        metadata=OpportunityMetadata(protocol, '', '', 'USDC Vault'),
    )


def _request(slippage=None):
    return IntentRequest(
        from_chain=42161,
        from_token='USDC',
        from_amount='100',
        to_chain=8453,
        to_token='USDC',
        user_address=USER,
        ens_name='alice.eth',
        slippage=slippage,
    )


class FakeQuoter:
    def __init__(self, result):
        self.result = result
        self.requests = []

    async def get_best_route(self, request):
        self.requests.append(request)
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


class FakeAggregator:
    def __init__(self, best):
        self.best = best
        self.calls = []

    async def get_best(self, chain_id, token, risk_tolerance=None, min_tvl_usd=None):
        self.calls.append((chain_id, token, risk_tolerance, min_tvl_usd))
        return self.best


class FakeExecutor:
    def __init__(self, deposit_error=None):
        self.deposit_error = deposit_error
        self.calls = []

    async def execute_route(self, route, on_update):
        self.calls.append('execute_route')
        on_update(ExecutionStatus(ProgressStatus.LOADING, 'Bridging...', step_type=StepType.BRIDGE, chain_id=42161))
        on_update(ExecutionStatus(ProgressStatus.SUCCESS, 'Bridged', tx_hash='0xbridge', step_type=StepType.BRIDGE, chain_id=42161))
        return ['0xbridge']

    async def deposit(self, intent, route, on_update):
        self.calls.append('deposit')
        on_update(ExecutionStatus(ProgressStatus.LOADING, 'Depositing...', step_type=StepType.DEPOSIT, chain_id=8453))
        if self.deposit_error:
            raise self.deposit_error
        on_update(ExecutionStatus(ProgressStatus.SUCCESS, 'Deposited', tx_hash='0xdeposit', step_type=StepType.DEPOSIT, chain_id=8453))
        return '0xdeposit'


def _orchestrator(quoter=None, aggregator=None, executor=None):
    orchestrator = IntentOrchestrator(
        quoter or FakeQuoter(_route()),
        aggregator or FakeAggregator(_opportunity()),
        executor,
        clock=lambda: 1_700_000_000.0,
        id_factory=lambda: 'exec-1',
    )
    states, progress = [], []
    orchestrator.subscribe_state(lambda state: states.append(state.step))
    orchestrator.subscribe_progress(progress.append)
    return orchestrator, states, progress


@pytest.mark.asyncio
async def test_execute_without_intent_fails_without_calling_executor():
    executor = FakeExecutor()
    orchestrator, states, _ = _orchestrator(executor=executor)

    state = await orchestrator.execute_intent()

    assert state.step is IntentStep.FAILED
    assert state.error == 'No intent to execute'
    assert states == [IntentStep.FAILED]
    assert executor.calls == []


@pytest.mark.asyncio
async def test_build_intent_walks_states_to_ready():
    aggregator = FakeAggregator(_opportunity())
    orchestrator, states, progress = _orchestrator(aggregator=aggregator)

    state = await orchestrator.build_intent(_request(), UserPreferences(min_liquidity_usd=250_000))

    assert states == [IntentStep.FETCHING_ROUTE, IntentStep.FINDING_YIELD, IntentStep.COMPOSING, IntentStep.READY]
    assert state.error is None
    assert state.route.id == 'route-1'
    assert state.target_yield.protocol_slug == 'aave-v3'
    assert state.composed_intent.total_steps == 2
    assert state.composed_intent.estimated_gas_usd == 1.5
    assert aggregator.calls == [(8453, 'USDC', 'moderate', 250_000)]
    assert orchestrator.can_execute is True
    assert orchestrator.is_processing is False
    assert progress == []


@pytest.mark.asyncio
async def test_missing_slippage_comes_from_preferences():
    quoter = FakeQuoter(_route())
    orchestrator, _, _ = _orchestrator(quoter=quoter)

    await orchestrator.build_intent(_request(), UserPreferences(max_slippage_bps=50))
    await orchestrator.build_intent(_request(slippage=0.03), UserPreferences(max_slippage_bps=50))

    assert [r.slippage for r in quoter.requests] == [0.005, 0.03]


@pytest.mark.asyncio
async def test_no_route_fails_before_yield_lookup():
    aggregator = FakeAggregator(_opportunity())
    orchestrator, states, _ = _orchestrator(quoter=FakeQuoter(None), aggregator=aggregator)

    state = await orchestrator.build_intent(_request(), UserPreferences())

    assert states == [IntentStep.FETCHING_ROUTE, IntentStep.FAILED]
    assert state.error == 'No route found for this intent'
    assert aggregator.calls == []


@pytest.mark.asyncio
async def test_no_yield_fails_with_specific_message():
    orchestrator, _, _ = _orchestrator(aggregator=FakeAggregator(None))

    state = await orchestrator.build_intent(_request(), UserPreferences())

    assert state.step is IntentStep.FAILED
    assert state.error == 'No yield opportunities found matching your criteria on the destination chain'
    assert state.route is not None
    assert state.composed_intent is None


@pytest.mark.asyncio
async def test_blacklisted_best_yield_aborts_composition():
    orchestrator, states, _ = _orchestrator()

    state = await orchestrator.build_intent(_request(), UserPreferences(blacklisted_protocols=['AAVE-V3']))

    assert states[-1] is IntentStep.FAILED
    assert IntentStep.COMPOSING not in states
    assert 'Aave V3 (aave-v3)' in state.error
    assert 'blacklist' in state.error
    assert state.composed_intent is None


@pytest.mark.asyncio
async def test_quoter_errors_are_recorded_not_raised():
    orchestrator, _, _ = _orchestrator(quoter=FakeQuoter(UnsupportedTokenError('FOO', 'USDC')))

    state = await orchestrator.build_intent(_request(), UserPreferences())

    assert state.step is IntentStep.FAILED
    assert state.error == 'Token not supported on one of the chains: FOO -> USDC'


@pytest.mark.asyncio
async def test_run_executes_and_records_steps():
    executor = FakeExecutor()
    orchestrator, states, progress = _orchestrator(executor=executor)

    state = await orchestrator.run(_request(), UserPreferences())

    assert executor.calls == ['execute_route', 'deposit']
    assert states[-3:] == [IntentStep.READY, IntentStep.EXECUTING, IntentStep.COMPLETED]
    assert state.error is None

    execution = state.execution
    assert execution.id == 'exec-1'
    assert execution.status is ExecutionState.COMPLETED
    assert [(s.type, s.status) for s in execution.steps] == [
        (StepType.BRIDGE, StepStatus.COMPLETED),
        (StepType.DEPOSIT, StepStatus.COMPLETED),
    ]
    bridge = execution.steps[0]
    assert bridge.tx_hash == '0xbridge'
    assert bridge.explorer_url == f"{CHAIN_CONFIG[42161]['explorer']}/tx/0xbridge"

    assert progress[0].message == 'Starting cross-chain transaction...'
    assert progress[-1].status is ProgressStatus.SUCCESS
    assert progress[-1].message == 'Transaction completed successfully!'
    assert progress[-1].tx_hash == '0xdeposit'


@pytest.mark.asyncio
async def test_execution_failure_marks_intent_failed():
    executor = FakeExecutor(deposit_error=ExecutionError('Transaction 0xdead reverted'))
    orchestrator, states, progress = _orchestrator(executor=executor)
    await orchestrator.build_intent(_request(), UserPreferences())

    state = await orchestrator.execute_intent()

    assert states[-2:] == [IntentStep.EXECUTING, IntentStep.FAILED]
    assert state.error == 'Transaction 0xdead reverted'
    assert state.execution.status is ExecutionState.FAILED
    assert state.execution.error == 'Transaction 0xdead reverted'
    assert state.execution.steps[-1].type is StepType.DEPOSIT
    assert state.execution.steps[-1].status is StepStatus.FAILED
    assert progress[-1].status is ProgressStatus.ERROR


@pytest.mark.asyncio
async def test_progress_events_do_not_move_lifecycle_state():
    orchestrator, states, progress = _orchestrator(executor=FakeExecutor())
    await orchestrator.build_intent(_request(), UserPreferences())
    states.clear()

    await orchestrator.execute_intent()

    assert states == [IntentStep.EXECUTING, IntentStep.COMPLETED]
    assert len(progress) == 6


@pytest.mark.asyncio
async def test_execute_without_provider_fails():
    orchestrator, _, _ = _orchestrator()
    await orchestrator.build_intent(_request(), UserPreferences())

    state = await orchestrator.execute_intent()

    assert state.step is IntentStep.FAILED
    assert state.error == 'No execution provider configured'


@pytest.mark.asyncio
async def test_reset_returns_to_input():
    orchestrator, states, _ = _orchestrator()
    await orchestrator.build_intent(_request(), UserPreferences())

    orchestrator.reset()

    assert orchestrator.state.step is IntentStep.INPUT
    assert orchestrator.state.route is None
    assert orchestrator.state.composed_intent is None
    assert states[-1] is IntentStep.INPUT
    assert orchestrator.can_execute is False


@pytest.mark.asyncio
async def test_non_address_vault_fails_before_any_transaction():
    executor = FakeExecutor()
    pool_id = '7e0661bf-8cf3-45e6-9424-31916d4c7b84'
    orchestrator, states, progress = _orchestrator(
        aggregator=FakeAggregator(_opportunity(vault_address=pool_id)),
        executor=executor,
    )

    state = await orchestrator.run(_request(), UserPreferences())

    assert executor.calls == []
    assert states[-2:] == [IntentStep.READY, IntentStep.FAILED]
    assert 'Aave V3' in state.error
    assert pool_id in state.error
    assert state.execution is None
    assert progress == []
