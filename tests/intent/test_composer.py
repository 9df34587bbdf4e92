from intent.composer import compose_intent
from intent.models import IntentRequest, Route
from yields.models import ERC4626_DEPOSIT_PARAMS, OpportunityMetadata, RiskLevel, YieldOpportunity


def _request():
    return IntentRequest(
        from_chain=42161,
        from_token='USDC',
        from_amount='250',
        to_chain=8453,
        to_token='USDC',
        user_address='0x00000000000000000000000000000000000A11CE',
    )


def _opportunity(**overrides):
    fields = dict(
        id='defillama-Base-aave-v3-USDC-0xpool',
        source='defillama',
        protocol='Aave V3',
        protocol_slug='aave-v3',
        chain_id=8453,
        chain_name='Base',
        token='USDC',
        token_address='0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913',
        vault_address='0x4e65fE4DbA92790696d040ac24Aa414708F5c0AB',
        apy=0.052,
        tvl_usd=2_000_000,
        risk_level=RiskLevel.LOW,
        metadata=OpportunityMetadata('Aave V3', '', '', 'USDC Vault'),
    )
    fields.update(overrides)
    return YieldOpportunity(**fields)


def test_compose_without_route_uses_two_steps_and_zero_gas():
    composed = compose_intent(_request(), _opportunity())

    assert composed.total_steps == 2
    assert composed.estimated_gas_usd == 0.0
    assert composed.expected_apy == 0.052
    assert composed.target_vault.address == '0x4e65fE4DbA92790696d040ac24Aa414708F5c0AB'
    assert composed.target_vault.protocol == 'Aave V3'
    assert composed.target_vault.deposit_function == 'deposit'
    assert composed.target_vault.deposit_params == ERC4626_DEPOSIT_PARAMS
    assert composed.to_chain == 8453
    assert composed.user_address == '0x00000000000000000000000000000000000A11CE'


def test_missing_deposit_params_fall_back_to_amount_and_receiver():
    composed = compose_intent(_request(), _opportunity(deposit_params=()))

    assert composed.target_vault.deposit_params == ('250', '0x00000000000000000000000000000000000A11CE')


def test_compose_with_route_counts_route_steps():
    route = Route.from_lifi({
        'id': 'r1',
        'fromChainId': 42161,
        'toChainId': 8453,
        'gasCostUSD': '3.10',
        'steps': [{'id': 's1'}, {'id': 's2'}],
    })

    composed = compose_intent(_request(), _opportunity(), route)

    assert composed.total_steps == 3
    assert composed.estimated_gas_usd == 3.1
