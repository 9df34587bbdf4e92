import pytest

from config import chain_rpc_urls, load_config, parse_chain


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ('ENS_RPC_URL', 'LIFI_API_URL', 'LIFI_API_KEY', 'INTENT_PRIVATE_KEY', 'RPC_URL_8453'):
        monkeypatch.delenv(name, raising=False)


def test_yields_command_defaults():
    config = load_config(['yields', '--chain', 'base', '--token', 'usdc'])

    assert config.command == 'yields'
    assert config.chain_id == 8453
    assert config.token == 'USDC'
    assert config.limit == 10
    assert config.cache_ttl == 300
    assert config.source_timeout == 15.0
    assert config.route_timeout == 30.0
    assert config.integrator == 'yield-intent'
    assert config.lifi_api_url == 'https://li.quest/v1'
    assert config.lifi_api_key is None


def test_quote_slippage_is_converted_to_fraction():
    config = load_config([
        'quote',
        '--from-chain', '42161',
        '--to-chain', 'base',
        '--from-token', 'usdc',
        '--to-token', 'usdc',
        '--amount', '100',
        '--address', '0xuser',
        '--slippage', '0.5',
    ])

    assert config.from_chain == 42161
    assert config.to_chain == 8453
    assert config.from_token == 'USDC'
    assert config.slippage == pytest.approx(0.005)


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv('LIFI_API_URL', 'https://staging.li.quest/v1')
    monkeypatch.setenv('LIFI_API_KEY', 'key-123')
    monkeypatch.setenv('ENS_RPC_URL', 'https://rpc.test')
    monkeypatch.setenv('RPC_URL_8453', 'https://base.rpc.test')

    config = load_config(['--integrator', 'partner', 'profile', 'alice.eth'])

    assert config.ens_name == 'alice.eth'
    assert config.lifi_api_url == 'https://staging.li.quest/v1'
    assert config.lifi_api_key == 'key-123'
    assert config.ens_rpc_url == 'https://rpc.test'
    assert config.integrator == 'partner'
    assert config.rpc_urls[8453] == 'https://base.rpc.test'


def test_execute_requires_private_key(capsys):
    with pytest.raises(SystemExit) as excinfo:
        load_config(['intent', 'alice.eth', '--from-chain', 'arbitrum', '--from-token', 'USDC', '--amount', '5', '--execute'])

    assert excinfo.value.code == 1
    assert 'INTENT_PRIVATE_KEY' in capsys.readouterr().out


def test_execute_with_private_key(monkeypatch):
    monkeypatch.setenv('INTENT_PRIVATE_KEY', '0xabc')

    config = load_config(['intent', 'alice.eth', '--from-chain', 'arbitrum', '--from-token', 'USDC', '--amount', '5', '--execute'])

    assert config.execute is True
    assert config.private_key == '0xabc'
    assert config.to_chain is None
    assert config.to_token is None


def test_invalid_chain_is_rejected():
    with pytest.raises(SystemExit):
        load_config(['yields', '--chain', 'solana'])


def test_out_of_range_slippage_is_rejected():
    with pytest.raises(SystemExit):
        load_config(['quote', '--from-chain', '1', '--to-chain', '10', '--from-token', 'USDC',
                     '--to-token', 'USDC', '--amount', '1', '--address', '0xuser', '--slippage', '25'])


def test_parse_chain_accepts_names_and_ids():
    assert parse_chain('Base') == 8453
    assert parse_chain('42161') == 42161


def test_chain_rpc_urls_prefers_environment():
    urls = chain_rpc_urls({'RPC_URL_10': 'https://op.rpc.test'})

    assert urls[10] == 'https://op.rpc.test'
    assert urls[1].startswith('https://')
