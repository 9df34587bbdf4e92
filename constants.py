#!/usr/bin/env python3
from typing import Dict, List, Union

# --- ANSI Color Codes ---
C_GREEN = '\033[92m'
C_RED = '\033[91m'
C_YELLOW = '\033[93m'
C_BLUE = '\033[94m'
C_RESET = '\033[0m'

# --- API Configuration ---
LIFI_API_BASE_URL = 'https://li.quest/v1'
DEFILLAMA_YIELDS_BASE_URL = 'https://yields.llama.fi'
YEARN_API_BASE_URL = 'https://api.yearn.fi/v1/chains'
BEEFY_API_BASE_URL = 'https://api.beefy.finance'
DEFAULT_ENS_RPC_URL = 'https://eth.llamarpc.com'
DEFAULT_INTEGRATOR = 'yield-intent'

# --- Environment Variable Names ---
ENS_RPC_URL_ENV_VAR = 'ENS_RPC_URL'
LIFI_API_URL_ENV_VAR = 'LIFI_API_URL'
LIFI_API_KEY_ENV_VAR = 'LIFI_API_KEY'
INTENT_PRIVATE_KEY_ENV_VAR = 'INTENT_PRIVATE_KEY'
CHAIN_RPC_URL_ENV_PREFIX = 'RPC_URL_'

ZERO_ADDRESS = '0x0000000000000000000000000000000000000000'

# --- Chain Configuration ---
CHAIN_CONFIG: Dict[int, Dict[str, str]] = {
    1: {
        'name': 'ethereum',
        'displayName': 'Ethereum',
        'rpcUrl': 'https://eth.llamarpc.com',
        'explorer': 'https://etherscan.io',
    },
    10: {
        'name': 'optimism',
        'displayName': 'Optimism',
        'rpcUrl': 'https://mainnet.optimism.io',
        'explorer': 'https://optimistic.etherscan.io',
    },
    137: {
        'name': 'polygon',
        'displayName': 'Polygon',
        'rpcUrl': 'https://polygon-rpc.com',
        'explorer': 'https://polygonscan.com',
    },
    42161: {
        'name': 'arbitrum',
        'displayName': 'Arbitrum',
        'rpcUrl': 'https://arb1.arbitrum.io/rpc',
        'explorer': 'https://arbiscan.io',
    },
    8453: {
        'name': 'base',
        'displayName': 'Base',
        'rpcUrl': 'https://mainnet.base.org',
        'explorer': 'https://basescan.org',
    },
    81457: {
        'name': 'blast',
        'displayName': 'Blast',
        'rpcUrl': 'https://rpc.blast.io',
        'explorer': 'https://blastscan.io',
    },
    59144: {
        'name': 'linea',
        'displayName': 'Linea',
        'rpcUrl': 'https://rpc.linea.build',
        'explorer': 'https://lineascan.build',
    },
    534352: {
        'name': 'scroll',
        'displayName': 'Scroll',
        'rpcUrl': 'https://rpc.scroll.io',
        'explorer': 'https://scrollscan.com',
    },
}

CHAIN_NAME_TO_ID: Dict[str, int] = {info['name']: chain_id for chain_id, info in CHAIN_CONFIG.items()}

# --- Token Addresses used by the route quoter (checksummed) ---
TOKEN_ADDRESSES: Dict[int, Dict[str, str]] = {
    1: {
        'USDC': '0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48',
        'USDT': '0xdAC17F958D2ee523a2206206994597C13D831ec7',
        'DAI': '0x6B175474E89094C44Da98b954EedeAC495271d0F',
        'WETH': '0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2',
        'WBTC': '0x2260FAC5E5542a773Aa44fBCfeDf7C193bc2C599',
    },
    42161: {
        'USDC': '0xaf88d065e77c8cC2239327C5EDb3A432268e5831',
        'USDT': '0xFd086bC7CD5C481DCC9C85ebE478A1C0b69FCbb9',
        'DAI': '0xDA10009cBd5D07dd0CeCc66161FC93D7c9000da1',
        'WETH': '0x82aF49447D8a07e3bd95BD0d56f35241523fBab1',
    },
    8453: {
        'USDC': '0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913',
        'USDT': '0xfde4C96c8593536E31F229EA8f37b2ADa2699bb2',
        'DAI': '0x50c5725949A6F0c72E6C4a641F24049A917DB0Cb',
        'WETH': '0x4200000000000000000000000000000000000006',
    },
    10: {
        'USDC': '0x0b2C639c533813f4Aa9D7837CAf62653d097Ff85',
        'USDT': '0x94b008aA00579c1307B0EF2c499aD98a8ce58e58',
        'DAI': '0xDA10009cBd5D07dd0CeCc66161FC93D7c9000da1',
        'WETH': '0x4200000000000000000000000000000000000006',
    },
}

TOKEN_DECIMALS: Dict[str, int] = {
    'USDC': 6,
    'USDT': 6,
    'DAI': 18,
    'WETH': 18,
    'WBTC': 8,
}
DEFAULT_TOKEN_DECIMALS = 6

TOKEN_ICONS: Dict[str, str] = {
    'USDC': 'https://tokens.1inch.io/0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48.png',
    'USDT': 'https://tokens.1inch.io/0xdac17f958d2ee523a2206206994597c13d831ec7.png',
    'DAI': 'https://tokens.1inch.io/0x6b175474e89094c44da98b954eedeac495271d0f.png',
    'WETH': 'https://tokens.1inch.io/0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2.png',
    'WBTC': 'https://tokens.1inch.io/0x2260fac5e5542a773aa44fbcfedf7c193bc2c599.png',
}

# --- Protocol Metadata (only these protocols are surfaced) ---
PROTOCOL_METADATA: Dict[str, Dict[str, str]] = {
    'aave-v3': {'name': 'Aave V3', 'icon': 'https://icons.llamao.fi/protocols/aave-v3', 'riskLevel': 'low'},
    'compound-v3': {'name': 'Compound V3', 'icon': 'https://icons.llamao.fi/protocols/compound-v3', 'riskLevel': 'low'},
    'morpho': {'name': 'Morpho', 'icon': 'https://icons.llamao.fi/protocols/morpho', 'riskLevel': 'low'},
    'spark': {'name': 'Spark', 'icon': 'https://icons.llamao.fi/protocols/spark', 'riskLevel': 'low'},
    'beefy': {'name': 'Beefy', 'icon': 'https://icons.llamao.fi/protocols/beefy', 'riskLevel': 'medium'},
    'yearn-v3': {'name': 'Yearn V3', 'icon': 'https://icons.llamao.fi/protocols/yearn-v3', 'riskLevel': 'medium'},
    'pendle': {'name': 'Pendle', 'icon': 'https://icons.llamao.fi/protocols/pendle', 'riskLevel': 'high'},
    'silo': {'name': 'Silo', 'icon': 'https://icons.llamao.fi/protocols/silo', 'riskLevel': 'high'},
}

# --- Risk Tolerance ---
RISK_TOLERANCE_MAP: Dict[str, List[str]] = {
    'conservative': ['aave-v3', 'compound-v3', 'morpho', 'spark'],
    'moderate': ['aave-v3', 'compound-v3', 'morpho', 'spark', 'yearn-v3'],
    'aggressive': ['aave-v3', 'compound-v3', 'morpho', 'spark', 'yearn-v3', 'pendle', 'silo'],
}

RISK_LEVELS_BY_TOLERANCE: Dict[str, List[str]] = {
    'conservative': ['low'],
    'moderate': ['low', 'medium'],
    'aggressive': ['low', 'medium', 'high'],
}

# --- Naming Records ---
VALID_HANDLE_SUFFIXES = ('.eth', '.xyz', '.luxe', '.kred', '.art')
RECORD_KEY_PREFIX = 'com.yieldintent.'
PREFERENCE_FIELDS = (
    'preferredChains',
    'riskTolerance',
    'maxSlippageBps',
    'defaultAction',
    'whitelistedProtocols',
    'blacklistedProtocols',
    'minLiquidityUsd',
    'strategyFollow',
    'autoRebalance',
    'notificationPrefs',
)
PREFERENCE_RECORD_KEYS = tuple(f"{RECORD_KEY_PREFIX}{field}" for field in PREFERENCE_FIELDS)
AVATAR_RECORD_KEY = 'avatar'

MIN_SLIPPAGE_BPS = 1
MAX_SLIPPAGE_BPS = 1000

# --- Yield Sources ---
# failurePolicy 'hard' sources are retry-wrapped and abort the aggregation
# once retries are exhausted; 'soft' sources contribute nothing on failure.
YIELD_SOURCES: List[Dict[str, Union[str, bool, float, int, List[int], None]]] = [
    {
        'name': 'defillama',
        'enabled': True,
        'weight': 0.6,
        'chains': [1, 10, 137, 42161, 8453, 81457],
        'baseUrl': DEFILLAMA_YIELDS_BASE_URL,
        'apiKey': None,
        'failurePolicy': 'hard',
        'retries': 2,
        'retryDelay': 1.0,
    },
    {
        'name': 'yearn',
        'enabled': True,
        'weight': 0.4,
        'chains': [1, 10, 137, 42161, 8453],
        'baseUrl': YEARN_API_BASE_URL,
        'apiKey': None,
        'failurePolicy': 'soft',
        'retries': 0,
        'retryDelay': 0.0,
    },
    {
        'name': 'beefy',
        'enabled': False,
        'weight': 0.2,
        'chains': [1, 10, 137, 42161, 8453],
        'baseUrl': BEEFY_API_BASE_URL,
        'apiKey': None,
        'failurePolicy': 'hard',
        'retries': 2,
        'retryDelay': 1.0,
    },
]

YIELD_CACHE_KEY = 'all-yields'
YIELD_CACHE_TTL_SECONDS = 5 * 60

# --- Routing ---
DEFAULT_SLIPPAGE = 0.01
ROUTE_ORDER = 'RECOMMENDED'
STATUS_POLL_INTERVAL = 10.0
STATUS_POLL_MAX_ATTEMPTS = 90
COMPOSED_INTENT_STEPS = 2  # bridge/swap + deposit

# --- Contract ABIs ---
ERC20_ABI = [
    {
        "inputs": [{"name": "spender", "type": "address"}, {"name": "amount", "type": "uint256"}],
        "name": "approve",
        "outputs": [{"name": "", "type": "bool"}],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [{"name": "owner", "type": "address"}, {"name": "spender", "type": "address"}],
        "name": "allowance",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
]

VAULT_ABI = [
    {
        "inputs": [{"name": "assets", "type": "uint256"}, {"name": "receiver", "type": "address"}],
        "name": "deposit",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [{"name": "amount", "type": "uint256"}],
        "name": "deposit",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "asset",
        "outputs": [{"name": "", "type": "address"}],
        "stateMutability": "view",
        "type": "function",
    },
]
