#!/usr/bin/env python3
import os
import argparse
from typing import NamedTuple, Optional
import constants


class AppConfig(NamedTuple):
    """Typed configuration object."""
    command: str
    ens_name: str | None
    chain_id: int | None
    token: str | None
    risk_tolerance: str | None
    min_tvl: float | None
    limit: int
    from_chain: int | None
    to_chain: int | None
    from_token: str | None
    to_token: str | None
    amount: str | None
    address: str | None
    slippage: float | None
    execute: bool
    cache_ttl: float
    source_timeout: float
    route_timeout: float
    integrator: str
    ens_rpc_url: str
    lifi_api_url: str
    lifi_api_key: str | None
    private_key: str | None
    rpc_urls: dict[int, str]


def parse_chain(value: str) -> int:
    """Accepts a chain id ("8453") or a chain name ("base")."""
    text = str(value).strip().lower()
    if text.isdigit():
        chain_id = int(text)
    else:
        chain_id = constants.CHAIN_NAME_TO_ID.get(text)
    if chain_id not in constants.CHAIN_CONFIG:
        raise argparse.ArgumentTypeError(
            f"unsupported chain '{value}' (choose from {', '.join(constants.CHAIN_NAME_TO_ID)})"
        )
    return chain_id


def chain_rpc_urls(environ=None) -> dict[int, str]:
    """Per-chain RPC endpoints; ``RPC_URL_<CHAINID>`` overrides the built-in default."""
    environ = os.environ if environ is None else environ
    urls = {}
    for chain_id, info in constants.CHAIN_CONFIG.items():
        override = environ.get(f"{constants.CHAIN_RPC_URL_ENV_PREFIX}{chain_id}")
        urls[chain_id] = override or info['rpcUrl']
    return urls


def _add_route_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('--from-chain', type=parse_chain, required=True, help='Source chain name or id.')
    parser.add_argument('--from-token', required=True, help='Source token symbol, e.g. USDC.')
    parser.add_argument('--amount', required=True, help='Human-readable amount, e.g. 100.5.')
    parser.add_argument('--slippage', type=float, help='Slippage tolerance percentage (e.g. 0.5).')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Resolve ENS-stored yield preferences and turn them into a bridge-and-deposit intent.",
        epilog="Example: ./main.py intent alice.eth --from-chain arbitrum --from-token USDC --amount 100",
    )
    parser.add_argument('--cache-ttl', type=float, default=constants.YIELD_CACHE_TTL_SECONDS, help='Seconds yield data stays cached (default: 300).')
    parser.add_argument('--source-timeout', type=float, default=15.0, help='Per-request timeout for yield sources and ENS, in seconds (default: 15).')
    parser.add_argument('--route-timeout', type=float, default=30.0, help='Timeout for routing-service requests, in seconds (default: 30).')
    parser.add_argument('--integrator', default=constants.DEFAULT_INTEGRATOR, help=f'Integrator id sent to the routing service (default: {constants.DEFAULT_INTEGRATOR}).')

    subparsers = parser.add_subparsers(dest='command', required=True)

    profile = subparsers.add_parser('profile', help='Resolve an ENS name and show its preferences.')
    profile.add_argument('ens_name', help='ENS name, e.g. alice.eth.')

    records = subparsers.add_parser('records', help='Print the text records encoding an ENS name\'s effective preferences.')
    records.add_argument('ens_name', help='ENS name, e.g. alice.eth.')

    yields = subparsers.add_parser('yields', help='List yield opportunities.')
    yields.add_argument('--chain', type=parse_chain, help='Only this chain (name or id).')
    yields.add_argument('--token', help='Only this token symbol.')
    yields.add_argument('--risk', choices=list(constants.RISK_LEVELS_BY_TOLERANCE), help='Risk tolerance filter.')
    yields.add_argument('--min-tvl', type=float, help='Minimum TVL in USD.')
    yields.add_argument('--limit', type=int, default=10, help='Number of opportunities to show (default: 10).')

    quote = subparsers.add_parser('quote', help='Quote a bridge/swap route.')
    _add_route_arguments(quote)
    quote.add_argument('--to-chain', type=parse_chain, required=True, help='Destination chain name or id.')
    quote.add_argument('--to-token', required=True, help='Destination token symbol.')
    quote.add_argument('--address', required=True, help='Sender address.')

    intent = subparsers.add_parser('intent', help='Build (and optionally execute) a yield intent for an ENS name.')
    intent.add_argument('ens_name', help='ENS name whose preferences drive the intent.')
    _add_route_arguments(intent)
    intent.add_argument('--to-chain', type=parse_chain, help='Destination chain (default: first preferred chain).')
    intent.add_argument('--to-token', help='Destination token symbol (default: the source token).')
    intent.add_argument('--execute', action='store_true', help='Sign and submit the intent with INTENT_PRIVATE_KEY.')
    return parser


def load_config(argv: Optional[list[str]] = None) -> AppConfig:
    """
    Parses command-line arguments and loads environment variables to create a configuration object.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if getattr(args, 'limit', 1) <= 0:
        parser.error('--limit must be positive.')
    slippage = getattr(args, 'slippage', None)
    if slippage is not None and not 0 < slippage <= 10:
        parser.error('--slippage must be a percentage between 0 and 10.')

    ens_rpc_url = os.environ.get(constants.ENS_RPC_URL_ENV_VAR) or constants.DEFAULT_ENS_RPC_URL
    lifi_api_url = os.environ.get(constants.LIFI_API_URL_ENV_VAR) or constants.LIFI_API_BASE_URL
    lifi_api_key = os.environ.get(constants.LIFI_API_KEY_ENV_VAR)
    private_key = os.environ.get(constants.INTENT_PRIVATE_KEY_ENV_VAR)

    execute = getattr(args, 'execute', False)
    if execute and not private_key:
        print(f"{constants.C_RED}{constants.INTENT_PRIVATE_KEY_ENV_VAR} environment variable not set; required for --execute.{constants.C_RESET}")
        exit(1)

    token = getattr(args, 'token', None)
    from_token = getattr(args, 'from_token', None)
    to_token = getattr(args, 'to_token', None)

    return AppConfig(
        command=args.command,
        ens_name=getattr(args, 'ens_name', None),
        chain_id=getattr(args, 'chain', None),
        token=token.upper() if token else None,
        risk_tolerance=getattr(args, 'risk', None),
        min_tvl=getattr(args, 'min_tvl', None),
        limit=getattr(args, 'limit', 10),
        from_chain=getattr(args, 'from_chain', None),
        to_chain=getattr(args, 'to_chain', None),
        from_token=from_token.upper() if from_token else None,
        to_token=to_token.upper() if to_token else None,
        amount=getattr(args, 'amount', None),
        address=getattr(args, 'address', None),
        slippage=slippage / 100 if slippage is not None else None,
        execute=execute,
        cache_ttl=args.cache_ttl,
        source_timeout=args.source_timeout,
        route_timeout=args.route_timeout,
        integrator=args.integrator,
        ens_rpc_url=ens_rpc_url,
        lifi_api_url=lifi_api_url,
        lifi_api_key=lifi_api_key,
        private_key=private_key,
        rpc_urls=chain_rpc_urls(),
    )
