#!/usr/bin/env python3
import asyncio
import aiohttp

import constants
from config import AppConfig, load_config
from errors import IntentError
from intent.models import ExecutionStatus, IntentRequest, IntentStep, ProgressStatus
from intent.orchestrator import IntentOrchestrator, IntentState
from intent.route_quoter import RouteQuoter, format_route_display
from preferences.models import Profile
from preferences.records import serialize_preferences
from preferences.resolver import PreferenceResolver
from services.beefy_client import BeefyClient
from services.defillama_client import DefiLlamaClient
from services.ens_client import ENSClient
from services.lifi_client import LiFiClient
from services.route_executor import RouteExecutor
from services.yearn_client import YearnClient
from yields.aggregator import YieldAggregator
from yields.models import YieldOpportunity, YieldQuery, YieldSourceConfig

SOURCE_CLIENTS = {
    'defillama': DefiLlamaClient,
    'yearn': YearnClient,
    'beefy': BeefyClient,
}

PROGRESS_COLOURS = {
    ProgressStatus.PENDING: constants.C_RESET,
    ProgressStatus.LOADING: constants.C_BLUE,
    ProgressStatus.SUCCESS: constants.C_GREEN,
    ProgressStatus.ERROR: constants.C_RED,
}


def build_services(config: AppConfig, session: aiohttp.ClientSession) -> dict:
    """Creates the shared clients for one CLI run."""
    services = {}
    services['ens_client'] = ENSClient(config.ens_rpc_url, timeout=config.source_timeout)
    services['resolver'] = PreferenceResolver(services['ens_client'])

    sources = []
    for source_dict in constants.YIELD_SOURCES:
        source_config = YieldSourceConfig.from_dict(source_dict)
        client_cls = SOURCE_CLIENTS.get(source_config.name)
        if client_cls is None:
            print(f"{constants.C_YELLOW}No client for yield source '{source_config.name}'; skipping.{constants.C_RESET}")
            continue
        sources.append(client_cls(session, source_config, timeout=config.source_timeout))
    services['aggregator'] = YieldAggregator(sources, cache_ttl=config.cache_ttl)

    lifi_client = LiFiClient(
        session,
        base_url=config.lifi_api_url,
        api_key=config.lifi_api_key,
        integrator=config.integrator,
        timeout=config.route_timeout,
    )
    services['lifi_client'] = lifi_client
    services['quoter'] = RouteQuoter(lifi_client)

    executor = None
    if config.execute:
        try:
            executor = RouteExecutor(lifi_client, config.private_key, config.rpc_urls)
            print(f"Route executor initialized for {executor.address}.")
        except ValueError as exc:
            print(f"{constants.C_RED}Failed to initialise route executor: {exc}{constants.C_RESET}")
            exit(1)
    services['executor'] = executor
    return services


async def profile_command(config: AppConfig, services: dict) -> int:
    profile = await services['resolver'].resolve(config.ens_name)
    if profile is None:
        print(f"{constants.C_YELLOW}{config.ens_name} does not resolve to an address.{constants.C_RESET}")
        return 1
    _print_profile(profile)
    return 0


async def records_command(config: AppConfig, services: dict) -> int:
    profile = await services['resolver'].resolve(config.ens_name)
    if profile is None:
        print(f"{constants.C_YELLOW}{config.ens_name} does not resolve to an address.{constants.C_RESET}")
        return 1
    heading = f"Text records for {profile.name}"
    if profile.is_following_strategy:
        heading += f" (effective, following {profile.followed_strategy_owner})"
    print(heading)
    print("=" * len(heading))
    for key, value in serialize_preferences(profile.preferences).items():
        print(f"{key} = {value}")
    return 0


async def yields_command(config: AppConfig, services: dict) -> int:
    query = YieldQuery(
        chain_id=config.chain_id,
        token=config.token,
        risk_tolerance=config.risk_tolerance,
        min_tvl_usd=config.min_tvl,
        limit=config.limit,
    )
    opportunities = await services['aggregator'].query(query)
    _print_yields(opportunities, config.limit)
    return 0


async def quote_command(config: AppConfig, services: dict) -> int:
    quote = await services['quoter'].get_routes(
        config.from_chain,
        config.to_chain,
        config.from_token,
        config.to_token,
        config.amount,
        config.address,
        config.slippage or constants.DEFAULT_SLIPPAGE,
    )
    if quote is None:
        print(f"{constants.C_YELLOW}No route found for {config.amount} {config.from_token}.{constants.C_RESET}")
        return 1
    print(
        f"{config.amount} {config.from_token} on {_chain_label(config.from_chain)} -> "
        f"{constants.C_GREEN}{quote.to_amount} {config.to_token}{constants.C_RESET} on {_chain_label(config.to_chain)}"
        f" ({len(quote.routes)} route(s) found)"
    )
    _print_route(format_route_display(quote.best_route))
    return 0


async def intent_command(config: AppConfig, services: dict) -> int:
    profile = await services['resolver'].resolve(config.ens_name)
    if profile is None:
        print(f"{constants.C_RED}{config.ens_name} does not resolve to an address.{constants.C_RESET}")
        return 1

    preferences = profile.preferences
    to_chain = config.to_chain or _first_known_chain(preferences.preferred_chains)
    if to_chain is None:
        print(f"{constants.C_RED}No supported destination chain in {profile.name}'s preferences; pass --to-chain.{constants.C_RESET}")
        return 1

    request = IntentRequest(
        from_chain=config.from_chain,
        from_token=config.from_token,
        from_amount=config.amount,
        to_chain=to_chain,
        to_token=config.to_token or config.from_token,
        user_address=profile.address,
        ens_name=profile.name,
        slippage=config.slippage,
    )

    orchestrator = IntentOrchestrator(services['quoter'], services['aggregator'], services.get('executor'))
    orchestrator.subscribe_state(_print_state)
    orchestrator.subscribe_progress(_print_progress)

    if config.execute:
        state = await orchestrator.run(request, preferences)
    else:
        state = await orchestrator.build_intent(request, preferences)

    if state.step is IntentStep.FAILED:
        print(f"{constants.C_RED}Intent failed: {state.error}{constants.C_RESET}")
        return 1

    _print_intent(state)
    if state.step is IntentStep.READY:
        print("Dry run only; pass --execute to sign and submit.")
    return 0


COMMANDS = {
    'profile': profile_command,
    'records': records_command,
    'yields': yields_command,
    'quote': quote_command,
    'intent': intent_command,
}


async def run_command(config: AppConfig) -> int:
    async with aiohttp.ClientSession(headers={'User-Agent': 'YieldIntent/1.0'}) as session:
        services = build_services(config, session)
        try:
            return await COMMANDS[config.command](config, services)
        except IntentError as exc:
            print(f"{constants.C_RED}{exc.message}{constants.C_RESET}")
            return 1
        except aiohttp.ClientError as exc:
            print(f"{constants.C_RED}Network error: {exc}{constants.C_RESET}")
            return 1


def main(argv: list[str] | None = None) -> int:
    """The main synchronous entry point for the application."""
    config = load_config(argv)
    return asyncio.run(run_command(config))


def _chain_label(chain_id: int | None) -> str:
    chain = constants.CHAIN_CONFIG.get(chain_id)
    return chain['displayName'] if chain else str(chain_id)


def _first_known_chain(chain_names: list[str]) -> int | None:
    for name in chain_names:
        if name in constants.CHAIN_NAME_TO_ID:
            return constants.CHAIN_NAME_TO_ID[name]
    return None


def _print_state(state: IntentState) -> None:
    print(f"[{state.step.value}]")


def _print_progress(event: ExecutionStatus) -> None:
    colour = PROGRESS_COLOURS.get(event.status, constants.C_RESET)
    line = f"  {colour}{event.message}{constants.C_RESET}"
    if event.tx_hash:
        line += f" (tx {event.tx_hash})"
    print(line)


def _print_profile(profile: Profile) -> None:
    prefs = profile.preferences
    print(f"{constants.C_GREEN}{profile.name}{constants.C_RESET} -> {profile.address}")
    if profile.avatar:
        print(f"Avatar: {profile.avatar}")
    if profile.is_following_strategy:
        print(f"Following strategy of {profile.followed_strategy_owner}")
    print(f"Preferred chains:   {', '.join(prefs.preferred_chains) or '-'}")
    print(f"Risk tolerance:     {prefs.risk_tolerance.value}")
    print(f"Max slippage:       {prefs.max_slippage_bps} bps ({prefs.slippage * 100:.2f}%)")
    print(f"Default action:     {prefs.default_action.value}")
    print(f"Whitelisted:        {', '.join(prefs.whitelisted_protocols) or '-'}")
    print(f"Blacklisted:        {', '.join(prefs.blacklisted_protocols) or '-'}")
    print(f"Min liquidity:      ${prefs.min_liquidity_usd:,}")
    print(f"Auto rebalance:     {'Yes' if prefs.auto_rebalance else 'No'}")


def _print_route(display: dict) -> None:
    for idx, step in enumerate(display['steps'], start=1):
        print(
            f"  {idx}. {step['type']} {step['fromToken']} ({step['fromChain']}) -> "
            f"{step['toToken']} ({step['toChain']}) via {step['tool']}"
        )
    print(f"Estimated time: {display['totalTime']}  Gas: {display['totalGas']}")


def _print_intent(state: IntentState) -> None:
    composed = state.composed_intent
    vault = composed.target_vault
    target = state.target_yield
    print(
        f"Deposit into {constants.C_GREEN}{vault.protocol}{constants.C_RESET} ({vault.address}) on "
        f"{_chain_label(composed.to_chain)} at {composed.expected_apy * 100:.2f}% APY"
        f" (TVL ${target.tvl_usd:,.0f}, {target.risk_level.value} risk)"
    )
    print(f"Total steps: {composed.total_steps}  Estimated gas: ${composed.estimated_gas_usd:.2f}")
    if state.route is not None:
        _print_route(format_route_display(state.route))
    if state.execution is not None:
        for step in state.execution.steps:
            link = f" {step.explorer_url}" if step.explorer_url else ""
            print(f"  - {step.type.value}: {step.status.value}{link}")


def _print_yields(opportunities: list[YieldOpportunity], limit: int) -> None:
    heading = f"Showing up to {limit} yield opportunities"
    print(heading)
    print("=" * len(heading))

    if not opportunities:
        print("No yield opportunities found.")
        return

    headers = ["Protocol", "Chain", "Token", "APY %", "TVL $", "Risk", "Source"]

    def _format_row(opp: YieldOpportunity) -> list[str]:
        return [
            opp.protocol,
            opp.chain_name,
            opp.token,
            f"{opp.apy * 100:.2f}",
            f"{opp.tvl_usd:,.0f}",
            opp.risk_level.value,
            opp.source,
        ]

    rows = [_format_row(opp) for opp in opportunities]
    widths = [len(h) for h in headers]
    for row in rows:
        for idx, cell in enumerate(row):
            widths[idx] = max(widths[idx], len(cell))

    def _format_line(row: list[str]) -> str:
        return "  ".join(cell.ljust(widths[idx]) for idx, cell in enumerate(row))

    print(_format_line(headers))
    print("  ".join('-' * w for w in widths))
    for row in rows:
        print(_format_line(row))


if __name__ == "__main__":
    raise SystemExit(main())
