#!/usr/bin/env python3
"""Route quoting against the routing service."""
from __future__ import annotations

import math
from decimal import ROUND_DOWN, Decimal, InvalidOperation
from typing import Dict, Optional

from constants import (
    DEFAULT_SLIPPAGE,
    DEFAULT_TOKEN_DECIMALS,
    ROUTE_ORDER,
    TOKEN_ADDRESSES,
    TOKEN_DECIMALS,
)
from errors import InvalidAmountError, UnsupportedTokenError
from intent.models import IntentRequest, Route, RouteQuote
from services.lifi_client import LiFiClient


def resolve_token_address(chain_id: int, symbol: str) -> Optional[str]:
    return TOKEN_ADDRESSES.get(chain_id, {}).get(symbol.upper())


def token_decimals(symbol: str) -> int:
    return TOKEN_DECIMALS.get(symbol.upper(), DEFAULT_TOKEN_DECIMALS)


def to_base_units(amount: str, decimals: int) -> str:
    try:
        value = Decimal(str(amount).strip())
    except InvalidOperation:
        raise InvalidAmountError(amount) from None
    if not value.is_finite() or value <= 0:
        raise InvalidAmountError(amount)
    base_units = int((value * (Decimal(10) ** decimals)).to_integral_value(rounding=ROUND_DOWN))
    if base_units <= 0:
        raise InvalidAmountError(amount)
    return str(base_units)


def from_base_units(amount: str, decimals: int) -> str:
    value = Decimal(amount) / (Decimal(10) ** decimals)
    return format(value.normalize(), 'f')


class RouteQuoter:
    """Requests bridge/swap routes. The provider's first route is the best one."""

    def __init__(self, client: LiFiClient) -> None:
        self.client = client

    async def get_routes(
        self,
        from_chain: int,
        to_chain: int,
        from_token: str,
        to_token: str,
        amount: str,
        from_address: str,
        slippage: float = DEFAULT_SLIPPAGE,
    ) -> Optional[RouteQuote]:
        """Returns None when the provider has no route.

        Raises UnsupportedTokenError, before any request, when either token
        has no address on its chain.
        """
        from_token_address = resolve_token_address(from_chain, from_token)
        to_token_address = resolve_token_address(to_chain, to_token)
        if not from_token_address or not to_token_address:
            raise UnsupportedTokenError(from_token, to_token)

        raw_routes = await self.client.get_routes(
            from_chain_id=from_chain,
            to_chain_id=to_chain,
            from_token_address=from_token_address,
            to_token_address=to_token_address,
            from_amount=to_base_units(amount, token_decimals(from_token)),
            from_address=from_address,
            slippage_pct=slippage * 100,
            order=ROUTE_ORDER,
        )
        if not raw_routes:
            return None

        routes = tuple(Route.from_lifi(r) for r in raw_routes)
        best = routes[0]
        to_decimals = best.to_token_decimals or token_decimals(to_token)
        return RouteQuote(
            routes=routes,
            best_route=best,
            from_amount=amount,
            to_amount=from_base_units(best.to_amount, to_decimals),
            gas_cost_usd=best.gas_cost_usd,
            estimated_time=best.estimated_duration,
        )

    async def get_best_route(self, request: IntentRequest) -> Optional[Route]:
        quote = await self.get_routes(
            request.from_chain,
            request.to_chain,
            request.from_token,
            request.to_token,
            request.from_amount,
            request.user_address,
            request.slippage or DEFAULT_SLIPPAGE,
        )
        return quote.best_route if quote else None


def format_route_display(route: Route) -> Dict[str, object]:
    total_seconds = int(route.estimated_duration)
    if total_seconds > 60:
        total_time = f"{math.ceil(total_seconds / 60)} min"
    else:
        total_time = f"{total_seconds} sec"
    return {
        'steps': [
            {
                'type': step.type,
                'fromChain': str(step.from_chain_id),
                'toChain': str(step.to_chain_id),
                'fromToken': step.from_token,
                'toToken': step.to_token,
                'tool': step.tool_name,
            }
            for step in route.steps
        ],
        'totalTime': total_time,
        'totalGas': f"${route.gas_cost_usd:.2f}",
    }
