#!/usr/bin/env python3
from typing import Optional

from constants import COMPOSED_INTENT_STEPS
from intent.models import ComposedIntent, IntentRequest, Route, TargetVault
from yields.models import YieldOpportunity


def compose_intent(
    request: IntentRequest,
    target_yield: YieldOpportunity,
    route: Optional[Route] = None,
) -> ComposedIntent:
    """Bundles a bridge/swap request with a vault deposit. No network calls.

    Without a route the plan counts as two steps (bridge/swap + deposit) at
    zero estimated gas; with one, its real step count and gas are used. The
    blacklist is the caller's responsibility.
    """
    if target_yield.deposit_params:
        deposit_params = tuple(target_yield.deposit_params)
    else:
        deposit_params = (request.from_amount, request.user_address)

    if route is not None:
        total_steps = len(route.steps) + 1
        estimated_gas_usd = route.gas_cost_usd
    else:
        total_steps = COMPOSED_INTENT_STEPS
        estimated_gas_usd = 0.0

    return ComposedIntent(
        request=request,
        target_vault=TargetVault(
            address=target_yield.vault_address,
            protocol=target_yield.protocol,
            deposit_function=target_yield.deposit_function or 'deposit',
            deposit_params=deposit_params,
        ),
        expected_apy=target_yield.apy,
        total_steps=total_steps,
        estimated_gas_usd=estimated_gas_usd,
    )
