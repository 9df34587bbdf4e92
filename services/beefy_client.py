#!/usr/bin/env python3
from typing import Any, Dict, List, Optional

import aiohttp

from constants import CHAIN_CONFIG, CHAIN_NAME_TO_ID, PROTOCOL_METADATA, TOKEN_ICONS, ZERO_ADDRESS
from services.http_utils import api_get
from yields.models import (
    FunctionParam,
    OpportunityMetadata,
    RiskLevel,
    YieldOpportunity,
    YieldSourceConfig,
    make_opportunity_id,
)

PROTOCOL_SLUG = 'beefy'


class BeefyClient:
    """Adapter for Beefy vaults. Only single-asset vaults are surfaced."""

    name = 'beefy'

    def __init__(self, session: aiohttp.ClientSession, config: YieldSourceConfig, timeout: float = 15):
        self.session = session
        self.config = config
        self.timeout = timeout

    async def fetch_opportunities(self) -> List[YieldOpportunity]:
        vaults = await api_get(f"{self.config.base_url}/cow-vaults", self.session, timeout=self.timeout)
        opportunities = []
        for vault in vaults or []:
            opp = self._to_opportunity(vault)
            if opp is not None:
                opportunities.append(opp)
        return opportunities

    def _to_opportunity(self, vault: Dict[str, Any]) -> Optional[YieldOpportunity]:
        chain_id = CHAIN_NAME_TO_ID.get((vault.get('network') or '').lower())
        if chain_id is None or chain_id not in self.config.chains:
            return None

        assets = vault.get('assets') or []
        if len(assets) != 1:
            return None

        try:
            apy = max(float(vault.get('apy') or 0.0), 0.0) / 100
            tvl_usd = float(vault.get('tvlUsd') or 0.0)
        except (TypeError, ValueError):
            return None

        metadata = PROTOCOL_METADATA[PROTOCOL_SLUG]
        symbol = assets[0]
        address = vault.get('earnContractAddress') or ''

        return YieldOpportunity(
            id=make_opportunity_id(self.name, chain_id, PROTOCOL_SLUG, symbol, address),
            source=self.name,
            protocol=metadata['name'],
            protocol_slug=PROTOCOL_SLUG,
            chain_id=chain_id,
            chain_name=CHAIN_CONFIG[chain_id]['name'],
            token=symbol,
            token_address=vault.get('tokenAddress') or ZERO_ADDRESS,
            vault_address=address,
            apy=apy,
            tvl_usd=tvl_usd,
            risk_level=RiskLevel.MEDIUM,
            metadata=OpportunityMetadata(
                protocol_name=metadata['name'],
                protocol_icon=metadata['icon'],
                token_icon=TOKEN_ICONS.get(symbol, ''),
                vault_name=vault.get('name') or f"{symbol} Vault",
            ),
            deposit_params=(FunctionParam('amount', 'uint256'),),
            withdrawal_params=(FunctionParam('shares', 'uint256'),),
        )
