#!/usr/bin/env python3
from typing import Any, Dict, List, Optional

import aiohttp

from constants import CHAIN_NAME_TO_ID, PROTOCOL_METADATA, TOKEN_ICONS, ZERO_ADDRESS
from services.http_utils import api_get
from yields.models import (
    OpportunityMetadata,
    RiskLevel,
    YieldOpportunity,
    YieldSourceConfig,
    make_opportunity_id,
)


class DefiLlamaClient:
    """Adapter for the DefiLlama yields API (``/pools``)."""

    name = 'defillama'

    def __init__(self, session: aiohttp.ClientSession, config: YieldSourceConfig, timeout: float = 15):
        self.session = session
        self.config = config
        self.timeout = timeout

    async def fetch_opportunities(self) -> List[YieldOpportunity]:
        """Raises on network errors and non-2xx responses."""
        data = await api_get(f"{self.config.base_url}/pools", self.session, timeout=self.timeout)
        pools = (data or {}).get('data') or []
        opportunities = []
        for pool in pools:
            opp = self._to_opportunity(pool)
            if opp is not None:
                opportunities.append(opp)
        return opportunities

    def _to_opportunity(self, pool: Dict[str, Any]) -> Optional[YieldOpportunity]:
        protocol_slug = (pool.get('project') or '').lower()
        metadata = PROTOCOL_METADATA.get(protocol_slug)
        if not metadata:
            return None

        chain_name = pool.get('chain') or ''
        chain_id = CHAIN_NAME_TO_ID.get(chain_name.lower())
        if chain_id is None or chain_id not in self.config.chains:
            return None

        try:
            apy = max(float(pool.get('apy') or 0.0), 0.0) / 100
            tvl_usd = float(pool.get('tvlUsd') or 0.0)
        except (TypeError, ValueError):
            return None

        symbol = pool.get('symbol') or ''
        pool_address = pool.get('pool') or ''
        underlying = pool.get('underlyingTokens') or []

        return YieldOpportunity(
            id=make_opportunity_id(self.name, chain_name, protocol_slug, symbol, pool_address),
            source=self.name,
            protocol=metadata['name'],
            protocol_slug=protocol_slug,
            chain_id=chain_id,
            chain_name=chain_name,
            token=symbol,
            token_address=underlying[0] if underlying else ZERO_ADDRESS,
            vault_address=pool_address,
            apy=apy,
            tvl_usd=tvl_usd,
            risk_level=RiskLevel(metadata['riskLevel']),
            metadata=OpportunityMetadata(
                protocol_name=metadata['name'],
                protocol_icon=metadata['icon'],
                token_icon=TOKEN_ICONS.get(symbol, ''),
                vault_name=pool.get('poolMeta') or f"{symbol} Vault",
            ),
        )
