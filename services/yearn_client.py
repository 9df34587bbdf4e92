#!/usr/bin/env python3
from typing import Any, Dict, List, Optional

import aiohttp

from constants import CHAIN_CONFIG, PROTOCOL_METADATA, TOKEN_ICONS, ZERO_ADDRESS
from services.http_utils import api_get, log_error
from yields.models import (
    OpportunityMetadata,
    RiskLevel,
    YieldOpportunity,
    YieldSourceConfig,
    make_opportunity_id,
)

PROTOCOL_SLUG = 'yearn-v3'


class YearnClient:
    """Adapter for the Yearn vaults API, queried once per configured chain.

    A chain that fails is logged and skipped; the other chains still count.
    """

    name = 'yearn'

    def __init__(self, session: aiohttp.ClientSession, config: YieldSourceConfig, timeout: float = 15):
        self.session = session
        self.config = config
        self.timeout = timeout

    async def fetch_opportunities(self) -> List[YieldOpportunity]:
        opportunities: List[YieldOpportunity] = []
        for chain_id in self.config.chains:
            try:
                vaults = await api_get(f"{self.config.base_url}/{chain_id}/vaults/all", self.session, timeout=self.timeout)
            except Exception as e:
                log_error(f"Error fetching Yearn yields for chain {chain_id}: {e}")
                continue
            if not isinstance(vaults, list):
                log_error(f"Unexpected Yearn response for chain {chain_id}: {str(vaults)[:200]}")
                continue
            for vault in vaults:
                opp = self._to_opportunity(vault, chain_id)
                if opp is not None:
                    opportunities.append(opp)
        return opportunities

    def _to_opportunity(self, vault: Dict[str, Any], chain_id: int) -> Optional[YieldOpportunity]:
        if vault.get('type') != 'v3' or vault.get('kind') != 'Vault':
            return None
        chain_info = CHAIN_CONFIG.get(chain_id)
        if chain_info is None:
            return None

        try:
            apy = max(float((vault.get('apy') or {}).get('net_apy') or 0.0), 0.0)
            tvl_usd = float((vault.get('tvl') or {}).get('tvl') or 0.0)
        except (TypeError, ValueError):
            return None

        metadata = PROTOCOL_METADATA[PROTOCOL_SLUG]
        token = vault.get('token') or {}
        symbol = vault.get('symbol') or ''
        address = vault.get('address') or ''

        return YieldOpportunity(
            id=make_opportunity_id(self.name, chain_id, PROTOCOL_SLUG, symbol, address),
            source=self.name,
            protocol=metadata['name'],
            protocol_slug=PROTOCOL_SLUG,
            chain_id=chain_id,
            chain_name=chain_info['name'],
            token=symbol,
            token_address=token.get('address') or ZERO_ADDRESS,
            vault_address=address,
            apy=apy,
            tvl_usd=tvl_usd,
            risk_level=RiskLevel.MEDIUM,
            metadata=OpportunityMetadata(
                protocol_name=metadata['name'],
                protocol_icon=metadata['icon'],
                token_icon=TOKEN_ICONS.get(token.get('symbol') or '', ''),
                vault_name=vault.get('name') or f"{symbol} Vault",
                vault_version=vault.get('version'),
            ),
        )
