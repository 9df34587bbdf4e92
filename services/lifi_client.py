#!/usr/bin/env python3
from typing import Any, Dict, List, Optional

import aiohttp

from constants import DEFAULT_INTEGRATOR, LIFI_API_BASE_URL
from services.http_utils import api_get, api_post, log_error


class LiFiClient:
    """Thin async wrapper over the LI.FI REST API.

    Request errors are logged and re-raised for the caller to handle.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        *,
        base_url: str = LIFI_API_BASE_URL,
        api_key: Optional[str] = None,
        integrator: str = DEFAULT_INTEGRATOR,
        timeout: float = 30,
    ) -> None:
        self.session = session
        self.base_url = base_url.rstrip('/')
        self.integrator = integrator
        self.timeout = timeout
        self.headers = {'x-lifi-api-key': api_key} if api_key else {}

    async def get_routes(
        self,
        *,
        from_chain_id: int,
        to_chain_id: int,
        from_token_address: str,
        to_token_address: str,
        from_amount: str,
        from_address: str,
        to_address: Optional[str] = None,
        slippage_pct: float,
        order: str = 'RECOMMENDED',
    ) -> List[Dict[str, Any]]:
        """Returns the provider's routes in its own ranking order."""
        body = {
            'fromChainId': from_chain_id,
            'toChainId': to_chain_id,
            'fromTokenAddress': from_token_address,
            'toTokenAddress': to_token_address,
            'fromAmount': from_amount,
            'fromAddress': from_address,
            'toAddress': to_address or from_address,
            'options': {
                'slippage': slippage_pct,
                'order': order,
                'allowSwitchChain': True,
                'integrator': self.integrator,
            },
        }
        try:
            data = await api_post(f"{self.base_url}/advanced/routes", self.session, json_data=body, headers=self.headers, timeout=self.timeout)
        except Exception as e:
            log_error(f"Error getting LI.FI routes: {e}")
            raise
        return (data or {}).get('routes') or []

    async def get_step_transaction(self, step: Dict[str, Any]) -> Dict[str, Any]:
        """Populates ``transactionRequest`` on a route step."""
        try:
            return await api_post(f"{self.base_url}/advanced/stepTransaction", self.session, json_data=step, headers=self.headers, timeout=self.timeout)
        except Exception as e:
            log_error(f"Error getting LI.FI step transaction for step {step.get('id')}: {e}")
            raise

    async def get_status(self, tx_hash: str, *, bridge: str, from_chain_id: int, to_chain_id: int) -> Dict[str, Any]:
        params = {
            'txHash': tx_hash,
            'bridge': bridge,
            'fromChain': str(from_chain_id),
            'toChain': str(to_chain_id),
        }
        try:
            return await api_get(f"{self.base_url}/status", self.session, params=params, headers=self.headers, timeout=self.timeout)
        except Exception as e:
            log_error(f"Error getting LI.FI status for {tx_hash}: {e}")
            raise
