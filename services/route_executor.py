"""Signs and submits routing-service steps and the final vault deposit."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from eth_account import Account
from web3 import Web3

from constants import (
    ERC20_ABI,
    STATUS_POLL_INTERVAL,
    STATUS_POLL_MAX_ATTEMPTS,
    VAULT_ABI,
    ZERO_ADDRESS,
)
from errors import ExecutionError
from intent.models import ComposedIntent, ExecutionStatus, ProgressStatus, Route, RouteStep, StepType
from services.lifi_client import LiFiClient
from yields.models import FunctionParam

NATIVE_TOKEN_ADDRESSES = {ZERO_ADDRESS, '0xeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeee'}
AMOUNT_PARAM_NAMES = {'assets', 'amount', 'amount_', '_amount'}
RECEIVER_PARAM_NAMES = {'receiver', 'owner', 'to', 'recipient', 'onbehalfof'}

ProgressCallback = Callable[[ExecutionStatus], None]


class RouteExecutor:
    """Executes a route step by step with a local signer, then deposits into the vault.

    web3 calls are blocking and run in worker threads.
    """

    def __init__(
        self,
        lifi_client: LiFiClient,
        private_key: str,
        rpc_urls: Dict[int, str],
        *,
        poll_interval: float = STATUS_POLL_INTERVAL,
        max_polls: int = STATUS_POLL_MAX_ATTEMPTS,
        receipt_timeout: float = 300,
        web3_factory: Optional[Callable[[str], Web3]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.lifi_client = lifi_client
        self.rpc_urls = rpc_urls
        self.poll_interval = poll_interval
        self.max_polls = max_polls
        self.receipt_timeout = receipt_timeout
        self._web3_factory = web3_factory or (lambda url: Web3(Web3.HTTPProvider(url)))
        self._sleep = sleep
        self._web3_by_chain: Dict[int, Web3] = {}
        self.account = Account.from_key(private_key)
        self.logger = logging.getLogger(__name__)
        self.logger.setLevel(logging.INFO)

    @property
    def address(self) -> str:
        return self.account.address

    def _web3(self, chain_id: int) -> Web3:
        if chain_id not in self._web3_by_chain:
            rpc_url = self.rpc_urls.get(chain_id)
            if not rpc_url:
                raise ExecutionError(f"No RPC URL configured for chain {chain_id}")
            self._web3_by_chain[chain_id] = self._web3_factory(rpc_url)
        return self._web3_by_chain[chain_id]

    def _check_signer(self, user_address: str) -> None:
        if user_address.lower() != self.address.lower():
            raise ExecutionError(f"Signer {self.address} does not match intent address {user_address}")

    async def execute_route(self, route: Route, on_update: Optional[ProgressCallback] = None) -> List[str]:
        """Runs every step of ``route``; returns the submitted transaction hashes."""
        emit = on_update or (lambda status: None)
        raw_steps = route.raw.get('steps') or []
        if len(raw_steps) != len(route.steps):
            raise ExecutionError("Route is missing raw step data")
        from_address = (route.raw.get('fromAddress') or self.address)
        self._check_signer(from_address)

        tx_hashes = []
        for step, raw_step in zip(route.steps, raw_steps):
            step_type = StepType.BRIDGE if step.is_cross_chain else StepType.SWAP
            await self._ensure_allowance(
                step.from_chain_id,
                step.from_token_address,
                step.approval_address,
                int(step.from_amount),
                emit,
            )

            emit(ExecutionStatus(
                ProgressStatus.LOADING,
                f"Submitting {step.type} via {step.tool_name}...",
                step_type=step_type,
                chain_id=step.from_chain_id,
            ))
            populated = await self.lifi_client.get_step_transaction(raw_step)
            tx_request = populated.get('transactionRequest')
            if not tx_request:
                raise ExecutionError(f"No transaction returned for step {step.id}")

            tx_hash = await asyncio.to_thread(self._send_transaction, step.from_chain_id, tx_request)
            self.logger.info("[Execute] %s step %s via %s | tx=%s", step_type.value, step.id, step.tool, tx_hash)

            if step.is_cross_chain:
                await self._wait_for_bridge(step, tx_hash)

            emit(ExecutionStatus(
                ProgressStatus.SUCCESS,
                f"{step.type} via {step.tool_name} confirmed",
                tx_hash=tx_hash,
                step_type=step_type,
                chain_id=step.from_chain_id,
            ))
            tx_hashes.append(tx_hash)
        return tx_hashes

    async def deposit(
        self,
        intent: ComposedIntent,
        route: Route,
        on_update: Optional[ProgressCallback] = None,
    ) -> str:
        """Deposits the route's guaranteed output into the target vault."""
        emit = on_update or (lambda status: None)
        self._check_signer(intent.user_address)

        chain_id = intent.to_chain
        amount = int(route.to_amount_min)
        token_address = (route.raw.get('toToken') or {}).get('address')
        vault = intent.target_vault
        if not token_address:
            raise ExecutionError("Route does not name its output token")

        await self._ensure_allowance(chain_id, token_address, vault.address, amount, emit)

        args = self._deposit_args(vault.deposit_params, amount, intent.user_address)
        emit(ExecutionStatus(
            ProgressStatus.LOADING,
            f"Depositing into {vault.protocol}...",
            step_type=StepType.DEPOSIT,
            chain_id=chain_id,
        ))
        tx_hash = await asyncio.to_thread(self._call_vault, chain_id, vault.address, vault.deposit_function, args)
        self.logger.info("[Execute] deposit into %s (%s) | amount=%s tx=%s", vault.protocol, vault.address, amount, tx_hash)
        emit(ExecutionStatus(
            ProgressStatus.SUCCESS,
            f"Deposited into {vault.protocol}",
            tx_hash=tx_hash,
            step_type=StepType.DEPOSIT,
            chain_id=chain_id,
        ))
        return tx_hash

    @staticmethod
    def _deposit_args(params, amount: int, receiver: str) -> List[Any]:
        if not params or not all(isinstance(p, FunctionParam) for p in params):
            return [amount, Web3.to_checksum_address(receiver)]
        args: List[Any] = []
        for param in params:
            name = param.name.lower()
            if name in AMOUNT_PARAM_NAMES:
                args.append(amount)
            elif name in RECEIVER_PARAM_NAMES:
                args.append(Web3.to_checksum_address(receiver))
            else:
                raise ExecutionError(f"Unsupported deposit parameter '{param.name}'")
        return args

    async def _ensure_allowance(
        self,
        chain_id: int,
        token_address: Optional[str],
        spender: Optional[str],
        amount: int,
        emit: ProgressCallback,
    ) -> None:
        if not token_address or not spender or token_address.lower() in NATIVE_TOKEN_ADDRESSES:
            return
        allowance = await asyncio.to_thread(self._allowance, chain_id, token_address, spender)
        if allowance >= amount:
            return
        emit(ExecutionStatus(
            ProgressStatus.LOADING,
            f"Approving {spender} to spend tokens...",
            step_type=StepType.APPROVE,
            chain_id=chain_id,
        ))
        tx_hash = await asyncio.to_thread(self._approve, chain_id, token_address, spender, amount)
        emit(ExecutionStatus(
            ProgressStatus.SUCCESS,
            "Approval confirmed",
            tx_hash=tx_hash,
            step_type=StepType.APPROVE,
            chain_id=chain_id,
        ))

    async def _wait_for_bridge(self, step: RouteStep, tx_hash: str) -> None:
        for _ in range(self.max_polls):
            status = await self.lifi_client.get_status(
                tx_hash,
                bridge=step.tool,
                from_chain_id=step.from_chain_id,
                to_chain_id=step.to_chain_id,
            )
            state = (status or {}).get('status')
            if state == 'DONE':
                return
            if state == 'FAILED':
                reason = status.get('substatusMessage') or status.get('substatus') or 'unknown reason'
                raise ExecutionError(f"Bridge transfer {tx_hash} failed: {reason}")
            await self._sleep(self.poll_interval)
        raise ExecutionError(f"Timed out waiting for bridge transfer {tx_hash}")

    # --- blocking web3 helpers, run via asyncio.to_thread ---

    def _allowance(self, chain_id: int, token_address: str, spender: str) -> int:
        w3 = self._web3(chain_id)
        token = w3.eth.contract(address=Web3.to_checksum_address(token_address), abi=ERC20_ABI)
        return token.functions.allowance(self.address, Web3.to_checksum_address(spender)).call()

    def _approve(self, chain_id: int, token_address: str, spender: str, amount: int) -> str:
        w3 = self._web3(chain_id)
        token = w3.eth.contract(address=Web3.to_checksum_address(token_address), abi=ERC20_ABI)
        tx = token.functions.approve(Web3.to_checksum_address(spender), amount).build_transaction(
            self._base_tx(w3, chain_id)
        )
        return self._sign_and_wait(w3, tx)

    def _call_vault(self, chain_id: int, vault_address: str, function_name: str, args: List[Any]) -> str:
        w3 = self._web3(chain_id)
        vault = w3.eth.contract(address=Web3.to_checksum_address(vault_address), abi=VAULT_ABI)
        try:
            fn = getattr(vault.functions, function_name)
        except AttributeError as exc:
            raise ExecutionError(f"Vault has no function '{function_name}': {exc}") from exc
        tx = fn(*args).build_transaction(self._base_tx(w3, chain_id))
        return self._sign_and_wait(w3, tx)

    def _send_transaction(self, chain_id: int, tx_request: Dict[str, Any]) -> str:
        w3 = self._web3(chain_id)
        tx: Dict[str, Any] = {
            **self._base_tx(w3, chain_id),
            'to': Web3.to_checksum_address(tx_request['to']),
            'data': tx_request.get('data', '0x'),
            'value': int(str(tx_request.get('value') or '0'), 0),
        }
        if tx_request.get('gasPrice'):
            tx['gasPrice'] = int(str(tx_request['gasPrice']), 0)
        else:
            tx['gasPrice'] = w3.eth.gas_price
        if tx_request.get('gasLimit'):
            tx['gas'] = int(str(tx_request['gasLimit']), 0)
        else:
            tx['gas'] = w3.eth.estimate_gas(tx)
        return self._sign_and_wait(w3, tx)

    def _base_tx(self, w3: Web3, chain_id: int) -> Dict[str, Any]:
        return {
            'from': self.address,
            'chainId': chain_id,
            'nonce': w3.eth.get_transaction_count(self.address, 'pending'),
        }

    def _sign_and_wait(self, w3: Web3, tx: Dict[str, Any]) -> str:
        signed = self.account.sign_transaction(tx)
        tx_hash = w3.eth.send_raw_transaction(signed.raw_transaction)
        receipt = w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.receipt_timeout)
        hex_hash = Web3.to_hex(tx_hash)
        if receipt.get('status') != 1:
            raise ExecutionError(f"Transaction {hex_hash} reverted")
        return hex_hash
