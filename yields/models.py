#!/usr/bin/env python3
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from constants import ZERO_ADDRESS


class RiskLevel(str, Enum):
    LOW = 'low'
    MEDIUM = 'medium'
    HIGH = 'high'


class SourceStatus(str, Enum):
    OK = 'ok'
    SOFT_FAILURE = 'soft_failure'
    HARD_FAILURE = 'hard_failure'


@dataclass(frozen=True)
class FunctionParam:
    name: str
    type: str


ERC4626_DEPOSIT_PARAMS: Tuple[FunctionParam, ...] = (
    FunctionParam('assets', 'uint256'),
    FunctionParam('receiver', 'address'),
)
ERC4626_WITHDRAW_PARAMS: Tuple[FunctionParam, ...] = (
    FunctionParam('assets', 'uint256'),
    FunctionParam('receiver', 'address'),
    FunctionParam('owner', 'address'),
)


@dataclass(frozen=True)
class OpportunityMetadata:
    protocol_name: str
    protocol_icon: str
    token_icon: str
    vault_name: str
    is_audited: bool = True
    vault_version: Optional[str] = None


@dataclass(frozen=True)
class YieldOpportunity:
    """A single vault/pool offering. ``apy`` is a decimal (0.05 == 5%)."""
    id: str
    source: str
    protocol: str
    protocol_slug: str
    chain_id: int
    chain_name: str
    token: str
    token_address: str
    vault_address: str
    apy: float
    tvl_usd: float
    risk_level: RiskLevel
    metadata: OpportunityMetadata
    deposit_function: str = 'deposit'
    deposit_params: Tuple[FunctionParam, ...] = ERC4626_DEPOSIT_PARAMS
    withdrawal_function: str = 'withdraw'
    withdrawal_params: Tuple[FunctionParam, ...] = ERC4626_WITHDRAW_PARAMS

    def __post_init__(self):
        if self.apy < 0:
            raise ValueError(f"apy must be >= 0, got {self.apy}")


def make_opportunity_id(source: str, chain: object, protocol_slug: str, symbol: str, pool_address: str) -> str:
    return f"{source}-{chain}-{protocol_slug}-{symbol}-{pool_address or ZERO_ADDRESS}"


@dataclass
class YieldQuery:
    chain_id: Optional[int] = None
    token: Optional[str] = None
    min_apy: Optional[float] = None
    max_apy: Optional[float] = None
    min_tvl_usd: Optional[float] = None
    risk_tolerance: Optional[str] = None
    whitelisted_protocols: List[str] = field(default_factory=list)
    blacklisted_protocols: List[str] = field(default_factory=list)
    limit: Optional[int] = None


@dataclass
class YieldSourceConfig:
    name: str
    enabled: bool
    weight: float
    chains: List[int]
    base_url: str
    api_key: Optional[str] = None
    failure_policy: str = 'soft'  # 'soft' or 'hard'
    retries: int = 0
    retry_delay: float = 1.0

    @classmethod
    def from_dict(cls, data: dict) -> 'YieldSourceConfig':
        return cls(
            name=data['name'],
            enabled=bool(data.get('enabled', True)),
            weight=float(data.get('weight', 1.0)),
            chains=list(data.get('chains') or []),
            base_url=data['baseUrl'],
            api_key=data.get('apiKey'),
            failure_policy=data.get('failurePolicy', 'soft'),
            retries=int(data.get('retries', 0)),
            retry_delay=float(data.get('retryDelay', 1.0)),
        )


@dataclass
class SourceResult:
    """Outcome of one source's fetch for one aggregation cycle."""
    source: str
    status: SourceStatus
    opportunities: List[YieldOpportunity] = field(default_factory=list)
    error: Optional[BaseException] = None
