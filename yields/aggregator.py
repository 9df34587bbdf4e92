#!/usr/bin/env python3
import asyncio
from typing import Awaitable, Callable, Iterable, List, Optional, Protocol, Sequence

from constants import C_BLUE, C_RESET, RISK_LEVELS_BY_TOLERANCE, YIELD_CACHE_KEY, YIELD_CACHE_TTL_SECONDS
from errors import SourceFetchError
from services.http_utils import log_error, with_retry
from yields.cache import TTLCache
from yields.models import SourceResult, SourceStatus, YieldOpportunity, YieldQuery, YieldSourceConfig


class YieldSource(Protocol):
    name: str
    config: YieldSourceConfig

    async def fetch_opportunities(self) -> List[YieldOpportunity]: ...


def allowed_risk_levels(risk_tolerance: Optional[str]) -> List[str]:
    """conservative -> [low]; moderate -> [low, medium]; aggressive -> all."""
    key = getattr(risk_tolerance, 'value', risk_tolerance)
    return list(RISK_LEVELS_BY_TOLERANCE.get(key, ['low']))


class YieldAggregator:
    """Merges opportunities from every enabled source into one APY-sorted list.

    The merged superset is cached under a single key; ``query`` filters it
    downstream of the cache. Sources sharing the same vault are listed side
    by side, not merged.
    """

    def __init__(
        self,
        sources: Iterable[YieldSource],
        *,
        cache: Optional[TTLCache] = None,
        cache_ttl: float = YIELD_CACHE_TTL_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.sources = [s for s in sources if s.config.enabled]
        self.cache: TTLCache[List[YieldOpportunity]] = cache or TTLCache(cache_ttl)
        self._sleep = sleep
        self.last_results: List[SourceResult] = []

    async def _fetch_source(self, source: YieldSource) -> SourceResult:
        config = source.config
        try:
            if config.retries > 0:
                opportunities = await with_retry(
                    source.fetch_opportunities,
                    retries=config.retries,
                    delay=config.retry_delay,
                    sleep=self._sleep,
                )
            else:
                opportunities = await source.fetch_opportunities()
        except Exception as e:
            if config.failure_policy == 'hard':
                return SourceResult(source.name, SourceStatus.HARD_FAILURE, error=e)
            log_error(f"Yield source {source.name} failed, skipping this cycle: {e}")
            return SourceResult(source.name, SourceStatus.SOFT_FAILURE, error=e)
        return SourceResult(source.name, SourceStatus.OK, opportunities)

    async def fetch_all(self) -> List[YieldOpportunity]:
        """Returns the cached superset, refreshing it from all sources once expired.

        Raises SourceFetchError when a hard-failing source is exhausted.
        """
        cached = self.cache.get(YIELD_CACHE_KEY)
        if cached is not None:
            return cached

        results = await asyncio.gather(*(self._fetch_source(s) for s in self.sources))
        self.last_results = list(results)

        for result in results:
            if result.status is SourceStatus.HARD_FAILURE:
                log_error(f"Yield source {result.source} failed after retries: {result.error}")
                raise SourceFetchError(result.source, result.error)

        merged = [opp for result in results for opp in result.opportunities]
        merged.sort(key=lambda opp: opp.apy, reverse=True)

        counts = ", ".join(f"{r.source}={len(r.opportunities)}" for r in results)
        print(f"Fetched {C_BLUE}{len(merged)}{C_RESET} yield opportunities ({counts})")

        self.cache.set(YIELD_CACHE_KEY, merged)
        return merged

    async def query(self, params: YieldQuery) -> List[YieldOpportunity]:
        return filter_opportunities(await self.fetch_all(), params)

    async def get_best(
        self,
        chain_id: int,
        token: str,
        risk_tolerance: Optional[str] = None,
        min_tvl_usd: Optional[float] = None,
    ) -> Optional[YieldOpportunity]:
        yields = await self.query(YieldQuery(
            chain_id=chain_id,
            token=token,
            risk_tolerance=risk_tolerance,
            min_tvl_usd=min_tvl_usd,
            limit=1,
        ))
        return yields[0] if yields else None

    def clear_cache(self) -> None:
        self.cache.clear()


def filter_opportunities(yields: Sequence[YieldOpportunity], params: YieldQuery) -> List[YieldOpportunity]:
    """Applies every filter in ``params`` conjunctively, preserving input order."""
    result = list(yields)

    if params.chain_id:
        result = [y for y in result if y.chain_id == params.chain_id]

    if params.token:
        token_upper = params.token.upper()
        result = [y for y in result if y.token.upper() == token_upper]

    if params.min_apy is not None:
        result = [y for y in result if y.apy >= params.min_apy]

    if params.max_apy is not None:
        result = [y for y in result if y.apy <= params.max_apy]

    if params.min_tvl_usd is not None:
        result = [y for y in result if y.tvl_usd >= params.min_tvl_usd]

    if params.risk_tolerance:
        allowed = allowed_risk_levels(params.risk_tolerance)
        result = [y for y in result if y.risk_level.value in allowed]

    if params.whitelisted_protocols:
        whitelist = {p.lower() for p in params.whitelisted_protocols}
        result = [y for y in result if y.protocol_slug in whitelist]

    # Runs after the whitelist so a protocol on both lists is always dropped.
    if params.blacklisted_protocols:
        blacklist = {p.lower() for p in params.blacklisted_protocols}
        result = [y for y in result if y.protocol_slug not in blacklist]

    if params.limit:
        result = result[:params.limit]

    return result
