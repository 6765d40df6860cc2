# parlay_server/services/market_service.py
import json
from typing import Any, List, Optional

import httpx

from ..config import GAMMA_URL, HTTP_TIMEOUT, logger
from ..models.api import MarketResolution, MarketSnapshot


def _json_list(value: Any) -> List[Any]:
    """Gamma returns outcomePrices / clobTokenIds as JSON-encoded strings."""
    if value is None:
        return []
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            return []
    return list(value) if isinstance(value, (list, tuple)) else []


def _prices(value: Any) -> List[float]:
    prices = []
    for price in _json_list(value):
        try:
            prices.append(float(price))
        except (TypeError, ValueError):
            prices.append(0.0)
    return prices


def parse_market(market_id: str, data: dict) -> MarketSnapshot:
    prices = _prices(data.get("outcomePrices"))
    liquidity = data.get("liquidityNum", data.get("liquidity"))
    return MarketSnapshot(
        market_id=str(data.get("id") or market_id),
        question=data.get("question", ""),
        yes_price=prices[0] if len(prices) > 0 else 0.0,
        no_price=prices[1] if len(prices) > 1 else 0.0,
        token_ids=[str(t) for t in _json_list(data.get("clobTokenIds"))],
        condition_id=data.get("conditionId"),
        end_date=data.get("endDate"),
        liquidity=float(liquidity) if liquidity not in (None, "") else None,
        category=data.get("category"),
        active=bool(data.get("active", True)),
        closed=bool(data.get("closed", False)),
    )


class MarketService:
    """Gamma market lookups. Snapshots go through the cache; resolution checks never do."""

    def __init__(
        self,
        cache=None,
        base_url: str = GAMMA_URL,
        timeout: float = HTTP_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.cache = cache
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def _fetch(self, market_id: str) -> Optional[dict]:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            res = await client.get(f"{self.base_url}/markets/{market_id}")
        if res.status_code == 404:
            return None
        res.raise_for_status()
        data = res.json()
        return data if isinstance(data, dict) else None

    async def get_market(self, market_id: str) -> Optional[MarketSnapshot]:
        """
        Raises:
            httpx.HTTPError: Gamma is unreachable or answered with an error status
        """
        if self.cache is not None:
            cached = self.cache.get(market_id)
            if cached is not None:
                return MarketSnapshot(**cached)

        try:
            data = await self._fetch(market_id)
        except httpx.HTTPError as e:
            logger.error(f"Failed to fetch market {market_id}: {str(e)}")
            raise

        if data is None:
            return None

        snapshot = parse_market(market_id, data)
        if self.cache is not None:
            self.cache.set(market_id, snapshot.model_dump())
        return snapshot

    async def get_resolution(self, market_id: str) -> Optional[MarketResolution]:
        """Current closed/active flags and outcome prices, or None when they cannot be read."""
        try:
            data = await self._fetch(market_id)
        except Exception as e:
            logger.warning(f"Resolution lookup failed for market {market_id}: {str(e)}")
            return None

        if data is None:
            return None

        return MarketResolution(
            market_id=market_id,
            closed=bool(data.get("closed", False)),
            active=bool(data.get("active", True)),
            outcome_prices=_prices(data.get("outcomePrices")),
        )
