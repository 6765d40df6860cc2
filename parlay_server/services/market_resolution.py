# parlay_server/services/market_resolution.py
import asyncio
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
import functools
import inspect
import time
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..config import RESOLUTION_BATCH_SIZE, RESOLUTION_THRESHOLD, logger
from ..models.api import LegStatus, MarketResolution, ParlayStatus
from .market_service import MarketService
from .parlay_store import ParlayStore


def log_execution_time(func):
    """Decorator to log how long a resolution pass took, and any error it raised"""
    if inspect.iscoroutinefunction(func):
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            start_time = time.perf_counter()
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                logger.error(f"Error in {func.__name__}: {str(e)}", exc_info=True)
                raise
            finally:
                logger.info(f"{func.__name__} took {time.perf_counter() - start_time:.2f}s")
        return async_wrapper

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        start_time = time.perf_counter()
        try:
            return func(*args, **kwargs)
        except Exception as e:
            logger.error(f"Error in {func.__name__}: {str(e)}", exc_info=True)
            raise
        finally:
            logger.info(f"{func.__name__} took {time.perf_counter() - start_time:.2f}s")
    return wrapper


def resolve_outcome(resolution: Optional[MarketResolution], threshold: float = RESOLUTION_THRESHOLD) -> Optional[str]:
    """
    'yes' or 'no' once the market is closed (or inactive) and one outcome
    price has reached the threshold; None while it is still undecided.
    """
    if resolution is None:
        return None
    if not (resolution.closed or not resolution.active):
        return None

    prices = resolution.outcome_prices
    if len(prices) > 0 and prices[0] >= threshold:
        return "yes"
    if len(prices) > 1 and prices[1] >= threshold:
        return "no"
    return None


def settle_legs(legs: Iterable[Dict[str, Any]], outcomes: Dict[str, str]) -> Tuple[List[Dict[str, Any]], bool]:
    """Mark pending legs on resolved markets as won or lost. Settled legs are left as they are."""
    settled = []
    changed = False
    for leg in legs:
        leg = dict(leg)
        outcome = outcomes.get(str(leg.get("market_id")))
        if leg.get("status", LegStatus.PENDING.value) == LegStatus.PENDING.value and outcome:
            won = str(leg.get("side", "")).lower() == outcome
            leg["status"] = LegStatus.WON.value if won else LegStatus.LOST.value
            leg["outcome"] = outcome
            changed = True
        settled.append(leg)
    return settled, changed


def settle_parlay(legs: List[Dict[str, Any]], potential_payout: float) -> Optional[Tuple[ParlayStatus, float]]:
    """
    Final status and payout, or None while any leg is pending.
    Only an all-won parlay pays out; mixed results are `partial` and pay nothing.
    """
    statuses = [leg.get("status", LegStatus.PENDING.value) for leg in legs]
    if not statuses or LegStatus.PENDING.value in statuses:
        return None

    if all(s == LegStatus.WON.value for s in statuses):
        return ParlayStatus.WON, float(potential_payout or 0)
    if all(s == LegStatus.LOST.value for s in statuses):
        return ParlayStatus.LOST, 0.0
    return ParlayStatus.PARTIAL, 0.0


@dataclass
class ResolutionSummary:
    checked: int = 0
    resolved: int = 0
    updated: int = 0
    markets_queried: int = 0
    markets_resolved: int = 0
    failures: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


class ResolutionService:
    """
    Settles open parlays against market outcomes.

    Terminal parlays are never loaded again, so running the sweep twice
    against unchanged markets changes nothing. Overlapping sweeps are not
    guarded against here; the scheduler runs one at a time.
    """

    def __init__(
        self,
        store: ParlayStore,
        market_service: MarketService,
        batch_size: int = RESOLUTION_BATCH_SIZE,
    ):
        self.store = store
        self.market_service = market_service
        self.batch_size = max(1, batch_size)

    async def check_resolutions(self, market_ids: List[str]) -> Dict[str, str]:
        """
        Look markets up in chunks of `batch_size`, concurrently within a chunk.
        A failed lookup leaves that market unresolved.
        """
        outcomes = {}
        for start in range(0, len(market_ids), self.batch_size):
            chunk = market_ids[start:start + self.batch_size]
            results = await asyncio.gather(
                *(self.market_service.get_resolution(market_id) for market_id in chunk),
                return_exceptions=True,
            )
            for market_id, result in zip(chunk, results):
                if isinstance(result, Exception):
                    logger.warning(f"Resolution lookup for market {market_id} failed: {str(result)}")
                    continue
                outcome = resolve_outcome(result)
                if outcome:
                    outcomes[market_id] = outcome
        return outcomes

    @staticmethod
    def _pending_market_ids(records: List[Dict[str, Any]]) -> List[str]:
        market_ids = {}
        for record in records:
            for leg in record.get("legs") or []:
                if leg.get("status", LegStatus.PENDING.value) == LegStatus.PENDING.value:
                    market_ids.setdefault(str(leg["market_id"]), None)
        return list(market_ids)

    @staticmethod
    def _settlement_patch(record: Dict[str, Any], outcomes: Dict[str, str]) -> Optional[Dict[str, Any]]:
        legs, changed = settle_legs(record["legs"], outcomes)
        settlement = settle_parlay(legs, record.get("potential_payout"))

        if settlement is not None:
            status, payout = settlement
            return {
                "legs": legs,
                "status": status.value,
                "payout": payout,
                "resolved_at": datetime.now(timezone.utc),
            }
        if changed:
            return {"legs": legs}
        return None

    @log_execution_time
    async def process_open_parlays(self) -> ResolutionSummary:
        summary = ResolutionSummary()

        records = self.store.list_open()
        summary.checked = len(records)
        if not records:
            logger.info("No open parlays to resolve")
            return summary

        market_ids = self._pending_market_ids(records)
        outcomes = await self.check_resolutions(market_ids)
        summary.markets_queried = len(market_ids)
        summary.markets_resolved = len(outcomes)

        for record in records:
            if not record.get("legs"):
                continue

            try:
                patch = self._settlement_patch(record, outcomes)
                if patch is None:
                    continue

                self.store.update(record["id"], patch)
                if "status" in patch:
                    summary.resolved += 1
                    logger.info(f"Parlay {record['id']} settled as {patch['status']} (payout {patch['payout']})")
                else:
                    summary.updated += 1
            except Exception as e:
                summary.failures += 1
                logger.error(f"Failed to settle parlay {record['id']}: {str(e)}", exc_info=True)

        logger.info(f"Resolution sweep finished: {summary.to_dict()}")
        return summary
