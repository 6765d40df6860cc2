# parlay_server/services/parlay_executor.py
"""
Multi-leg parlay execution.

The CLOB has no atomic multi-order call, so each leg is its own order. Legs are
submitted one at a time, in the order given, and a rejected leg never stops the
ones after it. Callers always get one OrderResult per attempted leg.
"""
import asyncio
from typing import List, Optional, Sequence

from ..config import HTTP_TIMEOUT, logger
from ..models.api import (
    ErrorCategory,
    Leg,
    OrderResult,
    ParlayExecutionResult,
    SignedLegOrder,
    UserCredentials,
)
from .clob_service import CLOBService, OrderRejectedError
from .order_signer import OrderSigner
from .signature_service import SignatureService


class ParlayExecutor:
    def __init__(
        self,
        clob_service: CLOBService,
        signature_service: Optional[SignatureService] = None,
        signing_timeout: float = HTTP_TIMEOUT,
    ):
        self.clob_service = clob_service
        self.signature_service = signature_service
        self.signing_timeout = signing_timeout

    def _check_preconditions(self, credentials: Optional[UserCredentials]) -> Optional[ParlayExecutionResult]:
        missing = self.clob_service.builder_credentials.missing()
        if missing:
            return ParlayExecutionResult(
                success=False,
                errors=[f"Builder credentials not configured. Missing: {', '.join(missing)}"],
                precondition="builder_credentials",
            )

        if credentials is None or not credentials.is_complete:
            return ParlayExecutionResult(
                success=False,
                errors=["User API credentials missing. Please enable trading first."],
                precondition="user_credentials",
            )
        return None

    @staticmethod
    def _aggregate(results: List[OrderResult]) -> ParlayExecutionResult:
        return ParlayExecutionResult(
            success=bool(results) and all(r.success for r in results),
            orders=results,
            errors=[r.error for r in results if not r.success and r.error],
        )

    async def execute(
        self,
        signed_orders: Sequence[SignedLegOrder],
        user_address: str,
        credentials: Optional[UserCredentials],
    ) -> ParlayExecutionResult:
        """Submit pre-signed leg orders strictly in sequence."""
        refused = self._check_preconditions(credentials)
        if refused:
            logger.warning(f"Parlay for {user_address} refused before submission: {refused.errors[0]}")
            return refused

        logger.info(f"Executing parlay for {user_address}: {len(signed_orders)} legs")
        results = []
        for leg_order in signed_orders:
            results.append(await self._submit_leg(leg_order, user_address, credentials))

        outcome = self._aggregate(results)
        accepted = sum(1 for r in results if r.success)
        logger.info(f"Parlay for {user_address} finished: {accepted}/{len(results)} legs accepted")
        return outcome

    async def sign_and_execute(
        self,
        legs: Sequence[Leg],
        stake: float,
        signer: OrderSigner,
        user_address: str,
        credentials: Optional[UserCredentials],
        tick_size: Optional[str] = None,
        neg_risk: Optional[bool] = None,
    ) -> ParlayExecutionResult:
        """
        Sign each leg right before submitting it. A leg that cannot be signed
        is reported as failed and never submitted; a signing timeout counts as a
        network error. The stake is split evenly.
        """
        refused = self._check_preconditions(credentials)
        if refused:
            logger.warning(f"Parlay for {user_address} refused before signing: {refused.errors[0]}")
            return refused

        size_usd = stake / len(legs) if legs else 0.0
        results = []
        for leg in legs:
            try:
                leg_order = await asyncio.wait_for(
                    asyncio.to_thread(signer.build_and_sign, leg, size_usd, tick_size, neg_risk),
                    timeout=self.signing_timeout,
                )
            except asyncio.TimeoutError:
                logger.error(f"Signing timed out for leg {leg.id} after {self.signing_timeout}s")
                results.append(OrderResult(
                    leg_id=leg.id,
                    success=False,
                    error="Network error while signing order: timed out",
                    error_category=ErrorCategory.NETWORK_ERROR,
                ))
                continue
            except Exception as e:
                logger.error(f"Signing failed for leg {leg.id}: {type(e).__name__}: {str(e)}")
                results.append(OrderResult(
                    leg_id=leg.id,
                    success=False,
                    error=f"Failed to sign order: {str(e) or type(e).__name__}",
                    error_category=ErrorCategory.SIGNING_FAILED,
                ))
                continue

            results.append(await self._submit_leg(leg_order, user_address, credentials))

        return self._aggregate(results)

    async def _submit_leg(
        self,
        leg_order: SignedLegOrder,
        user_address: str,
        credentials: UserCredentials,
    ) -> OrderResult:
        if self.signature_service is not None and not self.signature_service.verify_order_signature(
            leg_order.signed_order, leg_order.neg_risk
        ):
            return OrderResult(
                leg_id=leg_order.leg_id,
                success=False,
                error="Invalid signature. Try reconnecting your wallet.",
                error_category=ErrorCategory.INVALID_SIGNATURE,
            )

        try:
            order_id = await self.clob_service.submit_order(
                leg_order.signed_order,
                credentials,
                credentials.address or user_address,
            )
        except OrderRejectedError as e:
            return OrderResult(
                leg_id=leg_order.leg_id,
                success=False,
                error=str(e),
                error_category=e.category,
            )
        except Exception as e:
            logger.error(f"Unexpected failure submitting leg {leg_order.leg_id}: {str(e)}", exc_info=True)
            return OrderResult(
                leg_id=leg_order.leg_id,
                success=False,
                error=f"Order rejected: {str(e)[:200]}",
                error_category=ErrorCategory.UNCLASSIFIED,
            )

        logger.info(f"Leg {leg_order.leg_id} accepted with order {order_id}")
        return OrderResult(leg_id=leg_order.leg_id, success=True, order_id=order_id)
