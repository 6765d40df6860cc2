import math
from typing import Optional

from py_clob_client.client import ClobClient
from py_clob_client.clob_types import OrderArgs, PartialCreateOrderOptions
from py_clob_client.order_builder.constants import BUY

from ..config import CHAIN_ID, CLOB_HOST, ORDER_FEE_RATE_BPS, SIGNER_FUNDER_ADDRESS, SIGNER_PRIVATE_KEY, logger
from ..models.api import Leg, SignedLegOrder, SignedOrder


class OrderSigner:
    """
    Builds and signs one GTC buy order per leg with a wallet key.
    Signing itself is local; py-clob-client may look up tick size and
    neg-risk on the CLOB when they are not supplied.
    """

    def __init__(
        self,
        private_key: Optional[str] = SIGNER_PRIVATE_KEY,
        funder: Optional[str] = SIGNER_FUNDER_ADDRESS,
        signature_type: int = 0,
        client: Optional[ClobClient] = None,
    ):
        if client is None:
            if not private_key:
                raise ValueError("A wallet private key is required to sign orders")
            client = ClobClient(
                CLOB_HOST,
                key=private_key,
                chain_id=CHAIN_ID,
                signature_type=signature_type,
                funder=funder
            )
        self.client = client

    def build_and_sign(
        self,
        leg: Leg,
        size_usd: float,
        tick_size: Optional[str] = None,
        neg_risk: Optional[bool] = None,
    ) -> SignedLegOrder:
        """
        Args:
            leg: The leg to buy
            size_usd: USDC to spend on this leg
            tick_size: Market tick size, looked up by the client when omitted
            neg_risk: Whether the market trades on the neg-risk exchange
        """
        if leg.price <= 0:
            raise ValueError(f"Leg {leg.id} has no valid price")

        shares = math.floor(size_usd / leg.price * 100) / 100
        if shares <= 0:
            raise ValueError(f"Stake {size_usd} is too small for leg {leg.id}")

        options = None
        if tick_size is not None or neg_risk is not None:
            options = PartialCreateOrderOptions(tick_size=tick_size, neg_risk=neg_risk)

        order_args = OrderArgs(
            token_id=leg.token_id,
            price=leg.price,
            size=shares,
            side=BUY,
            fee_rate_bps=ORDER_FEE_RATE_BPS,
        )
        try:
            signed = self.client.create_order(order_args, options)
        except Exception as e:
            logger.error(f"Failed to create order for leg {leg.id}: {str(e)}")
            raise

        return SignedLegOrder(
            leg_id=leg.id,
            signed_order=SignedOrder.from_clob(signed.dict()),
            token_id=leg.token_id,
            side="BUY",
            price_per_share=leg.price,
            size_usd=size_usd,
            neg_risk=bool(neg_risk),
        )
