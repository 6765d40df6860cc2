from eth_account import Account
from eth_account.messages import encode_typed_data
from hexbytes import HexBytes
import logging

from ..config import CHAIN_ID, EXCHANGE_ADDRESS, NEG_RISK_EXCHANGE_ADDRESS
from ..models.api import SignedOrder

logger = logging.getLogger(__name__)

ORDER_TYPES = {
    "EIP712Domain": [
        {"name": "name", "type": "string"},
        {"name": "version", "type": "string"},
        {"name": "chainId", "type": "uint256"},
        {"name": "verifyingContract", "type": "address"},
    ],
    "Order": [
        {"name": "salt", "type": "uint256"},
        {"name": "maker", "type": "address"},
        {"name": "signer", "type": "address"},
        {"name": "taker", "type": "address"},
        {"name": "tokenId", "type": "uint256"},
        {"name": "makerAmount", "type": "uint256"},
        {"name": "takerAmount", "type": "uint256"},
        {"name": "expiration", "type": "uint256"},
        {"name": "nonce", "type": "uint256"},
        {"name": "feeRateBps", "type": "uint256"},
        {"name": "side", "type": "uint8"},
        {"name": "signatureType", "type": "uint8"},
    ],
}


def order_typed_data(order: SignedOrder, neg_risk: bool = False, chain_id: int = CHAIN_ID) -> dict:
    """EIP-712 payload for a CTF Exchange order; neg-risk markets verify against a different contract."""
    return {
        "types": ORDER_TYPES,
        "primaryType": "Order",
        "domain": {
            "name": "Polymarket CTF Exchange",
            "version": "1",
            "chainId": chain_id,
            "verifyingContract": NEG_RISK_EXCHANGE_ADDRESS if neg_risk else EXCHANGE_ADDRESS,
        },
        "message": {
            "salt": int(order.salt),
            "maker": order.maker,
            "signer": order.signer,
            "taker": order.taker,
            "tokenId": int(order.token_id),
            "makerAmount": int(order.maker_amount),
            "takerAmount": int(order.taker_amount),
            "expiration": int(order.expiration),
            "nonce": int(order.nonce),
            "feeRateBps": int(order.fee_rate_bps),
            "side": int(order.side),
            "signatureType": int(order.signature_type),
        },
    }


class SignatureService:
    def recover_signer(self, order: SignedOrder, neg_risk: bool = False) -> str:
        signable_message = encode_typed_data(full_message=order_typed_data(order, neg_risk))
        return Account.recover_message(signable_message, signature=HexBytes(order.signature))

    def verify_order_signature(self, order: SignedOrder, neg_risk: bool = False) -> bool:
        """
        Check that the order's signature recovers to its `signer`.

        Both exchange domains are tried, the reported neg-risk one first.
        """
        for candidate in (neg_risk, not neg_risk):
            try:
                recovered_address = self.recover_signer(order, candidate)
            except Exception as e:
                logger.warning(f"Signature recovery failed for token {order.token_id}: {str(e)}")
                return False

            if recovered_address.lower() == order.signer.lower():
                return True

        logger.info(f"Order signature for token {order.token_id} does not match signer {order.signer}")
        return False
