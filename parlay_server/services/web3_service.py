# parlay_server/services/web3_service.py
from typing import List, Optional

from eth_utils import to_bytes
from web3 import Web3
from web3.contract import Contract
from web3.middleware import ExtraDataToPOAMiddleware

from ..config import CHAIN_ID, CTF_ABI, CTF_ADDRESS, POLYGON_RPC, USDC_ADDRESS, ZERO_BYTES32, logger

REDEEM_GAS_LIMIT = 300000


class Web3Service:
    """
    Read-only access to the Conditional Tokens contract. Redeem transactions
    are built unsigned; the user's wallet signs and sends them.
    """

    def __init__(self, w3: Optional[Web3] = None):
        if w3 is None:
            w3 = Web3(Web3.HTTPProvider(POLYGON_RPC))
            w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
        self.w3 = w3

        self.ctf: Contract = self.w3.eth.contract(
            address=Web3.to_checksum_address(CTF_ADDRESS),
            abi=CTF_ABI
        )

    @staticmethod
    def _convert_condition_id_to_bytes32(condition_id: str) -> bytes:
        """
        Args:
            condition_id: Market condition ID (hex or decimal string)
        Returns:
            bytes: 32-byte representation for contract calls
        """
        try:
            if condition_id.startswith('0x'):
                return to_bytes(hexstr=condition_id).rjust(32, b'\0')

            condition_int = int(condition_id)
            return to_bytes(hexstr='0x' + hex(condition_int)[2:].zfill(64))
        except Exception as e:
            logger.error(f"Failed to convert condition ID {condition_id}: {str(e)}")
            raise ValueError(f"Invalid condition ID: {condition_id}") from e

    def winning_index_sets(self, condition_id: str) -> List[int]:
        """Index sets of outcomes with a non-zero payout; empty while the condition is unresolved on-chain."""
        condition_bytes = self._convert_condition_id_to_bytes32(condition_id)

        denominator = self.ctf.functions.payoutDenominator(condition_bytes).call()
        if denominator == 0:
            return []

        slot_count = self.ctf.functions.getOutcomeSlotCount(condition_bytes).call()
        return [
            1 << index
            for index in range(slot_count)
            if self.ctf.functions.payoutNumerators(condition_bytes, index).call() > 0
        ]

    def build_redeem_transaction(self, user_address: str, condition_id: str) -> dict:
        """
        Raises:
            ValueError: the condition has not been resolved on-chain
        """
        index_sets = self.winning_index_sets(condition_id)
        if not index_sets:
            raise ValueError(f"Condition {condition_id} is not resolved on-chain yet")

        sender = Web3.to_checksum_address(user_address)
        tx = self.ctf.functions.redeemPositions(
            Web3.to_checksum_address(USDC_ADDRESS),
            ZERO_BYTES32,  # parentCollectionId is always 0 for Polymarket
            self._convert_condition_id_to_bytes32(condition_id),
            index_sets
        ).build_transaction({
            'from': sender,
            'chainId': CHAIN_ID,
            'gas': REDEEM_GAS_LIMIT,
            'nonce': self.w3.eth.get_transaction_count(sender)
        })

        logger.info(f"Built redeem transaction for {sender} on condition {condition_id} (index sets {index_sets})")
        return tx
