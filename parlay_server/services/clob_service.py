import json
import time
from typing import Optional, Dict, Any, Tuple

import httpx
from py_clob_client.endpoints import POST_ORDER
from py_clob_client.headers.headers import (
    POLY_ADDRESS,
    POLY_API_KEY,
    POLY_PASSPHRASE,
    POLY_SIGNATURE,
    POLY_TIMESTAMP,
)
from py_clob_client.signing.hmac import build_hmac_signature

from ..config import CLOB_HOST, HTTP_TIMEOUT, logger
from ..models.api import (
    ORDER_WIRE_FIELDS,
    BuilderCredentials,
    ErrorCategory,
    SignedOrder,
    UserCredentials,
)

POLY_BUILDER_API_KEY = "POLY_BUILDER_API_KEY"
POLY_BUILDER_SIGNATURE = "POLY_BUILDER_SIGNATURE"
POLY_BUILDER_TIMESTAMP = "POLY_BUILDER_TIMESTAMP"
POLY_BUILDER_PASSPHRASE = "POLY_BUILDER_PASSPHRASE"

# First match wins; keys are matched against the lowercased venue response
_ERROR_RULES = (
    (("allowance",), ErrorCategory.APPROVAL_REQUIRED,
     "USDC not approved for exchange. Approve USDC spending and retry."),
    (("insufficient", "balance"), ErrorCategory.INSUFFICIENT_BALANCE,
     "Insufficient USDC balance. Deposit USDC.e at polymarket.com"),
    (("signature",), ErrorCategory.INVALID_SIGNATURE,
     "Invalid signature. Try reconnecting your wallet."),
    (("unauthorized", "api key"), ErrorCategory.SESSION_EXPIRED,
     "Trading session expired. Enable trading again."),
    (("price", "tick"), ErrorCategory.PRICE_MOVED,
     "Price moved. Refresh and try again."),
)


def classify_order_error(raw: str) -> Tuple[ErrorCategory, str]:
    """
    Map raw venue error text to a user-facing category and message.
    Only affects what is shown to the user, never control flow.
    """
    lower = (raw or "").lower()
    for needles, category, message in _ERROR_RULES:
        if any(needle in lower for needle in needles):
            return category, message
    return ErrorCategory.UNCLASSIFIED, f"Order rejected: {(raw or '')[:200]}"


class OrderRejectedError(Exception):
    def __init__(self, message: str, category: ErrorCategory, raw: Optional[str] = None):
        super().__init__(message)
        self.category = category
        self.raw = raw


class CLOBService:
    """
    Submits signed orders to the CLOB on behalf of a user.
    Requests carry the user's L2 headers plus builder attribution headers.
    """
    _CLOB_HOST = CLOB_HOST

    def __init__(
        self,
        builder_credentials: Optional[BuilderCredentials] = None,
        host: Optional[str] = None,
        timeout: float = HTTP_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._builder_credentials = builder_credentials
        self.host = (host or self._CLOB_HOST).rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @property
    def builder_credentials(self) -> BuilderCredentials:
        # Explicit credentials win; otherwise re-read the environment on every use
        return self._builder_credentials or BuilderCredentials.from_env()

    @staticmethod
    def _timestamp() -> str:
        return str(int(time.time()))

    @staticmethod
    def order_payload(signed_order: SignedOrder, owner: str, order_type: str = "GTC") -> Dict[str, Any]:
        order = {wire: getattr(signed_order, field) for field, wire in ORDER_WIRE_FIELDS.items()}
        order["side"] = signed_order.side_label
        return {
            "deferExec": False,
            "order": order,
            "owner": owner,
            "orderType": order_type,
        }

    def user_headers(
        self,
        credentials: UserCredentials,
        address: str,
        method: str,
        path: str,
        body: Optional[str] = None,
        timestamp: Optional[str] = None,
    ) -> Dict[str, str]:
        timestamp = timestamp or self._timestamp()
        return {
            POLY_ADDRESS: address,
            POLY_SIGNATURE: build_hmac_signature(credentials.secret, timestamp, method, path, body),
            POLY_TIMESTAMP: timestamp,
            POLY_API_KEY: credentials.api_key,
            POLY_PASSPHRASE: credentials.passphrase,
        }

    def builder_headers(
        self,
        method: str,
        path: str,
        body: Optional[str] = None,
        timestamp: Optional[str] = None,
    ) -> Dict[str, str]:
        builder = self.builder_credentials
        timestamp = timestamp or self._timestamp()
        return {
            POLY_BUILDER_API_KEY: builder.api_key,
            POLY_BUILDER_SIGNATURE: build_hmac_signature(builder.secret, timestamp, method, path, body),
            POLY_BUILDER_TIMESTAMP: timestamp,
            POLY_BUILDER_PASSPHRASE: builder.passphrase,
        }

    async def submit_order(
        self,
        signed_order: SignedOrder,
        credentials: UserCredentials,
        address: Optional[str] = None,
    ) -> str:
        """
        Post one signed order and return the venue order id.

        Raises:
            OrderRejectedError: non-2xx response, an errorMsg in the body,
                or a timeout / transport failure
        """
        body = json.dumps(self.order_payload(signed_order, credentials.api_key), separators=(",", ":"))
        timestamp = self._timestamp()
        headers = {
            "Content-Type": "application/json",
            **self.user_headers(
                credentials, address or credentials.address or signed_order.maker,
                "POST", POST_ORDER, body, timestamp,
            ),
            **self.builder_headers("POST", POST_ORDER, body, timestamp),
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                res = await client.post(f"{self.host}{POST_ORDER}", content=body, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"Order submission for token {signed_order.token_id} failed: {str(e)}")
            raise OrderRejectedError(
                f"Network error while submitting order: {type(e).__name__}",
                ErrorCategory.NETWORK_ERROR,
                raw=str(e),
            ) from e

        response_text = res.text
        if not res.is_success:
            category, message = classify_order_error(response_text)
            logger.warning(f"CLOB rejected order ({res.status_code}, {category.value}): {response_text[:200]}")
            raise OrderRejectedError(message, category, raw=response_text)

        try:
            data = json.loads(response_text) if response_text else {}
        except ValueError:
            return "submitted"
        if not isinstance(data, dict):
            return "submitted"

        if data.get("errorMsg"):
            category, message = classify_order_error(data["errorMsg"])
            logger.warning(f"CLOB returned errorMsg ({category.value}): {data['errorMsg']}")
            raise OrderRejectedError(message, category, raw=data["errorMsg"])

        return str(data.get("orderID") or data.get("id") or "submitted")
