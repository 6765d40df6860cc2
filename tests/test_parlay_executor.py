import asyncio
import time
from unittest.mock import AsyncMock, MagicMock

import pytest

from parlay_server.models.api import BuilderCredentials, ErrorCategory, UserCredentials
from parlay_server.services.clob_service import OrderRejectedError
from parlay_server.services.parlay_executor import ParlayExecutor


@pytest.fixture
def clob(builder_credentials):
    service = MagicMock()
    service.builder_credentials = builder_credentials
    service.submit_order = AsyncMock(return_value="order-id")
    return service


@pytest.fixture
def three_orders(make_signed_leg_order):
    return [
        make_signed_leg_order("m1-YES", "1001"),
        make_signed_leg_order("m2-YES", "1002"),
        make_signed_leg_order("m3-NO", "1003"),
    ]


@pytest.mark.asyncio
async def test_all_legs_accepted(clob, three_orders, user_credentials):
    result = await ParlayExecutor(clob).execute(three_orders, user_credentials.address, user_credentials)

    assert result.success is True
    assert [o.order_id for o in result.orders] == ["order-id"] * 3
    assert result.errors == []
    assert result.precondition is None


@pytest.mark.asyncio
async def test_failed_middle_leg_does_not_stop_the_rest(clob, three_orders, user_credentials):
    clob.submit_order.side_effect = [
        "order-1",
        OrderRejectedError("Insufficient USDC balance.", ErrorCategory.INSUFFICIENT_BALANCE),
        "order-3",
    ]

    result = await ParlayExecutor(clob).execute(three_orders, user_credentials.address, user_credentials)

    assert result.success is False
    assert [o.success for o in result.orders] == [True, False, True]
    assert [o.leg_id for o in result.orders] == ["m1-YES", "m2-YES", "m3-NO"]
    assert result.orders[1].error_category is ErrorCategory.INSUFFICIENT_BALANCE
    assert result.errors == ["Insufficient USDC balance."]
    assert clob.submit_order.await_count == 3
    submitted_tokens = [call.args[0].token_id for call in clob.submit_order.await_args_list]
    assert submitted_tokens == ["1001", "1002", "1003"]


@pytest.mark.asyncio
async def test_legs_are_submitted_one_at_a_time(clob, three_orders, user_credentials):
    in_flight = []

    async def submit(order, credentials, address):
        in_flight.append(order.token_id)
        assert len(in_flight) == 1
        await asyncio.sleep(0)
        in_flight.remove(order.token_id)
        return f"order-{order.token_id}"

    clob.submit_order.side_effect = submit
    result = await ParlayExecutor(clob).execute(three_orders, user_credentials.address, user_credentials)

    assert result.success is True
    assert [o.order_id for o in result.orders] == ["order-1001", "order-1002", "order-1003"]


@pytest.mark.asyncio
async def test_missing_user_credentials_submits_nothing(clob, three_orders):
    credentials = UserCredentials(secret="s", passphrase="p")
    result = await ParlayExecutor(clob).execute(three_orders, "0xabc", credentials)

    assert result.success is False
    assert result.precondition == "user_credentials"
    assert result.orders == []
    clob.submit_order.assert_not_awaited()


@pytest.mark.asyncio
async def test_missing_builder_credentials_submits_nothing(clob, three_orders, user_credentials):
    clob.builder_credentials = BuilderCredentials(api_key="k")
    result = await ParlayExecutor(clob).execute(three_orders, user_credentials.address, user_credentials)

    assert result.precondition == "builder_credentials"
    assert "POLYMARKET_BUILDER_SECRET" in result.errors[0]
    clob.submit_order.assert_not_awaited()


@pytest.mark.asyncio
async def test_invalid_signature_is_not_submitted(clob, three_orders, user_credentials):
    signatures = MagicMock()
    signatures.verify_order_signature.side_effect = [True, False, True]

    result = await ParlayExecutor(clob, signatures).execute(three_orders, user_credentials.address, user_credentials)

    assert [o.success for o in result.orders] == [True, False, True]
    assert result.orders[1].error_category is ErrorCategory.INVALID_SIGNATURE
    assert clob.submit_order.await_count == 2


@pytest.mark.asyncio
async def test_unexpected_error_is_captured(clob, three_orders, user_credentials):
    clob.submit_order.side_effect = [RuntimeError("boom"), "order-2", "order-3"]

    result = await ParlayExecutor(clob).execute(three_orders, user_credentials.address, user_credentials)

    assert result.orders[0].error_category is ErrorCategory.UNCLASSIFIED
    assert result.orders[0].error == "Order rejected: boom"
    assert [o.success for o in result.orders[1:]] == [True, True]


@pytest.mark.asyncio
async def test_sign_and_execute_skips_unsigned_legs(clob, make_leg, make_signed_leg_order, user_credentials):
    legs = [make_leg("m1"), make_leg("m2")]
    signer = MagicMock()
    signer.build_and_sign.side_effect = [make_signed_leg_order("m1-YES"), ValueError("no valid price")]

    result = await ParlayExecutor(clob).sign_and_execute(legs, 20, signer, user_credentials.address, user_credentials)

    assert [o.success for o in result.orders] == [True, False]
    assert result.orders[1].error_category is ErrorCategory.SIGNING_FAILED
    assert clob.submit_order.await_count == 1
    assert signer.build_and_sign.call_args_list[0].args[1] == pytest.approx(10.0)


@pytest.mark.asyncio
async def test_signing_is_bounded_by_timeout(clob, make_leg, user_credentials):
    signer = MagicMock()
    signer.build_and_sign.side_effect = lambda *args: time.sleep(0.3)

    executor = ParlayExecutor(clob, signing_timeout=0.05)
    result = await executor.sign_and_execute([make_leg("m1")], 10, signer, user_credentials.address, user_credentials)

    assert result.success is False
    assert result.orders[0].error_category is ErrorCategory.NETWORK_ERROR
    clob.submit_order.assert_not_awaited()
