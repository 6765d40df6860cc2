import pytest
from eth_account import Account
from eth_account.messages import encode_typed_data

from parlay_server.config import NEG_RISK_EXCHANGE_ADDRESS
from parlay_server.models.api import SignedOrder
from parlay_server.services.signature_service import SignatureService, order_typed_data

PRIVATE_KEY = "0x" + "4c" * 32


@pytest.fixture
def account():
    return Account.from_key(PRIVATE_KEY)


def _signed(account, neg_risk=False, **overrides):
    unsigned = SignedOrder(
        salt=987654321,
        maker=account.address,
        signer=account.address,
        token_id="71321045679252212594626385532706912750332728571942532289631379312455583992563",
        maker_amount="5000000",
        taker_amount="10000000",
        side=0,
        signature="0x00",
    )
    message = encode_typed_data(full_message=order_typed_data(unsigned, neg_risk))
    signature = "0x" + bytes(Account.sign_message(message, private_key=PRIVATE_KEY).signature).hex()
    return unsigned.model_copy(update={"signature": signature, **overrides})


def test_typed_data_domain():
    order = SignedOrder(salt=1, maker="0x" + "1" * 40, signer="0x" + "1" * 40, token_id="1",
                        maker_amount="1", taker_amount="1", signature="0x00")
    data = order_typed_data(order, neg_risk=True)

    assert data["domain"]["verifyingContract"] == NEG_RISK_EXCHANGE_ADDRESS
    assert data["domain"]["chainId"] == 137
    assert data["message"]["tokenId"] == 1


def test_genuine_signature_verifies(account):
    assert SignatureService().verify_order_signature(_signed(account)) is True


def test_neg_risk_flag_mismatch_still_verifies(account):
    order = _signed(account, neg_risk=True)
    assert SignatureService().verify_order_signature(order, neg_risk=False) is True


def test_tampered_order_is_rejected(account):
    order = _signed(account, maker_amount="9000000")
    assert SignatureService().verify_order_signature(order) is False


def test_malformed_signature_is_rejected(account):
    order = _signed(account, signature="0x1234")
    assert SignatureService().verify_order_signature(order) is False
