"""Unit Tests: PaymentService request lifecycle.

Invariants:
    - pending -> completed only on a tesSUCCESS ledger result
    - completed -> refunded only by the merchant's own seed
    - an expired request is marked expired on the next processing attempt
"""

from datetime import datetime, timedelta, timezone

import pytest

from xpay.errors import InvalidInputError, NotFoundError, PaymentError
from xpay.models import HistoryType, PaymentStatus


@pytest.fixture
def merchant(funded_wallet):
    return funded_wallet()


@pytest.fixture
def customer(funded_wallet):
    return funded_wallet()


def test_create_payment_request(payments, merchant):
    payment = payments.create_payment_request(5, "Coffee", merchant.classic_address)

    assert payment.status == PaymentStatus.PENDING
    assert payment.expires_at - payment.created_at == timedelta(minutes=30)


@pytest.mark.parametrize("amount, address", [(0, None), (1, "rBogus")])
def test_create_payment_request_validates(payments, merchant, amount, address):
    with pytest.raises(PaymentError):
        payments.create_payment_request(amount, "x", address or merchant.classic_address)


def test_create_payment_request_rejects_sub_drop_amount(payments, merchant):
    with pytest.raises(InvalidInputError):
        payments.create_payment_request(0.0000001, "Dust", merchant.classic_address)


def test_process_payment_completes(payments, xrpl_service, merchant, customer):
    payment = payments.create_payment_request(5, "Coffee", merchant.classic_address)

    done = payments.process_payment(payment.id, customer.seed, customer.classic_address)

    assert done.status == PaymentStatus.COMPLETED
    assert done.transaction_hash
    assert done.customer_address == customer.classic_address
    assert done.completed_at is not None
    assert xrpl_service.get_balance_xrp(merchant.classic_address) == 105.0


def test_process_payment_unknown_id(payments, customer):
    with pytest.raises(NotFoundError):
        payments.process_payment("missing", customer.seed, customer.classic_address)


def test_process_payment_rejects_mismatched_seed(payments, merchant, customer, funded_wallet):
    other = funded_wallet()
    payment = payments.create_payment_request(5, "Coffee", merchant.classic_address)
    with pytest.raises(PaymentError) as exc_info:
        payments.process_payment(payment.id, other.seed, customer.classic_address)
    assert exc_info.value.message == "Wallet address does not match seed"


def test_process_payment_insufficient_balance(payments, merchant, customer):
    payment = payments.create_payment_request(150, "TV", merchant.classic_address)
    with pytest.raises(PaymentError) as exc_info:
        payments.process_payment(payment.id, customer.seed, customer.classic_address)
    assert exc_info.value.message == "Insufficient balance"
    assert payments.get_payment_status(payment.id).status == PaymentStatus.PENDING


def test_process_payment_ledger_failure_keeps_pending(payments, merchant, customer):
    # 99.5 XRP passes the balance check but not the reserve.
    payment = payments.create_payment_request(99.5, "Phone", merchant.classic_address)
    with pytest.raises(PaymentError) as exc_info:
        payments.process_payment(payment.id, customer.seed, customer.classic_address)
    assert exc_info.value.message == "Payment failed: tecUNFUNDED_PAYMENT"
    assert payments.get_payment_status(payment.id).status == PaymentStatus.PENDING


def test_expired_request_is_marked_expired(payments, state, merchant, customer):
    payment = payments.create_payment_request(5, "Coffee", merchant.classic_address)
    payment.expires_at = datetime.now(timezone.utc) - timedelta(seconds=1)
    state.save_payment(payment)

    with pytest.raises(PaymentError) as exc_info:
        payments.process_payment(payment.id, customer.seed, customer.classic_address)
    assert exc_info.value.message == "Payment request has expired"
    assert payments.get_payment_status(payment.id).status == PaymentStatus.EXPIRED

    with pytest.raises(PaymentError) as exc_info:
        payments.process_payment(payment.id, customer.seed, customer.classic_address)
    assert exc_info.value.message == "Payment request is not pending"


def test_status_attaches_transaction_details(payments, merchant, customer):
    payment = payments.create_payment_request(5, "Coffee", merchant.classic_address)
    payments.process_payment(payment.id, customer.seed, customer.classic_address)

    status = payments.get_payment_status(payment.id)
    assert status.transaction_details["hash"] == status.transaction_hash


def test_refund_by_merchant(payments, xrpl_service, merchant, customer):
    payment = payments.create_payment_request(5, "Coffee", merchant.classic_address)
    payments.process_payment(payment.id, customer.seed, customer.classic_address)

    refunded = payments.refund_payment(payment.id, merchant.seed)

    assert refunded.status == PaymentStatus.REFUNDED
    assert refunded.refund_hash
    assert xrpl_service.get_balance_xrp(customer.classic_address) == pytest.approx(100 - 0.000012)


def test_refund_rules(payments, merchant, customer):
    payment = payments.create_payment_request(5, "Coffee", merchant.classic_address)
    with pytest.raises(PaymentError, match="not completed"):
        payments.refund_payment(payment.id, merchant.seed)

    payments.process_payment(payment.id, customer.seed, customer.classic_address)
    with pytest.raises(PaymentError, match="does not match"):
        payments.refund_payment(payment.id, customer.seed)


def test_history_and_stats(payments, merchant, customer):
    first = payments.create_payment_request(5, "Coffee", merchant.classic_address)
    payments.process_payment(first.id, customer.seed, customer.classic_address)
    payments.create_payment_request(2, "Cookie", merchant.classic_address)

    sent = payments.get_payment_history(customer.classic_address, HistoryType.SENT)
    received = payments.get_payment_history(merchant.classic_address, HistoryType.RECEIVED)
    pending = payments.get_payment_history(merchant.classic_address, HistoryType.PENDING)
    assert [p.id for p in sent] == [first.id]
    assert [p.id for p in received] == [first.id]
    assert len(pending) == 1
    assert len(payments.get_payment_history(merchant.classic_address)) == 2

    stats = payments.get_payment_stats(merchant.classic_address)
    assert stats.total_payments == 2
    assert stats.completed_payments == 1
    assert stats.pending_payments == 1
    assert stats.total_received == 5
    assert stats.net_amount == 5
