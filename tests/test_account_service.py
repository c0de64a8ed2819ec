"""Unit Tests: AccountService (stored accounts, balances, sends, history)."""

import pytest

from xpay.account_service import map_history_entry
from xpay.errors import InvalidInputError, NotFoundError, PaymentError


def test_create_account_stores_funded_wallet(accounts):
    account = accounts.create_account("alice")

    assert account.user_id == "alice"
    assert account.secret.startswith("sEd")
    assert account.balance == 100_000_000
    assert account.balance_xrp == 100.0
    assert account.sequence is not None
    assert accounts.get_stored_account(account.address) == account


def test_create_account_requires_nickname(accounts):
    with pytest.raises(InvalidInputError):
        accounts.create_account("   ")


@pytest.mark.parametrize(
    "address, message",
    [("", "Address is empty"), ("rBogus", "Not a valid XRPL address")],
)
def test_validate_address_messages(accounts, address, message):
    with pytest.raises(InvalidInputError) as exc_info:
        accounts.validate_address(address)
    assert exc_info.value.message == message


def test_get_account_info_unknown_account(accounts, xrpl_service):
    wallet = xrpl_service.generate_wallet()
    with pytest.raises(NotFoundError) as exc_info:
        accounts.get_account_info(wallet.classic_address)
    assert exc_info.value.message == "Account not found"


def test_get_account_info_keeps_stored_fields(accounts):
    account = accounts.create_account("bob")
    refreshed = accounts.get_account_info(account.address)
    assert refreshed.user_id == "bob"
    assert refreshed.secret == account.secret


def test_send_payment_updates_both_stored_accounts(accounts):
    alice = accounts.create_account("alice")
    bob = accounts.create_account("bob")

    record = accounts.send_payment(alice.address, bob.address, 10)

    assert record.status == "success"
    assert record.hash
    assert accounts.get_stored_account(bob.address).balance_xrp == 110.0
    assert accounts.get_stored_account(alice.address).balance == 90_000_000 - 12


def test_send_payment_requires_stored_sender(accounts, funded_wallet):
    outsider = funded_wallet()
    bob = accounts.create_account("bob")
    with pytest.raises(NotFoundError) as exc_info:
        accounts.send_payment(outsider.classic_address, bob.address, 1)
    assert exc_info.value.message == "Account not found in storage"


def test_send_payment_ledger_failure(accounts):
    alice = accounts.create_account("alice")
    bob = accounts.create_account("bob")
    with pytest.raises(PaymentError) as exc_info:
        accounts.send_payment(alice.address, bob.address, 1000)
    assert exc_info.value.message == "Transaction failed: tecUNFUNDED_PAYMENT"


def test_transaction_history_maps_entries(accounts):
    alice = accounts.create_account("alice")
    bob = accounts.create_account("bob")
    accounts.send_payment(alice.address, bob.address, 3)

    [record] = accounts.get_transaction_history(bob.address)
    assert record.amount == 3.0
    assert record.from_address == alice.address
    assert record.to_address == bob.address
    assert record.status == "success"
    assert record.tx_type == "Payment"
    assert record.fee == 0.000012


def test_map_history_entry_handles_v1_and_v2_shapes():
    v1 = {
        "tx": {
            "hash": "H1",
            "Account": "rA",
            "Destination": "rB",
            "Amount": "2500000",
            "Fee": "12",
            "TransactionType": "Payment",
            "date": 0,
        },
        "meta": {"TransactionResult": "tesSUCCESS"},
    }
    v2 = {
        "hash": "H2",
        "tx_json": {
            "Account": "rA",
            "Destination": "rB",
            "DeliverMax": {"currency": "USD", "issuer": "rI", "value": "5"},
            "TransactionType": "Payment",
            "date": 86400,
        },
        "meta": {"TransactionResult": "tecPATH_DRY"},
    }

    first, second = map_history_entry(v1), map_history_entry(v2)

    assert first.hash == "H1"
    assert first.amount == 2.5
    assert first.timestamp.year == 2000
    assert second.hash == "H2"
    assert second.amount == 0.0
    assert second.status == "failed"
    assert second.timestamp.day == 2
    assert map_history_entry({"meta": {}}) is None


def test_delete_account(accounts):
    account = accounts.create_account("carol")
    assert accounts.delete_account(account.address) is True
    assert accounts.delete_account(account.address) is False
    assert accounts.list_stored_accounts() == []
