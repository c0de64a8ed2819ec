"""Unit Tests: XrplService against the mock ledger."""

import pytest

from xpay.errors import InvalidInputError, NotFoundError
from xpay.xrpl_service import TxOutcome, describe_engine_result


def test_generate_wallet_is_ed25519(xrpl_service):
    wallet = xrpl_service.generate_wallet()
    assert wallet.seed.startswith("sEd")
    assert xrpl_service.is_valid_address(wallet.classic_address)


def test_wallet_from_seed_round_trips_address(xrpl_service):
    wallet = xrpl_service.generate_wallet()
    restored = xrpl_service.wallet_from_seed(wallet.seed)
    assert restored.classic_address == wallet.classic_address


@pytest.mark.parametrize("seed", ["", "   ", "not-a-seed"])
def test_wallet_from_bad_seed_is_validation_error(xrpl_service, seed):
    with pytest.raises(InvalidInputError):
        xrpl_service.wallet_from_seed(seed)


def test_validate_seed_never_raises(xrpl_service):
    wallet = xrpl_service.generate_wallet()
    assert xrpl_service.validate_seed(wallet.seed) == {
        "is_valid": True,
        "address": wallet.classic_address,
    }
    result = xrpl_service.validate_seed("garbage")
    assert result["is_valid"] is False
    assert result["error"]


def test_is_valid_address(xrpl_service):
    assert xrpl_service.is_valid_address("rPT1Sjq2YGrBMTttX4GZHjKu9dyfzbpAYe")
    assert not xrpl_service.is_valid_address("rNotAnAddress")
    assert not xrpl_service.is_valid_address("")


def test_fund_wallet_credits_mock_faucet(xrpl_service, funded_wallet):
    wallet = funded_wallet()
    assert xrpl_service.get_balance_xrp(wallet.classic_address) == 100.0
    assert xrpl_service.get_balance_drops(wallet.classic_address) == 100_000_000


def test_fund_address_rejects_invalid_address(xrpl_service):
    with pytest.raises(InvalidInputError):
        xrpl_service.fund_address("nope")


def test_unknown_account_is_not_found(xrpl_service):
    wallet = xrpl_service.generate_wallet()
    with pytest.raises(NotFoundError):
        xrpl_service.account_data(wallet.classic_address)
    with pytest.raises(NotFoundError):
        xrpl_service.account_transactions(wallet.classic_address)


def test_send_payment_success(xrpl_service, funded_wallet):
    sender, receiver = funded_wallet(), funded_wallet()
    outcome = xrpl_service.send_payment(sender, receiver.classic_address, 12.5)

    assert outcome.success
    assert outcome.validated
    assert outcome.tx_hash
    assert xrpl_service.get_balance_xrp(receiver.classic_address) == 112.5
    details = xrpl_service.get_transaction(outcome.tx_hash)
    assert details["meta"]["TransactionResult"] == "tesSUCCESS"


def test_send_payment_failure_is_outcome_not_exception(xrpl_service, funded_wallet):
    sender, receiver = funded_wallet(), funded_wallet()
    outcome = xrpl_service.send_payment(sender, receiver.classic_address, 500)

    assert not outcome.success
    assert outcome.engine_result == "tecUNFUNDED_PAYMENT"
    assert "Insufficient" in outcome.message


@pytest.mark.parametrize("amount", [0.0000001, 1e18])
def test_send_payment_unrepresentable_amount_is_validation_error(xrpl_service, funded_wallet, amount):
    sender, receiver = funded_wallet(), funded_wallet()
    with pytest.raises(InvalidInputError, match="Invalid XRP amount"):
        xrpl_service.send_payment(sender, receiver.classic_address, amount)
    assert xrpl_service.get_balance_xrp(sender.classic_address) == 100


def test_unknown_transaction_is_not_found(xrpl_service):
    with pytest.raises(NotFoundError):
        xrpl_service.get_transaction("AB" * 32)


def test_server_info_reports_ledger(xrpl_service):
    info = xrpl_service.server_info()
    assert info["server_state"] == "full"
    assert info["validated_ledger"]["seq"] >= 1000


def test_describe_engine_result_falls_back_to_class():
    assert describe_engine_result("tesSUCCESS") == "The transaction was applied"
    assert "failed, fee claimed" in describe_engine_result("tecSOMETHING_NEW")
    assert "malformed" in describe_engine_result("temWHATEVER")


def test_outcome_from_result_reads_created_index():
    outcome = TxOutcome.from_result(
        {
            "hash": "ABC",
            "validated": True,
            "tx_json": {"Sequence": 7},
            "meta": {
                "TransactionResult": "tesSUCCESS",
                "AffectedNodes": [
                    {"ModifiedNode": {"LedgerEntryType": "AccountRoot", "LedgerIndex": "1"}},
                    {"CreatedNode": {"LedgerEntryType": "PermissionedDomain", "LedgerIndex": "D1"}},
                ],
            },
        }
    )
    assert outcome.success
    assert outcome.sequence == 7
    assert outcome.created_index("PermissionedDomain") == "D1"
    assert outcome.created_index("Offer") is None
