"""Integration Tests: credentials, permissioned domains and gated offers.

Invariants:
    - credential types are plain strings at the service boundary
    - an offer without a matching accepted credential never reaches the ledger
    - ledger failures come back as success=False results, not exceptions
"""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from xpay.credential_service import credential_from_object, decode_hex, encode_credential_type
from xpay.errors import CredentialError, InvalidInputError, NotFoundError
from xpay.models import AcceptedCredential, IssuedAmount


@pytest.fixture
def issuer(funded_wallet):
    return funded_wallet()


@pytest.fixture
def buyer(funded_wallet):
    return funded_wallet()


def _issue_and_accept(credentials, issuer, subject, credential_type="KYC"):
    created = credentials.create_credential(issuer.seed, subject.classic_address, credential_type)
    assert created.success, created.engine_result
    accepted = credentials.accept_credential(subject.seed, issuer.classic_address, credential_type)
    assert accepted.success, accepted.engine_result


def _domain(credentials, issuer, credential_type="KYC"):
    result = credentials.create_domain(
        issuer.seed,
        [AcceptedCredential(issuer=issuer.classic_address, credential_type=credential_type)],
    )
    assert result.success, result.engine_result
    return result.domain_id


def _usd(issuer):
    return IssuedAmount(currency="USD", issuer=issuer.classic_address, value="10")


# -- Encoding ------------------------------------------------------------------


def test_credential_type_hex_round_trip():
    assert encode_credential_type("KYC") == "4B5943"
    assert decode_hex("4B5943") == "KYC"
    assert decode_hex(None) is None


def test_credential_from_object_reads_flags_and_expiry():
    info = credential_from_object(
        {
            "Issuer": "rI",
            "Subject": "rS",
            "CredentialType": "4B5943",
            "Flags": 0x00010000,
            "Expiration": 1,
        }
    )
    assert info.credential_type == "KYC"
    assert info.accepted is True
    assert info.expired is True


# -- Credentials ---------------------------------------------------------------


def test_create_and_check_credential(credentials, issuer, buyer):
    result = credentials.create_credential(
        issuer.seed, buyer.classic_address, "KYC", expiration_hours=24, uri="https://kyc.example"
    )
    assert result.success
    assert result.tx_hash
    assert result.expiration is not None

    report = credentials.check_credentials(buyer.seed)
    assert report["count"] == 1
    [held] = report["credentials"]
    assert held.issuer == issuer.classic_address
    assert held.credential_type == "KYC"
    assert held.accepted is False
    assert held.expired is False
    assert held.uri == "https://kyc.example"


def test_credential_expires_in_24_hours_by_default(credentials, issuer, buyer):
    before = datetime.now(timezone.utc)
    result = credentials.create_credential(issuer.seed, buyer.classic_address, "KYC")

    assert result.success
    assert result.expiration is not None
    assert timedelta(hours=23) < result.expiration - before <= timedelta(hours=24, minutes=1)


def test_accept_defaults_to_configured_type(credentials, issuer, buyer):
    credentials.create_credential(issuer.seed, buyer.classic_address, "KYC")
    result = credentials.accept_credential(buyer.seed, issuer.classic_address)

    assert result.success
    assert result.credential_type == "KYC"
    [held] = credentials.check_credentials(buyer.seed)["credentials"]
    assert held.accepted is True


def test_accept_missing_credential_reports_ledger_failure(credentials, issuer, buyer):
    result = credentials.accept_credential(buyer.seed, issuer.classic_address, "AML")
    assert result.success is False
    assert result.engine_result == "tecNO_ENTRY"
    assert result.message


def test_duplicate_credential(credentials, issuer, buyer):
    credentials.create_credential(issuer.seed, buyer.classic_address, "KYC")
    result = credentials.create_credential(issuer.seed, buyer.classic_address, "KYC")
    assert result.engine_result == "tecDUPLICATE"


def test_delete_credential(credentials, issuer, buyer):
    _issue_and_accept(credentials, issuer, buyer)
    result = credentials.delete_credential(buyer.seed, issuer.classic_address, "KYC")
    assert result.success
    assert credentials.check_credentials(buyer.seed)["count"] == 0


def test_invalid_subject_address(credentials, issuer):
    with pytest.raises(InvalidInputError):
        credentials.create_credential(issuer.seed, "rBogus", "KYC")


# -- Domains -------------------------------------------------------------------


def test_create_and_get_domain(credentials, issuer):
    domain_id = _domain(credentials, issuer)
    assert len(domain_id) == 64

    domain = credentials.get_domain(domain_id)
    assert domain.owner == issuer.classic_address
    assert domain.accepted_credentials == [
        AcceptedCredential(issuer=issuer.classic_address, credential_type="KYC")
    ]


def test_update_domain_keeps_id(credentials, issuer):
    domain_id = _domain(credentials, issuer)
    result = credentials.create_domain(
        issuer.seed,
        [
            AcceptedCredential(issuer=issuer.classic_address, credential_type="KYC"),
            AcceptedCredential(issuer=issuer.classic_address, credential_type="ACCREDITED"),
        ],
        domain_id=domain_id,
    )
    assert result.success
    assert result.domain_id == domain_id
    assert len(credentials.get_domain(domain_id).accepted_credentials) == 2


def test_domain_rejects_credential_type_over_64_bytes(credentials, issuer):
    wide = AcceptedCredential(issuer=issuer.classic_address, credential_type="\u00e9" * 64)
    with pytest.raises(InvalidInputError, match="64 bytes"):
        credentials.create_domain(issuer.seed, [wide])


def test_domain_credential_count_limits(credentials, issuer):
    with pytest.raises(InvalidInputError):
        credentials.create_domain(issuer.seed, [])
    too_many = [
        AcceptedCredential(issuer=issuer.classic_address, credential_type=f"T{i}") for i in range(11)
    ]
    with pytest.raises(InvalidInputError):
        credentials.create_domain(issuer.seed, too_many)


def test_unknown_domain(credentials):
    with pytest.raises(NotFoundError):
        credentials.get_domain("0" * 64)


# -- Gated offers --------------------------------------------------------------


def test_gated_offer_with_accepted_credential(credentials, issuer, buyer):
    _issue_and_accept(credentials, issuer, buyer)
    domain_id = _domain(credentials, issuer)

    result = credentials.create_gated_offer(buyer.seed, domain_id, 5, _usd(issuer))

    assert result.success
    assert result.domain_id == domain_id
    assert result.offer_sequence is not None
    assert result.credential.credential_type == "KYC"


def test_gated_offer_without_credential_fails_before_submit(credentials, ledger, issuer, buyer):
    domain_id = _domain(credentials, issuer)
    sequence = ledger.account_info(buyer.classic_address)["Sequence"]

    with pytest.raises(CredentialError) as exc_info:
        credentials.create_gated_offer(buyer.seed, domain_id, 5, _usd(issuer))

    assert exc_info.value.details["domain_id"] == domain_id
    assert ledger.account_info(buyer.classic_address)["Sequence"] == sequence


def test_gated_offer_ignores_unaccepted_credential(credentials, issuer, buyer):
    credentials.create_credential(issuer.seed, buyer.classic_address, "KYC")
    domain_id = _domain(credentials, issuer)
    with pytest.raises(CredentialError):
        credentials.create_gated_offer(buyer.seed, domain_id, 5, _usd(issuer))


def test_gated_offer_respects_requested_types(credentials, issuer, buyer):
    _issue_and_accept(credentials, issuer, buyer)
    domain_id = _domain(credentials, issuer)
    with pytest.raises(CredentialError):
        credentials.create_gated_offer(
            buyer.seed, domain_id, 5, _usd(issuer), credential_types=["ACCREDITED"]
        )


def test_gated_offer_ledger_failure_is_reported(credentials, issuer, buyer):
    _issue_and_accept(credentials, issuer, buyer)
    domain_id = _domain(credentials, issuer)

    result = credentials.create_gated_offer(buyer.seed, domain_id, 500, _usd(issuer))

    assert result.success is False
    assert result.engine_result == "tecUNFUNDED_OFFER"
    assert result.offer_sequence is None


def test_gated_offer_unknown_domain(credentials, buyer, issuer):
    with pytest.raises(NotFoundError):
        credentials.create_gated_offer(buyer.seed, "A" * 64, 5, _usd(issuer))


def test_gated_offer_bad_currency_is_validation_error(credentials, ledger, issuer, buyer):
    _issue_and_accept(credentials, issuer, buyer)
    domain_id = _domain(credentials, issuer)
    sequence = ledger.account_info(buyer.classic_address)["Sequence"]
    bad = IssuedAmount(currency="ABCD", issuer=issuer.classic_address, value="10")

    with pytest.raises(InvalidInputError, match="Invalid offer amount"):
        credentials.create_gated_offer(buyer.seed, domain_id, 5, bad)
    assert ledger.account_info(buyer.classic_address)["Sequence"] == sequence


def test_gated_offer_unrepresentable_xrp_is_validation_error(credentials, issuer, buyer):
    _issue_and_accept(credentials, issuer, buyer)
    domain_id = _domain(credentials, issuer)
    with pytest.raises(InvalidInputError):
        credentials.create_gated_offer(buyer.seed, domain_id, 0.0000001, _usd(issuer))


@pytest.mark.parametrize("value", ["-5", "0", "abc", "NaN"])
def test_issued_amount_value_must_be_positive(issuer, value):
    with pytest.raises(ValidationError):
        IssuedAmount(currency="USD", issuer=issuer.classic_address, value=value)
