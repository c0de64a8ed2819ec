"""XRPL credentials, permissioned domains and credential-gated offers.

Credential types travel as plain strings through the API and are
hex-encoded on the ledger. A gated offer is an ``OfferCreate`` that carries
a ``DomainID``; the ledger only accepts it from an account holding an
accepted, unexpired credential whose ``(issuer, type)`` pair is listed in
the domain's ``AcceptedCredentials``. The same membership test runs here
before submission so a buyer without a credential never pays a fee for a
transaction that is bound to fail.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional
import logging

from xrpl.constants import XRPLException
from xrpl.models.amounts import IssuedCurrencyAmount
from xrpl.models.requests import AccountObjectType
from xrpl.models.transactions import (
    CredentialAccept,
    CredentialCreate,
    CredentialDelete,
    OfferCreate,
    PermissionedDomainSet,
)
from xrpl.models.transactions.deposit_preauth import Credential
from xrpl.utils import hex_to_str, str_to_hex, xrp_to_drops

from .config import Settings, from_ripple_time, to_ripple_time
from .errors import CredentialError, InvalidInputError, NotFoundError
from .models import (
    AcceptedCredential,
    CredentialInfo,
    CredentialResult,
    DomainResult,
    IssuedAmount,
    OfferResult,
    PermissionedDomain,
)
from .xrpl_service import TxOutcome, XrplService

logger = logging.getLogger(__name__)

LSF_ACCEPTED = 0x00010000
MAX_ACCEPTED_CREDENTIALS = 10
DEFAULT_EXPIRATION_HOURS = 24
MAX_CREDENTIAL_TYPE_HEX = 128


def encode_credential_type(value: str) -> str:
    return str_to_hex(value).upper()


def decode_hex(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    try:
        return hex_to_str(value)
    except ValueError:
        return value


def credential_from_object(obj: Dict[str, Any]) -> CredentialInfo:
    expiration = obj.get("Expiration")
    expires_at = from_ripple_time(int(expiration)) if expiration is not None else None
    return CredentialInfo(
        issuer=obj.get("Issuer", ""),
        subject=obj.get("Subject", ""),
        credential_type=decode_hex(obj.get("CredentialType")) or "",
        accepted=bool(int(obj.get("Flags", 0)) & LSF_ACCEPTED),
        expired=expires_at is not None and expires_at <= datetime.now(timezone.utc),
        expiration=expires_at,
        uri=decode_hex(obj.get("URI")),
    )


def _ledger_fields(outcome: TxOutcome) -> Dict[str, Any]:
    return {
        "success": outcome.success,
        "tx_hash": outcome.tx_hash,
        "engine_result": outcome.engine_result,
        "message": outcome.message,
        "validated": outcome.validated,
    }


class CredentialService:
    def __init__(self, settings: Settings, xrpl_service: XrplService) -> None:
        self.settings = settings
        self.xrpl = xrpl_service

    def _address(self, address: str, label: str) -> str:
        clean = (address or "").strip()
        if not self.xrpl.is_valid_address(clean):
            raise InvalidInputError(f"{label} is not a valid XRPL address")
        return clean

    @staticmethod
    def _build(model, **fields):
        try:
            return model(**fields)
        except XRPLException as exc:
            raise InvalidInputError(f"Invalid {model.__name__}: {exc}") from exc

    @staticmethod
    def _credential_type(value: str) -> str:
        encoded = encode_credential_type(value)
        if not encoded or len(encoded) > MAX_CREDENTIAL_TYPE_HEX:
            raise InvalidInputError("Credential type must be 1 to 64 bytes")
        return encoded

    # Credentials

    def create_credential(
        self,
        issuer_seed: str,
        subject_address: str,
        credential_type: str,
        expiration_hours: Optional[int] = DEFAULT_EXPIRATION_HOURS,
        uri: Optional[str] = None,
    ) -> CredentialResult:
        issuer = self.xrpl.wallet_from_seed(issuer_seed)
        subject = self._address(subject_address, "Subject address")
        expiration = None
        if expiration_hours:
            expiration = to_ripple_time(datetime.now(timezone.utc) + timedelta(hours=expiration_hours))
        tx = self._build(
            CredentialCreate,
            account=issuer.classic_address,
            subject=subject,
            credential_type=self._credential_type(credential_type),
            expiration=expiration,
            uri=str_to_hex(uri).upper() if uri else None,
        )
        outcome = self.xrpl.submit(tx, issuer)
        logger.info(
            f"CredentialCreate {credential_type} for {subject}: {outcome.engine_result}",
            extra={"address": issuer.classic_address, "engine_result": outcome.engine_result},
        )
        return CredentialResult(
            **_ledger_fields(outcome),
            issuer=issuer.classic_address,
            subject=subject,
            credential_type=credential_type,
            expiration=from_ripple_time(expiration) if expiration is not None else None,
        )

    def accept_credential(
        self, subject_seed: str, issuer_address: str, credential_type: Optional[str] = None
    ) -> CredentialResult:
        credential_type = credential_type or self.settings.credential_type
        subject = self.xrpl.wallet_from_seed(subject_seed)
        issuer = self._address(issuer_address, "Issuer address")
        tx = self._build(
            CredentialAccept,
            account=subject.classic_address,
            issuer=issuer,
            credential_type=self._credential_type(credential_type),
        )
        outcome = self.xrpl.submit(tx, subject)
        return CredentialResult(
            **_ledger_fields(outcome),
            issuer=issuer,
            subject=subject.classic_address,
            credential_type=credential_type,
        )

    def delete_credential(
        self, subject_seed: str, issuer_address: str, credential_type: str
    ) -> CredentialResult:
        subject = self.xrpl.wallet_from_seed(subject_seed)
        issuer = self._address(issuer_address, "Issuer address")
        tx = self._build(
            CredentialDelete,
            account=subject.classic_address,
            issuer=issuer,
            credential_type=self._credential_type(credential_type),
        )
        outcome = self.xrpl.submit(tx, subject)
        return CredentialResult(
            **_ledger_fields(outcome),
            issuer=issuer,
            subject=subject.classic_address,
            credential_type=credential_type,
        )

    def credentials_for(self, address: str) -> List[CredentialInfo]:
        objects = self.xrpl.account_objects(address, AccountObjectType.CREDENTIAL)
        return [
            credential_from_object(obj)
            for obj in objects
            if obj.get("LedgerEntryType") == "Credential" and obj.get("Subject") == address
        ]

    def check_credentials(self, account_seed: str) -> Dict[str, Any]:
        wallet = self.xrpl.wallet_from_seed(account_seed)
        credentials = self.credentials_for(wallet.classic_address)
        return {
            "address": wallet.classic_address,
            "credentials": credentials,
            "count": len(credentials),
        }

    # Permissioned domains

    def create_domain(
        self,
        owner_seed: str,
        accepted_credentials: List[AcceptedCredential],
        domain_id: Optional[str] = None,
    ) -> DomainResult:
        if not accepted_credentials:
            raise InvalidInputError("At least one accepted credential is required")
        if len(accepted_credentials) > MAX_ACCEPTED_CREDENTIALS:
            raise InvalidInputError(
                f"A domain accepts at most {MAX_ACCEPTED_CREDENTIALS} credentials"
            )
        owner = self.xrpl.wallet_from_seed(owner_seed)
        entries = [
            self._build(
                Credential,
                issuer=self._address(item.issuer, "Credential issuer"),
                credential_type=self._credential_type(item.credential_type),
            )
            for item in accepted_credentials
        ]
        tx = self._build(
            PermissionedDomainSet,
            account=owner.classic_address,
            accepted_credentials=entries,
            domain_id=domain_id.upper() if domain_id else None,
        )
        outcome = self.xrpl.submit(tx, owner)
        new_domain_id = domain_id.upper() if domain_id else outcome.created_index("PermissionedDomain")
        logger.info(
            f"PermissionedDomainSet {outcome.engine_result}: {new_domain_id}",
            extra={"domain_id": new_domain_id, "engine_result": outcome.engine_result},
        )
        return DomainResult(
            **_ledger_fields(outcome),
            domain_id=new_domain_id if outcome.success else None,
            owner=owner.classic_address,
            accepted_credentials=accepted_credentials,
        )

    def get_domain(self, domain_id: str) -> PermissionedDomain:
        obj = self.xrpl.ledger_entry(domain_id)
        if not obj or obj.get("LedgerEntryType") != "PermissionedDomain":
            raise NotFoundError("Permissioned domain not found")
        accepted = []
        for entry in obj.get("AcceptedCredentials", []):
            credential = entry.get("Credential", entry)
            accepted.append(
                AcceptedCredential(
                    issuer=credential.get("Issuer", ""),
                    credential_type=decode_hex(credential.get("CredentialType")) or "",
                )
            )
        return PermissionedDomain(
            domain_id=(obj.get("index") or domain_id).upper(),
            owner=obj.get("Owner", ""),
            accepted_credentials=accepted,
        )

    def matching_credential(
        self,
        address: str,
        domain: PermissionedDomain,
        credential_types: Optional[Iterable[str]] = None,
    ) -> Optional[CredentialInfo]:
        accepted_pairs = {(c.issuer, c.credential_type) for c in domain.accepted_credentials}
        allowed_types = set(credential_types) if credential_types else None
        for credential in self.credentials_for(address):
            if not credential.accepted or credential.expired:
                continue
            if (credential.issuer, credential.credential_type) not in accepted_pairs:
                continue
            if allowed_types is not None and credential.credential_type not in allowed_types:
                continue
            return credential
        return None

    # Permissioned DEX

    def create_gated_offer(
        self,
        account_seed: str,
        domain_id: str,
        taker_gets_xrp: float,
        taker_pays: IssuedAmount,
        credential_types: Optional[List[str]] = None,
    ) -> OfferResult:
        wallet = self.xrpl.wallet_from_seed(account_seed)
        domain = self.get_domain(domain_id)
        credential = self.matching_credential(wallet.classic_address, domain, credential_types)
        if credential is None:
            raise CredentialError(
                f"Account {wallet.classic_address} holds no accepted credential for domain {domain.domain_id}",
                details={
                    "domain_id": domain.domain_id,
                    "accepted_credentials": [c.model_dump() for c in domain.accepted_credentials],
                },
            )

        token_issuer = self._address(taker_pays.issuer, "Token issuer")
        try:
            taker_gets = xrp_to_drops(taker_gets_xrp)
            taker_pays_amount = IssuedCurrencyAmount(
                currency=taker_pays.currency,
                issuer=token_issuer,
                value=taker_pays.value,
            )
        except XRPLException as exc:
            raise InvalidInputError(f"Invalid offer amount: {exc}") from exc
        tx = self._build(
            OfferCreate,
            account=wallet.classic_address,
            taker_gets=taker_gets,
            taker_pays=taker_pays_amount,
            domain_id=domain.domain_id,
        )
        outcome = self.xrpl.submit(tx, wallet)
        logger.info(
            f"Gated OfferCreate {outcome.engine_result} in domain {domain.domain_id}",
            extra={
                "address": wallet.classic_address,
                "domain_id": domain.domain_id,
                "engine_result": outcome.engine_result,
            },
        )
        return OfferResult(
            **_ledger_fields(outcome),
            account=wallet.classic_address,
            domain_id=domain.domain_id,
            offer_sequence=outcome.sequence if outcome.success else None,
            credential=credential,
        )
