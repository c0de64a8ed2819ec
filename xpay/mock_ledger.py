"""In-process stand-in for an XRPL node.

Applies the same transaction dictionaries a rippled server receives
(``Transaction.to_xrpl()``) and answers with rippled-shaped results, so the
service layer runs unchanged against it. Only the transaction types XPay
submits are modelled: Payment, CredentialCreate, CredentialAccept,
CredentialDelete, PermissionedDomainSet and OfferCreate.

Rules kept from the real ledger:
    - fees (12 drops) and sequences are consumed by tes and tec results only
    - tem/tef/ter results are not applied and never validated
    - the account reserve (1 XRP + 0.2 XRP per owned object) is not spendable
    - a domain offer needs an accepted, unexpired credential from the domain
"""

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from threading import Lock
from typing import Any, Dict, List, Optional, Tuple
import hashlib
import itertools
import json
import logging

from .config import to_ripple_time

logger = logging.getLogger(__name__)

FEE_DROPS = 12
BASE_RESERVE_DROPS = 1_000_000
OWNER_RESERVE_DROPS = 200_000
LSF_ACCEPTED = 0x00010000
MAX_ACCEPTED_CREDENTIALS = 10

Nodes = List[Dict[str, Any]]


def _now_ripple() -> int:
    return to_ripple_time(datetime.now(timezone.utc))


def _index(*parts: Any) -> str:
    raw = ":".join(str(part) for part in parts).encode("utf-8")
    return hashlib.sha512(raw).hexdigest()[:64].upper()


def _positive_amount(amount: Any) -> bool:
    """XRP amounts are drop strings; issued amounts are dicts with a decimal ``value``."""
    try:
        if isinstance(amount, str):
            return int(amount) > 0
        if isinstance(amount, dict):
            value = Decimal(str(amount.get("value")))
            return value.is_finite() and value > 0
    except (ValueError, InvalidOperation):
        return False
    return False


class MockLedger:
    def __init__(self, faucet_drops: int = 100_000_000) -> None:
        self._lock = Lock()
        self._counter = itertools.count(1)
        self.faucet_drops = faucet_drops
        self.ledger_index = 1000
        self.accounts: Dict[str, Dict[str, Any]] = {}
        self.objects: Dict[str, Dict[str, Any]] = {}
        self.transactions: Dict[str, Dict[str, Any]] = {}
        self._history: Dict[str, List[str]] = {}

    # Queries

    def fund(self, address: str, drops: Optional[int] = None) -> int:
        amount = self.faucet_drops if drops is None else drops
        with self._lock:
            account = self.accounts.get(address)
            if account is None:
                account = self._new_account(address, 0)
            account["Balance"] = str(int(account["Balance"]) + amount)
            self.ledger_index += 1
            logger.debug(f"Mock faucet credited {amount} drops to {address}")
            return int(account["Balance"])

    def account_info(self, address: str) -> Optional[Dict[str, Any]]:
        account = self.accounts.get(address)
        return dict(account) if account else None

    def server_info(self) -> Dict[str, Any]:
        return {
            "build_version": "mock",
            "server_state": "full",
            "complete_ledgers": f"1-{self.ledger_index}",
            "validated_ledger": {
                "seq": self.ledger_index,
                "base_fee_xrp": FEE_DROPS / 1_000_000,
                "reserve_base_xrp": BASE_RESERVE_DROPS / 1_000_000,
                "reserve_inc_xrp": OWNER_RESERVE_DROPS / 1_000_000,
            },
        }

    def transaction(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        entry = self.transactions.get(tx_hash.upper())
        return dict(entry) if entry else None

    def account_transactions(self, address: str, limit: int) -> List[Dict[str, Any]]:
        hashes = self._history.get(address, [])
        return [dict(self.transactions[h]) for h in reversed(hashes)][:limit]

    def account_objects(self, address: str, entry_type: Optional[str] = None) -> List[Dict[str, Any]]:
        found = []
        for obj in self.objects.values():
            if entry_type and obj["LedgerEntryType"].lower() != entry_type.replace("_", "").lower():
                continue
            owners = {obj.get("Account"), obj.get("Owner"), obj.get("Subject"), obj.get("Issuer")}
            if address in owners:
                found.append(dict(obj))
        return found

    def ledger_entry(self, index: str) -> Optional[Dict[str, Any]]:
        obj = self.objects.get(index.upper())
        return dict(obj) if obj else None

    # Submission

    def submit(self, tx_json: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            tx = dict(tx_json)
            account = self.accounts.get(tx.get("Account", ""))
            if account is None:
                return self._result(tx, "terNO_ACCOUNT", [], applied=False)
            fee = int(tx.get("Fee") or FEE_DROPS)
            tx["Fee"] = str(fee)
            tx["Sequence"] = account["Sequence"]
            tx["date"] = _now_ripple()
            if int(account["Balance"]) < fee:
                return self._result(tx, "terINSUF_FEE_B", [], applied=False)

            handler = getattr(self, f"_apply_{tx.get('TransactionType', '').lower()}", None)
            if handler is None:
                return self._result(tx, "temUNKNOWN", [], applied=False)
            code, nodes = handler(tx, account, fee)
            if not code.startswith(("tes", "tec")):
                return self._result(tx, code, [], applied=False)

            account["Balance"] = str(int(account["Balance"]) - fee)
            account["Sequence"] += 1
            self.ledger_index += 1
            return self._result(tx, code, nodes, applied=True)

    def _result(self, tx: Dict[str, Any], code: str, nodes: Nodes, applied: bool) -> Dict[str, Any]:
        tx_hash = _index("tx", next(self._counter), json.dumps(tx, sort_keys=True, default=str))
        tx["hash"] = tx_hash
        meta = {"TransactionResult": code, "AffectedNodes": nodes}
        result = {
            "hash": tx_hash,
            "tx_json": tx,
            "meta": meta,
            "engine_result": code,
            "validated": applied,
            "ledger_index": self.ledger_index,
        }
        if applied:
            self.transactions[tx_hash] = {
                "hash": tx_hash,
                "tx_json": tx,
                "meta": meta,
                "validated": True,
                "ledger_index": self.ledger_index,
            }
            for address in {tx.get("Account"), tx.get("Destination"), tx.get("Subject")}:
                if address and address in self.accounts:
                    self._history.setdefault(address, []).append(tx_hash)
        return result

    # Helpers

    def _new_account(self, address: str, balance: int) -> Dict[str, Any]:
        account = {
            "Account": address,
            "Balance": str(balance),
            "Sequence": self.ledger_index,
            "OwnerCount": 0,
            "Flags": 0,
            "LedgerEntryType": "AccountRoot",
        }
        self.accounts[address] = account
        return account

    def _spendable(self, account: Dict[str, Any], fee: int) -> int:
        reserve = BASE_RESERVE_DROPS + account["OwnerCount"] * OWNER_RESERVE_DROPS
        return int(account["Balance"]) - fee - reserve

    def _adjust_owner(self, address: str, delta: int) -> None:
        owner = self.accounts.get(address)
        if owner is not None:
            owner["OwnerCount"] = max(0, owner["OwnerCount"] + delta)

    @staticmethod
    def _expired(obj: Dict[str, Any]) -> bool:
        expiration = obj.get("Expiration")
        return expiration is not None and expiration <= _now_ripple()

    @staticmethod
    def _node(kind: str, entry_type: str, index: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        key = "NewFields" if kind == "CreatedNode" else "FinalFields"
        return {kind: {"LedgerEntryType": entry_type, "LedgerIndex": index, key: dict(fields)}}

    # Transaction handlers

    def _apply_payment(self, tx: Dict[str, Any], account: Dict[str, Any], fee: int) -> Tuple[str, Nodes]:
        amount = tx.get("Amount")
        if not isinstance(amount, str):
            return "temBAD_CURRENCY", []
        drops = int(amount)
        destination = tx.get("Destination")
        if drops <= 0:
            return "temBAD_AMOUNT", []
        if destination == tx["Account"]:
            return "temREDUNDANT", []
        if self._spendable(account, fee) < drops:
            return "tecUNFUNDED_PAYMENT", []
        target = self.accounts.get(destination)
        if target is None:
            if drops < BASE_RESERVE_DROPS:
                return "tecNO_DST_INSUF_XRP", []
            target = self._new_account(destination, 0)
        account["Balance"] = str(int(account["Balance"]) - drops)
        target["Balance"] = str(int(target["Balance"]) + drops)
        nodes = [
            self._node("ModifiedNode", "AccountRoot", _index("acct", tx["Account"]), account),
            self._node("ModifiedNode", "AccountRoot", _index("acct", destination), target),
        ]
        return "tesSUCCESS", nodes

    def _apply_credentialcreate(self, tx: Dict[str, Any], account: Dict[str, Any], fee: int) -> Tuple[str, Nodes]:
        issuer = tx["Account"]
        subject = tx.get("Subject")
        credential_type = tx.get("CredentialType", "")
        if not credential_type:
            return "temMALFORMED", []
        if subject not in self.accounts:
            return "tecNO_TARGET", []
        index = _index("Credential", subject, issuer, credential_type)
        if index in self.objects:
            return "tecDUPLICATE", []
        expiration = tx.get("Expiration")
        if expiration is not None and expiration <= _now_ripple():
            return "tecEXPIRED", []
        if self._spendable(account, fee) < OWNER_RESERVE_DROPS:
            return "tecINSUFFICIENT_RESERVE", []
        obj = {
            "LedgerEntryType": "Credential",
            "Subject": subject,
            "Issuer": issuer,
            "CredentialType": credential_type,
            "Flags": LSF_ACCEPTED if subject == issuer else 0,
            "index": index,
        }
        if expiration is not None:
            obj["Expiration"] = expiration
        if tx.get("URI"):
            obj["URI"] = tx["URI"]
        self.objects[index] = obj
        self._adjust_owner(issuer, 1)
        return "tesSUCCESS", [self._node("CreatedNode", "Credential", index, obj)]

    def _apply_credentialaccept(self, tx: Dict[str, Any], account: Dict[str, Any], fee: int) -> Tuple[str, Nodes]:
        subject = tx["Account"]
        issuer = tx.get("Issuer")
        index = _index("Credential", subject, issuer, tx.get("CredentialType", ""))
        obj = self.objects.get(index)
        if obj is None:
            return "tecNO_ENTRY", []
        if obj["Flags"] & LSF_ACCEPTED:
            return "tecDUPLICATE", []
        if self._expired(obj):
            del self.objects[index]
            self._adjust_owner(issuer, -1)
            return "tecEXPIRED", [self._node("DeletedNode", "Credential", index, obj)]
        obj["Flags"] |= LSF_ACCEPTED
        self._adjust_owner(issuer, -1)
        self._adjust_owner(subject, 1)
        return "tesSUCCESS", [self._node("ModifiedNode", "Credential", index, obj)]

    def _apply_credentialdelete(self, tx: Dict[str, Any], account: Dict[str, Any], fee: int) -> Tuple[str, Nodes]:
        sender = tx["Account"]
        subject = tx.get("Subject", sender)
        issuer = tx.get("Issuer", sender)
        index = _index("Credential", subject, issuer, tx.get("CredentialType", ""))
        obj = self.objects.get(index)
        if obj is None:
            return "tecNO_ENTRY", []
        if sender not in (subject, issuer) and not self._expired(obj):
            return "tecNO_PERMISSION", []
        del self.objects[index]
        owner = subject if obj["Flags"] & LSF_ACCEPTED else issuer
        self._adjust_owner(owner, -1)
        return "tesSUCCESS", [self._node("DeletedNode", "Credential", index, obj)]

    def _apply_permissioneddomainset(self, tx: Dict[str, Any], account: Dict[str, Any], fee: int) -> Tuple[str, Nodes]:
        accepted = tx.get("AcceptedCredentials") or []
        if not accepted:
            return "temARRAY_EMPTY", []
        if len(accepted) > MAX_ACCEPTED_CREDENTIALS:
            return "temARRAY_TOO_LARGE", []
        for entry in accepted:
            credential = entry.get("Credential", {})
            if credential.get("Issuer") not in self.accounts:
                return "tecNO_ISSUER", []

        domain_id = tx.get("DomainID")
        if domain_id:
            obj = self.objects.get(domain_id.upper())
            if obj is None or obj["LedgerEntryType"] != "PermissionedDomain":
                return "tecNO_ENTRY", []
            if obj["Owner"] != tx["Account"]:
                return "tecNO_PERMISSION", []
            obj["AcceptedCredentials"] = accepted
            return "tesSUCCESS", [self._node("ModifiedNode", "PermissionedDomain", obj["index"], obj)]

        if self._spendable(account, fee) < OWNER_RESERVE_DROPS:
            return "tecINSUFFICIENT_RESERVE", []
        index = _index("PermissionedDomain", tx["Account"], tx["Sequence"])
        obj = {
            "LedgerEntryType": "PermissionedDomain",
            "Owner": tx["Account"],
            "Sequence": tx["Sequence"],
            "AcceptedCredentials": accepted,
            "Flags": 0,
            "index": index,
        }
        self.objects[index] = obj
        self._adjust_owner(tx["Account"], 1)
        return "tesSUCCESS", [self._node("CreatedNode", "PermissionedDomain", index, obj)]

    def _is_domain_member(self, address: str, domain: Dict[str, Any]) -> bool:
        for entry in domain.get("AcceptedCredentials", []):
            credential = entry.get("Credential", {})
            index = _index(
                "Credential", address, credential.get("Issuer"), credential.get("CredentialType", "")
            )
            obj = self.objects.get(index)
            if obj and obj["Flags"] & LSF_ACCEPTED and not self._expired(obj):
                return True
        return False

    def _apply_offercreate(self, tx: Dict[str, Any], account: Dict[str, Any], fee: int) -> Tuple[str, Nodes]:
        taker_gets = tx.get("TakerGets")
        taker_pays = tx.get("TakerPays")
        if not _positive_amount(taker_gets) or not _positive_amount(taker_pays):
            return "temBAD_OFFER", []
        domain_id = tx.get("DomainID")
        if domain_id:
            domain = self.objects.get(domain_id.upper())
            if domain is None or domain["LedgerEntryType"] != "PermissionedDomain":
                return "tecNO_PERMISSION", []
            if not self._is_domain_member(tx["Account"], domain):
                return "tecNO_PERMISSION", []
        if isinstance(taker_gets, str) and self._spendable(account, fee) < int(taker_gets):
            return "tecUNFUNDED_OFFER", []
        index = _index("Offer", tx["Account"], tx["Sequence"])
        obj = {
            "LedgerEntryType": "Offer",
            "Account": tx["Account"],
            "Sequence": tx["Sequence"],
            "TakerGets": taker_gets,
            "TakerPays": taker_pays,
            "Flags": tx.get("Flags", 0),
            "index": index,
        }
        if domain_id:
            obj["DomainID"] = domain_id.upper()
        self.objects[index] = obj
        self._adjust_owner(tx["Account"], 1)
        return "tesSUCCESS", [self._node("CreatedNode", "Offer", index, obj)]
