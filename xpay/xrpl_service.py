from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import json
import logging
import re
import urllib.error
import urllib.request

from xrpl.clients import JsonRpcClient
from xrpl.constants import CryptoAlgorithm, XRPLException
from xrpl.core.addresscodec import is_valid_classic_address
from xrpl.models.requests import AccountInfo, AccountObjects, AccountObjectType, AccountTx, ServerInfo, Tx
from xrpl.models.transactions import Payment
from xrpl.models.transactions.transaction import Transaction
from xrpl.transaction import XRPLReliableSubmissionException, autofill_and_sign, submit_and_wait
from xrpl.utils import drops_to_xrp, xrp_to_drops
from xrpl.wallet import Wallet, generate_faucet_wallet

from .config import Settings
from .errors import InvalidInputError, NotFoundError, XrplServiceError
from .mock_ledger import MockLedger

logger = logging.getLogger(__name__)

ENGINE_RESULT_MESSAGES = {
    "tesSUCCESS": "The transaction was applied",
    "tecUNFUNDED_PAYMENT": "Insufficient XRP balance to send the payment",
    "tecUNFUNDED_OFFER": "The account does not hold the asset it offers",
    "tecNO_DST_INSUF_XRP": "Destination does not exist and the amount is below the reserve",
    "tecNO_PERMISSION": "The account is not permitted to perform this action (missing or unaccepted credential)",
    "tecNO_ENTRY": "The referenced ledger object does not exist",
    "tecNO_TARGET": "The target account does not exist",
    "tecNO_ISSUER": "The credential issuer does not exist",
    "tecDUPLICATE": "The ledger object already exists",
    "tecEXPIRED": "The credential has expired",
    "tecINSUFFICIENT_RESERVE": "Insufficient XRP to meet the owner reserve",
    "temBAD_AMOUNT": "The amount is invalid",
    "temBAD_CURRENCY": "The currency is invalid",
    "temBAD_OFFER": "The offer is malformed",
    "temREDUNDANT": "The transaction sends funds to its own account",
    "temMALFORMED": "The transaction is malformed",
    "temARRAY_EMPTY": "At least one accepted credential is required",
    "temARRAY_TOO_LARGE": "Too many accepted credentials",
    "terNO_ACCOUNT": "The sending account does not exist",
    "terINSUF_FEE_B": "Insufficient XRP to pay the transaction fee",
    "tefPAST_SEQ": "The sequence number has already been used",
}

RESULT_CLASSES = {
    "tes": "success",
    "tec": "failed, fee claimed",
    "tef": "rejected",
    "tel": "rejected locally",
    "tem": "malformed",
    "ter": "retry",
}

_ENGINE_CODE = re.compile(r"\b(te[cfmlrs][A-Z_]+|tesSUCCESS)\b")


def describe_engine_result(code: str) -> str:
    message = ENGINE_RESULT_MESSAGES.get(code)
    if message:
        return message
    category = RESULT_CLASSES.get(code[:3], "unknown")
    return f"Transaction result {code} ({category})"


@dataclass
class TxOutcome:
    tx_hash: Optional[str]
    validated: bool
    engine_result: str
    sequence: Optional[int] = None
    meta: Dict[str, Any] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.engine_result == "tesSUCCESS"

    @property
    def message(self) -> str:
        return describe_engine_result(self.engine_result)

    def created_index(self, entry_type: str) -> Optional[str]:
        for node in self.meta.get("AffectedNodes", []):
            created = node.get("CreatedNode")
            if created and created.get("LedgerEntryType") == entry_type:
                return created.get("LedgerIndex")
        return None

    @classmethod
    def from_result(cls, result: Dict[str, Any]) -> "TxOutcome":
        meta = result.get("meta") or {}
        tx_json = result.get("tx_json") or {}
        engine_result = meta.get("TransactionResult") or result.get("engine_result", "")
        return cls(
            tx_hash=result.get("hash") or tx_json.get("hash"),
            validated=result.get("validated", False),
            engine_result=engine_result,
            sequence=tx_json.get("Sequence") or result.get("Sequence"),
            meta=meta if isinstance(meta, dict) else {},
        )


class XrplService:
    def __init__(self, settings: Settings, ledger: Optional[MockLedger] = None) -> None:
        self.settings = settings
        self.mode = settings.xrpl_mode.lower()
        self._client: Optional[JsonRpcClient] = None
        self.ledger: Optional[MockLedger] = None
        if self.mode == "mock":
            self.ledger = ledger or MockLedger(faucet_drops=int(xrp_to_drops(settings.mock_faucet_xrp)))
        else:
            self._client = JsonRpcClient(settings.xrpl_json_rpc_url)
        logger.info(f"XRPL service running in {self.mode} mode")

    # Wallets and addresses

    def generate_wallet(self) -> Wallet:
        wallet = Wallet.create(algorithm=CryptoAlgorithm.ED25519)
        logger.info(f"New wallet created: {wallet.classic_address}", extra={"address": wallet.classic_address})
        return wallet

    def wallet_from_seed(self, seed: str) -> Wallet:
        seed = (seed or "").strip()
        if not seed:
            raise InvalidInputError("Seed is empty or malformed")
        algorithm = (
            CryptoAlgorithm.ED25519 if seed.startswith("sEd") else CryptoAlgorithm.SECP256K1
        )
        try:
            return Wallet.from_seed(seed, algorithm=algorithm)
        except (XRPLException, ValueError) as exc:
            raise InvalidInputError(f"Invalid seed: {exc}") from exc

    @staticmethod
    def is_valid_address(address: str) -> bool:
        try:
            return is_valid_classic_address(address or "")
        except (XRPLException, ValueError):
            return False

    def validate_seed(self, seed: str) -> Dict[str, Any]:
        try:
            wallet = self.wallet_from_seed(seed)
        except InvalidInputError as exc:
            return {"is_valid": False, "error": exc.message}
        return {"is_valid": True, "address": wallet.classic_address}

    def fund_wallet(self, wallet: Wallet) -> float:
        """Fund a freshly generated wallet from the faucet and return its XRP balance."""
        if self.ledger is not None:
            self.ledger.fund(wallet.classic_address)
        else:
            try:
                generate_faucet_wallet(self._client, wallet)
            except XRPLException as exc:
                raise XrplServiceError(f"XRPL faucet funding failed: {exc}") from exc
        logger.info(f"Wallet funded: {wallet.classic_address}", extra={"address": wallet.classic_address})
        return self.get_balance_xrp(wallet.classic_address)

    def fund_address(self, address: str) -> Dict[str, Any]:
        if not self.is_valid_address(address):
            raise InvalidInputError("Not a valid XRPL address")
        if self.ledger is not None:
            self.ledger.fund(address)
            return {"address": address, "funded": True, "balance_xrp": self.get_balance_xrp(address)}
        if self.settings.xrpl_network != "testnet":
            logger.warning("Wallet funding only available on testnet")
            return {"address": address, "funded": False, "message": "Funding only available on testnet"}
        body = self._http_post(self.settings.xrpl_faucet_url, {"destination": address})
        logger.info(f"Wallet funded: {address}", extra={"address": address})
        return {"address": address, "funded": True, "faucet": body}

    # Queries

    def _request(self, request) -> Dict[str, Any]:
        try:
            response = self._client.request(request)
        except XRPLException as exc:
            raise XrplServiceError(f"XRPL request failed: {exc}") from exc
        except OSError as exc:
            raise XrplServiceError(f"XRPL connection failed: {exc}") from exc
        if not response.is_successful():
            error = response.result.get("error", "unknown")
            if error in {"actNotFound", "txnNotFound", "entryNotFound", "objectNotFound"}:
                raise NotFoundError(f"{error}: {response.result.get('error_message', error)}")
            raise XrplServiceError(f"XRPL request error: {error}")
        return response.result

    def _raw_request(self, method: str, params: Dict[str, Any]) -> Dict[str, Any]:
        body = self._http_post(self.settings.xrpl_json_rpc_url, {"method": method, "params": [params]})
        return body.get("result", {})

    def _http_post(self, url: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        req = urllib.request.Request(
            url,
            data=json.dumps(payload).encode("utf-8"),
            headers={"Content-Type": "application/json"},
        )
        try:
            with urllib.request.urlopen(req, timeout=10) as resp:
                return json.load(resp)
        except (urllib.error.URLError, OSError, ValueError) as exc:
            raise XrplServiceError(f"XRPL HTTP call to {url} failed: {exc}") from exc

    def account_data(self, address: str) -> Dict[str, Any]:
        if self.ledger is not None:
            data = self.ledger.account_info(address)
            if data is None:
                raise NotFoundError(f"actNotFound: account {address} not found")
            return data
        result = self._request(AccountInfo(account=address, ledger_index="validated"))
        return result["account_data"]

    def get_balance_drops(self, address: str) -> int:
        return int(self.account_data(address)["Balance"])

    def get_balance_xrp(self, address: str) -> float:
        return float(drops_to_xrp(str(self.get_balance_drops(address))))

    def server_info(self) -> Dict[str, Any]:
        if self.ledger is not None:
            return self.ledger.server_info()
        return self._request(ServerInfo())["info"]

    def get_transaction(self, tx_hash: str) -> Dict[str, Any]:
        if self.ledger is not None:
            entry = self.ledger.transaction(tx_hash)
            if entry is None:
                raise NotFoundError(f"txnNotFound: transaction {tx_hash} not found")
            return entry
        return self._request(Tx(transaction=tx_hash))

    def account_transactions(self, address: str, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        limit = limit or self.settings.tx_history_limit
        if self.ledger is not None:
            if self.ledger.account_info(address) is None:
                raise NotFoundError(f"actNotFound: account {address} not found")
            return self.ledger.account_transactions(address, limit)
        result = self._request(AccountTx(account=address, limit=limit))
        return result.get("transactions", [])

    def account_objects(self, address: str, object_type: AccountObjectType) -> List[Dict[str, Any]]:
        if self.ledger is not None:
            return self.ledger.account_objects(address, object_type.value)
        result = self._request(
            AccountObjects(account=address, type=object_type, ledger_index="validated")
        )
        return result.get("account_objects", [])

    def ledger_entry(self, index: str) -> Optional[Dict[str, Any]]:
        if self.ledger is not None:
            return self.ledger.ledger_entry(index)
        result = self._raw_request("ledger_entry", {"index": index, "ledger_index": "validated"})
        if result.get("error") == "entryNotFound":
            return None
        if result.get("error"):
            raise XrplServiceError(f"XRPL request error: {result['error']}")
        return result.get("node")

    # Submission

    def submit(self, tx: Transaction, wallet: Wallet) -> TxOutcome:
        if self.ledger is not None:
            outcome = TxOutcome.from_result(self.ledger.submit(tx.to_xrpl()))
        else:
            outcome = self._real_submit(tx, wallet)
        log = logger.info if outcome.success else logger.warning
        log(
            f"{tx.transaction_type.value} {outcome.engine_result}: {outcome.tx_hash}",
            extra={
                "address": wallet.classic_address,
                "tx_hash": outcome.tx_hash,
                "engine_result": outcome.engine_result,
            },
        )
        return outcome

    def _real_submit(self, tx: Transaction, wallet: Wallet) -> TxOutcome:
        try:
            signed = autofill_and_sign(tx, self._client, wallet)
            result = submit_and_wait(signed, self._client).result
        except XRPLReliableSubmissionException as exc:
            match = _ENGINE_CODE.search(str(exc))
            if not match:
                raise XrplServiceError(f"XRPL submission failed: {exc}") from exc
            return TxOutcome(tx_hash=None, validated=False, engine_result=match.group(1))
        except XRPLException as exc:
            raise XrplServiceError(f"XRPL submission failed: {exc}") from exc
        except OSError as exc:
            raise XrplServiceError(f"XRPL connection failed: {exc}") from exc
        return TxOutcome.from_result(result)

    @staticmethod
    def to_drops(amount_xrp: float) -> str:
        try:
            return xrp_to_drops(amount_xrp)
        except XRPLException as exc:
            raise InvalidInputError(f"Invalid XRP amount: {exc}") from exc

    def send_payment(self, wallet: Wallet, destination: str, amount_xrp: float) -> TxOutcome:
        tx = Payment(
            account=wallet.classic_address,
            amount=self.to_drops(amount_xrp),
            destination=destination,
        )
        return self.submit(tx, wallet)
