from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging

from xrpl.utils import drops_to_xrp

from .config import Settings, from_ripple_time
from .errors import InvalidInputError, NotFoundError, PaymentError
from .models import Account, Balance, TransactionRecord
from .state import StateStore
from .xrpl_service import XrplService

logger = logging.getLogger(__name__)


def _drops_to_float(drops: Any) -> float:
    try:
        return float(drops_to_xrp(str(drops)))
    except (TypeError, ValueError):
        return 0.0


def map_history_entry(entry: Dict[str, Any]) -> Optional[TransactionRecord]:
    """Map one ``account_tx`` entry (API v1 ``tx`` or v2 ``tx_json``) to a record."""
    tx = entry.get("tx") or entry.get("tx_json")
    if not tx:
        return None
    meta = entry.get("meta") or {}
    success = isinstance(meta, dict) and meta.get("TransactionResult") == "tesSUCCESS"
    amount = tx.get("Amount", tx.get("DeliverMax"))
    ripple_date = tx.get("date", entry.get("date"))
    timestamp = (
        from_ripple_time(int(ripple_date)) if ripple_date is not None else datetime.now(timezone.utc)
    )
    return TransactionRecord(
        hash=tx.get("hash") or entry.get("hash") or "",
        amount=_drops_to_float(amount) if isinstance(amount, str) else 0.0,
        from_address=tx.get("Account", ""),
        to_address=tx.get("Destination", ""),
        timestamp=timestamp,
        status="success" if success else "failed",
        tx_type=tx.get("TransactionType"),
        fee=_drops_to_float(tx.get("Fee", "0")),
    )


class AccountService:
    def __init__(self, settings: Settings, state: StateStore, xrpl_service: XrplService) -> None:
        self.settings = settings
        self.state = state
        self.xrpl = xrpl_service

    def validate_address(self, address: Optional[str]) -> str:
        clean = (address or "").strip()
        if not clean:
            raise InvalidInputError("Address is empty")
        if not self.xrpl.is_valid_address(clean):
            raise InvalidInputError("Not a valid XRPL address")
        return clean

    def create_account(self, nickname: str) -> Account:
        if not nickname or not nickname.strip():
            raise InvalidInputError("Nickname is required")
        wallet = self.xrpl.generate_wallet()
        balance_xrp = self.xrpl.fund_wallet(wallet)
        now = datetime.now(timezone.utc)
        account = Account(
            address=wallet.classic_address,
            secret=wallet.seed,
            public_key=wallet.public_key,
            private_key=wallet.private_key,
            balance_xrp=balance_xrp,
            balance=int(round(balance_xrp * 1_000_000)),
            user_id=nickname.strip(),
            created_at=now,
            updated_at=now,
        )
        self.state.save_account(account)
        account = self.get_account_info(wallet.classic_address)
        logger.info(f"Account created: {account.address}", extra={"address": account.address})
        return account

    def get_account_info(self, address: str) -> Account:
        valid_address = self.validate_address(address)
        try:
            data = self.xrpl.account_data(valid_address)
        except NotFoundError as exc:
            logger.warning(f"Account lookup failed ({valid_address}): {exc}")
            raise NotFoundError("Account not found") from exc

        fields = {
            "address": valid_address,
            "balance": int(data.get("Balance", 0)),
            "balance_xrp": _drops_to_float(data.get("Balance", "0")),
            "sequence": data.get("Sequence"),
            "owner_count": data.get("OwnerCount"),
            "flags": data.get("Flags"),
            "updated_at": datetime.now(timezone.utc),
        }
        stored = self.state.get_account(valid_address)
        account = stored.model_copy(update=fields) if stored else Account(**fields)
        self.state.save_account(account)
        return account

    def get_balance(self, address: str) -> Balance:
        valid_address = self.validate_address(address)
        try:
            drops = self.xrpl.get_balance_drops(valid_address)
        except NotFoundError as exc:
            raise NotFoundError("Account not found") from exc
        return Balance(address=valid_address, balance=drops, balance_xrp=_drops_to_float(drops))

    def send_payment(self, from_address: str, to_address: str, amount: float) -> TransactionRecord:
        valid_from = self.validate_address(from_address)
        valid_to = self.validate_address(to_address)
        stored = self.state.get_account(valid_from)
        if not stored or not stored.secret:
            raise NotFoundError("Account not found in storage")
        if not amount or amount <= 0:
            raise InvalidInputError("A positive amount is required")

        logger.info(
            f"Sending {amount} XRP ({valid_from} -> {valid_to})",
            extra={"address": valid_from},
        )
        wallet = self.xrpl.wallet_from_seed(stored.secret)
        outcome = self.xrpl.send_payment(wallet, valid_to, amount)
        if not outcome.success:
            raise PaymentError(
                f"Transaction failed: {outcome.engine_result}",
                details={"engine_result": outcome.engine_result, "reason": outcome.message},
            )

        self.get_account_info(valid_from)
        if self.state.get_account(valid_to):
            self.get_account_info(valid_to)

        return TransactionRecord(
            hash=outcome.tx_hash or "",
            amount=amount,
            from_address=valid_from,
            to_address=valid_to,
            timestamp=datetime.now(timezone.utc),
            status="success",
            tx_type="Payment",
        )

    def get_transaction_history(self, address: str, limit: Optional[int] = None) -> List[TransactionRecord]:
        valid_address = self.validate_address(address)
        entries = self.xrpl.account_transactions(valid_address, limit or self.settings.tx_history_limit)
        records = [record for record in map(map_history_entry, entries) if record is not None]
        logger.info(f"Transaction history for {valid_address}: {len(records)} entries")
        return records

    def get_stored_account(self, address: str) -> Optional[Account]:
        return self.state.get_account(address)

    def list_stored_accounts(self) -> List[Account]:
        return self.state.list_accounts()

    def delete_account(self, address: str) -> bool:
        deleted = self.state.delete_account(address)
        if deleted:
            logger.info(f"Account removed from storage: {address}")
        else:
            logger.warning(f"Account removal failed, not stored: {address}")
        return deleted
