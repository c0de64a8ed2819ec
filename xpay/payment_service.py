from datetime import datetime, timedelta, timezone
from typing import List
from uuid import uuid4
import logging

from .config import Settings
from .errors import NotFoundError, PaymentError, XPayError
from .models import HistoryType, PaymentRequest, PaymentStats, PaymentStatus
from .state import StateStore
from .xrpl_service import XrplService

logger = logging.getLogger(__name__)


class PaymentService:
    """Merchant payment requests settled in XRP.

    A request is created ``pending`` and lives for ``payment_expiry_minutes``.
    Only a ``tesSUCCESS`` ledger result moves it to ``completed``; a completed
    request can be refunded once by the merchant.
    """

    def __init__(self, settings: Settings, state: StateStore, xrpl_service: XrplService) -> None:
        self.settings = settings
        self.state = state
        self.xrpl = xrpl_service

    def _get(self, payment_id: str) -> PaymentRequest:
        try:
            return self.state.get_payment(payment_id)
        except KeyError as exc:
            raise NotFoundError("Payment request not found") from exc

    def create_payment_request(
        self, amount: float, description: str, merchant_address: str
    ) -> PaymentRequest:
        if amount <= 0:
            raise PaymentError("Payment amount must be positive")
        self.xrpl.to_drops(amount)
        if not self.xrpl.is_valid_address(merchant_address):
            raise PaymentError("Merchant wallet address is not a valid XRPL address")
        now = datetime.now(timezone.utc)
        payment = PaymentRequest(
            id=str(uuid4()),
            amount=float(amount),
            description=description,
            merchant_address=merchant_address,
            created_at=now,
            updated_at=now,
            expires_at=now + timedelta(minutes=self.settings.payment_expiry_minutes),
        )
        self.state.save_payment(payment)
        logger.info(
            f"Payment request created: {payment.id} for {amount} XRP",
            extra={"payment_id": payment.id},
        )
        return payment

    def process_payment(
        self, payment_id: str, customer_wallet_seed: str, customer_address: str
    ) -> PaymentRequest:
        payment = self._get(payment_id)
        if payment.status != PaymentStatus.PENDING:
            raise PaymentError("Payment request is not pending")

        now = datetime.now(timezone.utc)
        if now > payment.expires_at:
            payment.status = PaymentStatus.EXPIRED
            payment.updated_at = now
            self.state.save_payment(payment)
            raise PaymentError("Payment request has expired")

        wallet = self.xrpl.wallet_from_seed(customer_wallet_seed)
        if wallet.classic_address != customer_address:
            raise PaymentError("Wallet address does not match seed")

        balance = self.xrpl.get_balance_xrp(customer_address)
        if balance < payment.amount:
            raise PaymentError("Insufficient balance")

        outcome = self.xrpl.send_payment(wallet, payment.merchant_address, payment.amount)
        if not outcome.success:
            raise PaymentError(
                f"Payment failed: {outcome.engine_result}",
                details={"engine_result": outcome.engine_result, "reason": outcome.message},
            )

        now = datetime.now(timezone.utc)
        payment.status = PaymentStatus.COMPLETED
        payment.transaction_hash = outcome.tx_hash
        payment.customer_address = customer_address
        payment.completed_at = now
        payment.updated_at = now
        self.state.save_payment(payment)
        logger.info(
            f"Payment completed: {payment_id}, tx: {outcome.tx_hash}",
            extra={"payment_id": payment_id, "tx_hash": outcome.tx_hash},
        )
        return payment

    def get_payment_status(self, payment_id: str) -> PaymentRequest:
        payment = self._get(payment_id)
        if payment.status == PaymentStatus.COMPLETED and payment.transaction_hash:
            try:
                details = self.xrpl.get_transaction(payment.transaction_hash)
            except XPayError as exc:
                logger.warning(
                    f"Could not fetch transaction details for {payment.transaction_hash}: {exc}"
                )
            else:
                return payment.model_copy(update={"transaction_details": details})
        return payment

    def refund_payment(self, payment_id: str, merchant_wallet_seed: str) -> PaymentRequest:
        payment = self._get(payment_id)
        if payment.status != PaymentStatus.COMPLETED:
            raise PaymentError("Payment is not completed")

        wallet = self.xrpl.wallet_from_seed(merchant_wallet_seed)
        if wallet.classic_address != payment.merchant_address:
            raise PaymentError("Merchant wallet address does not match")

        outcome = self.xrpl.send_payment(wallet, payment.customer_address, payment.amount)
        if not outcome.success:
            raise PaymentError(
                f"Refund failed: {outcome.engine_result}",
                details={"engine_result": outcome.engine_result, "reason": outcome.message},
            )

        now = datetime.now(timezone.utc)
        payment.status = PaymentStatus.REFUNDED
        payment.refund_hash = outcome.tx_hash
        payment.refunded_at = now
        payment.updated_at = now
        self.state.save_payment(payment)
        logger.info(
            f"Payment refunded: {payment_id}, tx: {outcome.tx_hash}",
            extra={"payment_id": payment_id, "tx_hash": outcome.tx_hash},
        )
        return payment

    def get_payment_history(
        self, address: str, history_type: HistoryType = HistoryType.ALL
    ) -> List[PaymentRequest]:
        def involved(p: PaymentRequest) -> bool:
            return p.customer_address == address or p.merchant_address == address

        payments = self.state.list_payments()
        if history_type == HistoryType.SENT:
            selected = [
                p for p in payments
                if p.customer_address == address and p.status == PaymentStatus.COMPLETED
            ]
        elif history_type == HistoryType.RECEIVED:
            selected = [
                p for p in payments
                if p.merchant_address == address and p.status == PaymentStatus.COMPLETED
            ]
        elif history_type == HistoryType.PENDING:
            selected = [p for p in payments if involved(p) and p.status == PaymentStatus.PENDING]
        else:
            selected = [p for p in payments if involved(p)]
        return sorted(selected, key=lambda p: p.updated_at, reverse=True)

    def get_payment_stats(self, address: str) -> PaymentStats:
        payments = self.get_payment_history(address, HistoryType.ALL)
        sent = [
            p for p in payments
            if p.customer_address == address and p.status == PaymentStatus.COMPLETED
        ]
        received = [
            p for p in payments
            if p.merchant_address == address and p.status == PaymentStatus.COMPLETED
        ]
        pending = [p for p in payments if p.status == PaymentStatus.PENDING]
        total_sent = round(sum(p.amount for p in sent), 6)
        total_received = round(sum(p.amount for p in received), 6)
        return PaymentStats(
            address=address,
            total_payments=len(payments),
            completed_payments=len(sent) + len(received),
            pending_payments=len(pending),
            total_sent=total_sent,
            total_received=total_received,
            net_amount=round(total_received - total_sent, 6),
        )
