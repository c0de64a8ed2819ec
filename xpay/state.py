from datetime import datetime, timezone
from threading import Lock
from typing import Dict, List, Optional

from .models import Account, Cart, Order, PaymentRequest


class StateStore:
    def __init__(self) -> None:
        self._lock = Lock()
        self.accounts: Dict[str, Account] = {}
        self.payments: Dict[str, PaymentRequest] = {}
        self.carts: Dict[str, Cart] = {}
        self.orders: Dict[str, Order] = {}

    def save_account(self, account: Account) -> None:
        with self._lock:
            self.accounts[account.address] = account

    def get_account(self, address: str) -> Optional[Account]:
        return self.accounts.get(address)

    def list_accounts(self) -> List[Account]:
        return list(self.accounts.values())

    def delete_account(self, address: str) -> bool:
        with self._lock:
            return self.accounts.pop(address, None) is not None

    def save_payment(self, payment: PaymentRequest) -> None:
        with self._lock:
            self.payments[payment.id] = payment

    def get_payment(self, payment_id: str) -> PaymentRequest:
        return self.payments[payment_id]

    def list_payments(self) -> List[PaymentRequest]:
        return list(self.payments.values())

    def get_cart(self, session_id: str) -> Optional[Cart]:
        return self.carts.get(session_id)

    def save_cart(self, cart: Cart) -> None:
        with self._lock:
            cart.updated_at = datetime.now(timezone.utc)
            if cart.created_at is None:
                cart.created_at = cart.updated_at
            self.carts[cart.session_id] = cart

    def delete_cart(self, session_id: str) -> None:
        with self._lock:
            self.carts.pop(session_id, None)

    def save_order(self, order: Order) -> None:
        with self._lock:
            self.orders[order.id] = order

    def get_order(self, order_id: str) -> Order:
        return self.orders[order_id]

    def list_orders(self) -> List[Order]:
        return list(self.orders.values())
