from datetime import datetime, timezone
from math import ceil
from typing import Any, Dict, List, Optional
from uuid import uuid4
import logging

from .config import Settings
from .errors import NotFoundError, PaymentError, ShopError, XPayError
from .models import (
    Cart,
    CartItem,
    Order,
    OrderStatus,
    Pagination,
    PaymentStatus,
    Product,
    ProductPage,
    StockCheck,
)
from .payment_service import PaymentService
from .state import StateStore

logger = logging.getLogger(__name__)


class ShopService:
    def __init__(
        self,
        settings: Settings,
        state: StateStore,
        catalog,
        payments: PaymentService,
    ) -> None:
        self.settings = settings
        self.state = state
        self.catalog = catalog
        self.payments = payments

    # Catalog

    def get_products(
        self, category: str = "all", search: str = "", page: int = 1, limit: int = 10
    ) -> ProductPage:
        page = max(page, 1)
        limit = max(limit, 1)
        products, total = self.catalog.list_products(category, search, page, limit)
        total_pages = max(ceil(total / limit), 1)
        return ProductPage(
            products=products,
            pagination=Pagination(
                current_page=page,
                total_pages=total_pages,
                total_products=total,
                has_next=page < total_pages,
                has_prev=page > 1,
            ),
            categories=self.catalog.categories(),
        )

    def get_product(self, product_id: int) -> Product:
        product = self.catalog.get_product(product_id)
        if product is None:
            raise NotFoundError("Product not found")
        return product

    def get_categories(self) -> List[str]:
        return self.catalog.categories()

    def check_stock(self, product_id: int, quantity: int) -> StockCheck:
        product = self.get_product(product_id)
        return StockCheck(
            product_id=product_id,
            available=product.stock >= quantity,
            current_stock=product.stock,
        )

    def update_stock(self, product_id: int, quantity: int) -> Product:
        check = self.check_stock(product_id, quantity)
        if not check.available:
            raise ShopError(f"Insufficient stock (current stock: {check.current_stock})")
        product = self.catalog.set_stock(product_id, check.current_stock - quantity)
        logger.info(f"Stock for product {product_id} now {product.stock}")
        return product

    def get_shop_stats(self) -> Dict[str, Any]:
        _, total = self.catalog.list_products("all", "", 1, 1)
        return {"total_products": total, "categories": self.catalog.categories()}

    # Cart

    def get_cart(self, session_id: str) -> Cart:
        cart = self.state.get_cart(session_id)
        if cart is None:
            return Cart(session_id=session_id)
        return self._refresh_cart(cart)

    def _refresh_cart(self, cart: Cart) -> Cart:
        items = []
        for item in cart.items:
            product = self.catalog.get_product(item.product_id)
            items.append(
                item.model_copy(
                    update={
                        "is_active": product is not None,
                        "current_stock": product.stock if product else 0,
                    }
                )
            )
        cart.items = items
        cart.total_items = sum(item.quantity for item in items)
        cart.total_amount = round(sum(item.price * item.quantity for item in items), 6)
        return cart

    def add_to_cart(self, session_id: str, product_id: int, quantity: int = 1) -> Cart:
        if quantity < 1:
            raise ShopError("Quantity must be at least 1")
        product = self.get_product(product_id)
        cart = self.state.get_cart(session_id) or Cart(session_id=session_id)

        existing = next((item for item in cart.items if item.product_id == product_id), None)
        wanted = quantity + (existing.quantity if existing else 0)
        if product.stock < wanted:
            raise ShopError(f"Insufficient stock (current stock: {product.stock})")

        if existing:
            existing.quantity = wanted
        else:
            cart.items.append(
                CartItem(
                    product_id=product.id,
                    name=product.name,
                    price=product.price,
                    quantity=quantity,
                    image=product.image,
                    is_active=product.is_active,
                    current_stock=product.stock,
                )
            )
        self.state.save_cart(cart)
        return self._refresh_cart(cart)

    def remove_cart_item(self, session_id: str, product_id: int) -> Cart:
        cart = self.state.get_cart(session_id)
        if cart is None:
            return Cart(session_id=session_id)
        cart.items = [item for item in cart.items if item.product_id != product_id]
        self.state.save_cart(cart)
        return self._refresh_cart(cart)

    def clear_cart(self, session_id: str) -> None:
        self.state.delete_cart(session_id)

    # Orders

    def checkout(self, session_id: str, merchant_address: Optional[str] = None) -> Order:
        cart = self.get_cart(session_id)
        if not cart.items:
            raise ShopError("Cart is empty")
        for item in cart.items:
            if not item.is_active or item.current_stock < item.quantity:
                raise ShopError(f"{item.name} is no longer available in the requested quantity")

        merchant = merchant_address or self.settings.merchant_address
        order_id = uuid4().hex
        payment = self.payments.create_payment_request(
            cart.total_amount, f"XPay order {order_id}", merchant
        )
        order = Order(
            id=order_id,
            session_id=session_id,
            items=cart.items,
            total_xrp=cart.total_amount,
            merchant_address=merchant,
            payment_id=payment.id,
            created_at=datetime.now(timezone.utc),
        )
        self.state.save_order(order)
        self.clear_cart(session_id)
        logger.info(f"Order {order_id} created for {order.total_xrp} XRP", extra={"order_id": order_id})
        return order

    def get_order(self, order_id: str) -> Order:
        try:
            return self.state.get_order(order_id)
        except KeyError as exc:
            raise NotFoundError("Order not found") from exc

    def list_orders(self) -> List[Order]:
        return sorted(self.state.list_orders(), key=lambda o: o.created_at, reverse=True)

    def pay_order(self, order_id: str, customer_wallet_seed: str, customer_address: str) -> Order:
        order = self.get_order(order_id)
        if order.status != OrderStatus.PENDING:
            raise ShopError(f"Order is {order.status.value.lower()}")
        for item in order.items:
            if not self.check_stock(item.product_id, item.quantity).available:
                raise ShopError(f"{item.name} is out of stock")

        try:
            payment = self.payments.process_payment(
                order.payment_id, customer_wallet_seed, customer_address
            )
        except PaymentError:
            if self.state.get_payment(order.payment_id).status == PaymentStatus.EXPIRED:
                order.status = OrderStatus.EXPIRED
                self.state.save_order(order)
            raise

        order.status = OrderStatus.PAID
        order.transaction_hash = payment.transaction_hash
        order.paid_at = payment.completed_at
        self.state.save_order(order)
        for item in order.items:
            try:
                self.update_stock(item.product_id, item.quantity)
            except XPayError as exc:
                logger.error(
                    f"Stock update failed for product {item.product_id} on paid order {order_id}: {exc}",
                    extra={"order_id": order_id},
                )
        logger.info(f"Order {order_id} paid", extra={"order_id": order_id, "tx_hash": payment.transaction_hash})
        return order
