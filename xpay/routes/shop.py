from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from ..dependencies import Services, get_services, require_api_key
from ..models import AddToCartRequest, CheckoutRequest, PayOrderRequest

router = APIRouter(prefix="/api/shop", tags=["shop"])


@router.get("/products")
def products(
    category: str = "all",
    search: str = "",
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    services: Services = Depends(get_services),
):
    return {"success": True, "data": services.shop.get_products(category, search, page, limit)}


@router.get("/products/{product_id}")
def product(product_id: int, services: Services = Depends(get_services)):
    return {"success": True, "data": services.shop.get_product(product_id)}


@router.get("/products/{product_id}/stock")
def stock(
    product_id: int,
    quantity: int = Query(default=1, ge=1),
    services: Services = Depends(get_services),
):
    return {"success": True, "data": services.shop.check_stock(product_id, quantity)}


@router.get("/categories")
def categories(services: Services = Depends(get_services)):
    return {"success": True, "data": services.shop.get_categories()}


@router.get("/stats")
def shop_stats(services: Services = Depends(get_services)):
    return {"success": True, "data": services.shop.get_shop_stats()}


# Cart


@router.get("/cart/{session_id}")
def get_cart(session_id: str, services: Services = Depends(get_services)):
    return {"success": True, "data": services.shop.get_cart(session_id)}


@router.post("/cart/{session_id}/items")
def add_item(session_id: str, payload: AddToCartRequest, services: Services = Depends(get_services)):
    cart = services.shop.add_to_cart(session_id, payload.product_id, payload.quantity)
    return {"success": True, "data": cart}


@router.delete("/cart/{session_id}/items/{product_id}")
def remove_item(session_id: str, product_id: int, services: Services = Depends(get_services)):
    return {"success": True, "data": services.shop.remove_cart_item(session_id, product_id)}


@router.delete("/cart/{session_id}")
def clear_cart(session_id: str, services: Services = Depends(get_services)):
    services.shop.clear_cart(session_id)
    return {"success": True, "data": services.shop.get_cart(session_id)}


@router.post(
    "/cart/{session_id}/checkout",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_api_key)],
)
def checkout(
    session_id: str,
    payload: Optional[CheckoutRequest] = None,
    services: Services = Depends(get_services),
):
    merchant_address = payload.merchant_address if payload else None
    order = services.shop.checkout(session_id, merchant_address)
    return {"success": True, "data": order}


# Orders


@router.get("/orders")
def list_orders(services: Services = Depends(get_services)):
    orders = services.shop.list_orders()
    return {"success": True, "data": orders, "count": len(orders)}


@router.get("/orders/{order_id}")
def get_order(order_id: str, services: Services = Depends(get_services)):
    return {"success": True, "data": services.shop.get_order(order_id)}


@router.post("/orders/{order_id}/pay", dependencies=[Depends(require_api_key)])
def pay_order(order_id: str, payload: PayOrderRequest, services: Services = Depends(get_services)):
    order = services.shop.pay_order(order_id, payload.customer_wallet_seed, payload.customer_address)
    return {"success": True, "data": order}
