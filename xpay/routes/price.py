from fastapi import APIRouter, Depends

from ..dependencies import Services, get_services

router = APIRouter(prefix="/api/price", tags=["price"])


@router.get("/xrp")
def xrp_price(services: Services = Depends(get_services)):
    return {"success": True, "data": services.prices.get_xrp_price()}


@router.get("/xrp/simple")
def xrp_simple_price(services: Services = Depends(get_services)):
    price = services.prices.get_simple_xrp_price()
    return {
        "success": True,
        "data": {"currency": services.prices.currency, "price": price},
    }
