from fastapi import APIRouter, Depends, Query, status

from ..dependencies import Services, get_services, require_api_key
from ..models import (
    CreatePaymentRequest,
    HistoryType,
    ProcessPaymentRequest,
    RefundPaymentRequest,
    ValidateSeedRequest,
)

router = APIRouter(prefix="/api/payment", tags=["payment"])


@router.post(
    "/request",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_api_key)],
)
def create_request(payload: CreatePaymentRequest, services: Services = Depends(get_services)):
    payment = services.payments.create_payment_request(
        payload.amount, payload.description, payload.merchant_address
    )
    return {"success": True, "data": payment}


@router.post("/process", dependencies=[Depends(require_api_key)])
def process(payload: ProcessPaymentRequest, services: Services = Depends(get_services)):
    payment = services.payments.process_payment(
        payload.payment_id, payload.customer_wallet_seed, payload.customer_address
    )
    return {"success": True, "data": payment}


@router.get("/status/{payment_id}")
def payment_status(payment_id: str, services: Services = Depends(get_services)):
    return {"success": True, "data": services.payments.get_payment_status(payment_id)}


@router.post("/refund", dependencies=[Depends(require_api_key)])
def refund(payload: RefundPaymentRequest, services: Services = Depends(get_services)):
    payment = services.payments.refund_payment(payload.payment_id, payload.merchant_wallet_seed)
    return {"success": True, "data": payment}


@router.get("/history")
def history(
    address: str = Query(min_length=1),
    history_type: HistoryType = Query(default=HistoryType.ALL, alias="type"),
    services: Services = Depends(get_services),
):
    valid_address = services.accounts.validate_address(address)
    payments = services.payments.get_payment_history(valid_address, history_type)
    return {"success": True, "data": payments, "count": len(payments)}


@router.get("/stats")
def stats(address: str = Query(min_length=1), services: Services = Depends(get_services)):
    valid_address = services.accounts.validate_address(address)
    return {"success": True, "data": services.payments.get_payment_stats(valid_address)}


@router.get("/validate-address/{address}")
def validate_address(address: str, services: Services = Depends(get_services)):
    return {
        "success": True,
        "data": {"address": address, "is_valid": services.xrpl.is_valid_address(address)},
    }


@router.post("/validate-seed")
def validate_seed(payload: ValidateSeedRequest, services: Services = Depends(get_services)):
    return {"success": True, "data": services.xrpl.validate_seed(payload.seed)}
