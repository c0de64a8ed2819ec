import logging

from fastapi import APIRouter, Depends, Query

from ..dependencies import Services, get_services, require_api_key
from ..errors import PaymentError, XPayError
from ..models import CreateWalletRequest, SendPaymentRequest, ValidateSeedRequest, WalletInfo

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/xrpl", tags=["xrpl"])


@router.get("/server-info")
def server_info(services: Services = Depends(get_services)):
    return {"success": True, "data": services.xrpl.server_info()}


@router.post("/wallet", dependencies=[Depends(require_api_key)])
def create_wallet(payload: CreateWalletRequest, services: Services = Depends(get_services)):
    wallet = services.xrpl.generate_wallet()
    funded = False
    funding_error = None
    if payload.fund:
        try:
            services.xrpl.fund_wallet(wallet)
            funded = True
        except XPayError as exc:
            funding_error = exc.message
            logger.warning(f"Failed to fund wallet {wallet.classic_address}: {exc}")
    info = WalletInfo(
        address=wallet.classic_address,
        seed=wallet.seed,
        public_key=wallet.public_key,
        funded=funded,
        funding_error=funding_error,
    )
    return {"success": True, "data": info}


@router.get("/account/{address}")
def account_info(address: str, services: Services = Depends(get_services)):
    valid_address = services.accounts.validate_address(address)
    return {"success": True, "data": services.xrpl.account_data(valid_address)}


@router.get("/account/{address}/balance")
def account_balance(address: str, services: Services = Depends(get_services)):
    return {"success": True, "data": services.accounts.get_balance(address)}


@router.get("/account/{address}/transactions")
def account_transactions(
    address: str,
    limit: int = Query(default=20, ge=1, le=400),
    services: Services = Depends(get_services),
):
    records = services.accounts.get_transaction_history(address, limit)
    return {"success": True, "data": records}


@router.post("/send-payment", dependencies=[Depends(require_api_key)])
def send_payment(payload: SendPaymentRequest, services: Services = Depends(get_services)):
    wallet = services.xrpl.wallet_from_seed(payload.from_wallet_seed)
    to_address = services.accounts.validate_address(payload.to_address)
    outcome = services.xrpl.send_payment(wallet, to_address, payload.amount)
    if not outcome.success:
        raise PaymentError(
            f"Transaction failed: {outcome.engine_result}",
            details={"engine_result": outcome.engine_result, "reason": outcome.message},
        )
    return {
        "success": True,
        "data": {
            "transaction_hash": outcome.tx_hash,
            "from_address": wallet.classic_address,
            "to_address": to_address,
            "amount": payload.amount,
            "validated": outcome.validated,
        },
    }


@router.get("/transaction/{tx_hash}")
def transaction(tx_hash: str, services: Services = Depends(get_services)):
    return {"success": True, "data": services.xrpl.get_transaction(tx_hash)}


@router.post("/fund-wallet/{address}", dependencies=[Depends(require_api_key)])
def fund_wallet(address: str, services: Services = Depends(get_services)):
    return {"success": True, "data": services.xrpl.fund_address(address)}


@router.get("/validate-address/{address}")
def validate_address(address: str, services: Services = Depends(get_services)):
    return {
        "success": True,
        "data": {"address": address, "is_valid": services.xrpl.is_valid_address(address)},
    }


@router.post("/validate-seed")
def validate_seed(payload: ValidateSeedRequest, services: Services = Depends(get_services)):
    return {"success": True, "data": services.xrpl.validate_seed(payload.seed)}
