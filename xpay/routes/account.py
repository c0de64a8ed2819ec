from fastapi import APIRouter, Depends, Query, status

from ..dependencies import Services, get_services, require_api_key
from ..errors import NotFoundError
from ..models import AccountSendRequest, CreateAccountRequest

router = APIRouter(prefix="/api/account", tags=["account"])


@router.get("/")
def list_accounts(services: Services = Depends(get_services)):
    accounts = services.accounts.list_stored_accounts()
    return {"success": True, "data": accounts, "count": len(accounts)}


@router.post(
    "/create",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_api_key)],
)
def create_account(payload: CreateAccountRequest, services: Services = Depends(get_services)):
    return {"success": True, "data": services.accounts.create_account(payload.nickname)}


@router.get("/{address}")
def get_account(address: str, services: Services = Depends(get_services)):
    return {"success": True, "data": services.accounts.get_account_info(address)}


@router.get("/{address}/balance")
def get_balance(address: str, services: Services = Depends(get_services)):
    return {"success": True, "data": services.accounts.get_balance(address)}


@router.post("/{address}/send", dependencies=[Depends(require_api_key)])
def send(address: str, payload: AccountSendRequest, services: Services = Depends(get_services)):
    record = services.accounts.send_payment(address, payload.to_address, payload.amount)
    return {"success": True, "data": record}


@router.get("/{address}/transactions")
def transactions(
    address: str,
    limit: int = Query(default=20, ge=1, le=400),
    services: Services = Depends(get_services),
):
    records = services.accounts.get_transaction_history(address, limit)
    return {"success": True, "data": records, "count": len(records)}


@router.delete("/{address}", dependencies=[Depends(require_api_key)])
def delete_account(address: str, services: Services = Depends(get_services)):
    if not services.accounts.delete_account(address):
        raise NotFoundError("Account not found in storage")
    return {"success": True, "data": {"address": address, "deleted": True}}
