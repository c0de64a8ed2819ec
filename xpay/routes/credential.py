from fastapi import APIRouter, Depends, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from ..dependencies import Services, get_services, require_api_key
from ..models import (
    AcceptCredentialRequest,
    CheckCredentialsRequest,
    CreateCredentialRequest,
    CreateDomainRequest,
    DeleteCredentialRequest,
    GatedOfferRequest,
    LedgerResult,
)

router = APIRouter(prefix="/api/credential", tags=["credential"])


def ledger_response(result: LedgerResult, success_status: int = status.HTTP_200_OK) -> JSONResponse:
    code = success_status if result.success else status.HTTP_400_BAD_REQUEST
    return JSONResponse(
        status_code=code,
        content=jsonable_encoder({"success": result.success, "data": result}),
    )


@router.post("/create", dependencies=[Depends(require_api_key)])
def create_credential(payload: CreateCredentialRequest, services: Services = Depends(get_services)):
    result = services.credentials.create_credential(
        payload.issuer_seed,
        payload.subject_address,
        payload.credential_type,
        payload.expiration_hours,
        payload.uri,
    )
    return ledger_response(result, status.HTTP_201_CREATED)


@router.post("/accept", dependencies=[Depends(require_api_key)])
def accept_credential(payload: AcceptCredentialRequest, services: Services = Depends(get_services)):
    result = services.credentials.accept_credential(
        payload.subject_seed, payload.issuer_address, payload.credential_type
    )
    return ledger_response(result)


@router.delete("/delete", dependencies=[Depends(require_api_key)])
def delete_credential(payload: DeleteCredentialRequest, services: Services = Depends(get_services)):
    result = services.credentials.delete_credential(
        payload.subject_seed, payload.issuer_address, payload.credential_type
    )
    return ledger_response(result)


@router.post("/check")
def check_credentials(payload: CheckCredentialsRequest, services: Services = Depends(get_services)):
    return {"success": True, "data": services.credentials.check_credentials(payload.account_seed)}


@router.post("/domain", dependencies=[Depends(require_api_key)])
def create_domain(payload: CreateDomainRequest, services: Services = Depends(get_services)):
    result = services.credentials.create_domain(
        payload.owner_seed, payload.accepted_credentials, payload.domain_id
    )
    return ledger_response(result, status.HTTP_201_CREATED)


@router.get("/domain/{domain_id}")
def get_domain(domain_id: str, services: Services = Depends(get_services)):
    return {"success": True, "data": services.credentials.get_domain(domain_id)}


@router.post("/offer", dependencies=[Depends(require_api_key)])
def create_offer(payload: GatedOfferRequest, services: Services = Depends(get_services)):
    result = services.credentials.create_gated_offer(
        payload.account_seed,
        payload.domain_id,
        payload.taker_gets_xrp,
        payload.taker_pays,
        payload.credential_types,
    )
    return ledger_response(result, status.HTTP_201_CREATED)
