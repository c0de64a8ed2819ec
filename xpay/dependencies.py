from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, Request

from .account_service import AccountService
from .catalog import build_catalog
from .config import Settings
from .credential_service import CredentialService
from .errors import AuthError
from .mock_ledger import MockLedger
from .payment_service import PaymentService
from .price_service import PriceService
from .shop_service import ShopService
from .state import StateStore
from .xrpl_service import XrplService


@dataclass
class Services:
    settings: Settings
    state: StateStore
    xrpl: XrplService
    accounts: AccountService
    payments: PaymentService
    shop: ShopService
    credentials: CredentialService
    prices: PriceService


def build_services(
    settings: Settings,
    ledger: Optional[MockLedger] = None,
    catalog=None,
) -> Services:
    state = StateStore()
    xrpl_service = XrplService(settings, ledger)
    payments = PaymentService(settings, state, xrpl_service)
    return Services(
        settings=settings,
        state=state,
        xrpl=xrpl_service,
        accounts=AccountService(settings, state, xrpl_service),
        payments=payments,
        shop=ShopService(settings, state, catalog or build_catalog(settings), payments),
        credentials=CredentialService(settings, xrpl_service),
        prices=PriceService(settings),
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


def require_api_key(
    x_api_key: str = Header(default=""),
    services: Services = Depends(get_services),
) -> None:
    if services.settings.api_key and x_api_key != services.settings.api_key:
        raise AuthError("Invalid API key")
