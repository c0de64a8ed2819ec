"""Root conftest: every test runs against the in-process mock ledger."""

import os

os.environ["XRPL_MODE"] = "mock"
os.environ["SUPABASE_URL"] = ""
os.environ["SUPABASE_KEY"] = ""
os.environ.setdefault("API_KEY", "")

import pytest
from fastapi.testclient import TestClient

from xpay.account_service import AccountService
from xpay.catalog import InMemoryCatalog
from xpay.config import Settings
from xpay.credential_service import CredentialService
from xpay.dependencies import build_services
from xpay.main import create_app
from xpay.mock_ledger import MockLedger
from xpay.payment_service import PaymentService
from xpay.shop_service import ShopService
from xpay.state import StateStore
from xpay.xrpl_service import XrplService


@pytest.fixture
def settings():
    return Settings(
        environment="test",
        xrpl_mode="mock",
        api_key="",
        supabase_url="",
        supabase_key="",
        mock_faucet_xrp=100,
        payment_expiry_minutes=30,
        log_format="text",
    )


@pytest.fixture
def ledger():
    return MockLedger(faucet_drops=100_000_000)


@pytest.fixture
def xrpl_service(settings, ledger):
    return XrplService(settings, ledger)


@pytest.fixture
def state():
    return StateStore()


@pytest.fixture
def accounts(settings, state, xrpl_service):
    return AccountService(settings, state, xrpl_service)


@pytest.fixture
def payments(settings, state, xrpl_service):
    return PaymentService(settings, state, xrpl_service)


@pytest.fixture
def catalog():
    return InMemoryCatalog()


@pytest.fixture
def shop(settings, state, catalog, payments, ledger):
    ledger.fund(settings.merchant_address)
    return ShopService(settings, state, catalog, payments)


@pytest.fixture
def credentials(settings, xrpl_service):
    return CredentialService(settings, xrpl_service)


@pytest.fixture
def funded_wallet(xrpl_service):
    """Factory for wallets holding the mock faucet amount (100 XRP)."""

    def make():
        wallet = xrpl_service.generate_wallet()
        xrpl_service.fund_wallet(wallet)
        return wallet

    return make


@pytest.fixture
def services(settings, ledger):
    return build_services(settings, ledger=ledger, catalog=InMemoryCatalog())


@pytest.fixture
def client(settings, services):
    app = create_app(settings, services)
    with TestClient(app) as test_client:
        yield test_client
