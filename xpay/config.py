from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Tuple
import os

from dotenv import load_dotenv

load_dotenv()


RIPPLE_EPOCH = datetime(2000, 1, 1, tzinfo=timezone.utc)
RIPPLE_EPOCH_UNIX = 946684800


def _split_csv(value: str) -> Tuple[str, ...]:
    return tuple(item.strip() for item in value.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    app_name: str = os.getenv("APP_NAME", "XPay API")
    environment: str = os.getenv("ENVIRONMENT", "development")
    xrpl_mode: str = os.getenv("XRPL_MODE", "mock")
    xrpl_network: str = os.getenv("XRPL_NETWORK", "testnet")
    xrpl_json_rpc_url: str = os.getenv(
        "XRPL_JSON_RPC_URL", "https://s.altnet.rippletest.net:51234"
    )
    xrpl_faucet_url: str = os.getenv(
        "XRPL_FAUCET_URL", "https://faucet.altnet.rippletest.net/accounts"
    )
    mock_faucet_xrp: int = int(os.getenv("MOCK_FAUCET_XRP", "100"))
    merchant_address: str = os.getenv(
        "MERCHANT_ADDRESS", "rPT1Sjq2YGrBMTttX4GZHjKu9dyfzbpAYe"
    )
    merchant_seed: str = os.getenv("MERCHANT_SEED", "")
    payment_expiry_minutes: int = int(os.getenv("PAYMENT_EXPIRY_MINUTES", "30"))
    tx_history_limit: int = int(os.getenv("TX_HISTORY_LIMIT", "20"))
    api_key: str = os.getenv("API_KEY", "")
    credential_type: str = os.getenv("CRED_TYPE", "KYC")
    supabase_url: str = os.getenv("SUPABASE_URL", "")
    supabase_key: str = os.getenv("SUPABASE_KEY", os.getenv("SUPABASE_ANON_KEY", ""))
    price_api_url: str = os.getenv("PRICE_API_URL", "https://api.coingecko.com/api/v3")
    price_currency: str = os.getenv("PRICE_CURRENCY", "krw")
    cors_origins: Tuple[str, ...] = _split_csv(
        os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:3001")
    )
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_format: str = os.getenv("LOG_FORMAT", "text")

    @property
    def is_mock(self) -> bool:
        return self.xrpl_mode.lower() == "mock"

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def use_supabase(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)


settings = Settings()


def to_ripple_time(dt: datetime) -> int:
    return int((dt.astimezone(timezone.utc) - RIPPLE_EPOCH).total_seconds())


def from_ripple_time(value: int) -> datetime:
    return datetime.fromtimestamp(value + RIPPLE_EPOCH_UNIX, tz=timezone.utc)
