from typing import Any, Dict
from urllib.parse import urlencode
import json
import logging
import urllib.error
import urllib.request

from .config import Settings
from .errors import PriceServiceError
from .models import PriceInfo

logger = logging.getLogger(__name__)


class PriceService:
    """XRP market price from the CoinGecko public API."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.currency = settings.price_currency.lower()

    def _fetch_json(self, path: str, params: Dict[str, str]) -> Dict[str, Any]:
        url = f"{self.settings.price_api_url.rstrip('/')}/{path}?{urlencode(params)}"
        req = urllib.request.Request(url, headers={"Accept": "application/json"})
        try:
            with urllib.request.urlopen(req, timeout=10) as resp:
                return json.load(resp)
        except (urllib.error.URLError, OSError, ValueError) as exc:
            logger.error(f"Price lookup failed for {path}: {exc}")
            raise PriceServiceError("Failed to fetch the XRP price") from exc

    def get_xrp_price(self) -> PriceInfo:
        data = self._fetch_json(
            "coins/ripple",
            {
                "localization": "false",
                "tickers": "false",
                "market_data": "true",
                "community_data": "false",
                "developer_data": "false",
            },
        )
        try:
            market = data["market_data"]
            info = PriceInfo(
                currency=self.currency,
                current_price=market["current_price"][self.currency],
                price_change_percent=market.get("price_change_percentage_24h"),
                last_updated=market.get("last_updated"),
                high_24h=market.get("high_24h", {}).get(self.currency),
                low_24h=market.get("low_24h", {}).get(self.currency),
            )
        except (KeyError, TypeError) as exc:
            raise PriceServiceError("Unexpected price response") from exc
        logger.info(f"XRP price: {info.current_price} {self.currency.upper()}")
        return info

    def get_simple_xrp_price(self) -> float:
        data = self._fetch_json("simple/price", {"ids": "ripple", "vs_currencies": self.currency})
        try:
            price = float(data["ripple"][self.currency])
        except (KeyError, TypeError, ValueError) as exc:
            raise PriceServiceError("Unexpected price response") from exc
        logger.info(f"XRP simple price: {price} {self.currency.upper()}")
        return price
