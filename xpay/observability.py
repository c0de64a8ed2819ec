"""Structured logging setup and request logging.

JSON lines in production, a plain one-line format in development. Extra
fields passed through ``logger.info(..., extra={...})`` are surfaced when
they are one of the known ledger/payment keys.
"""

import json
import logging
from datetime import datetime, timezone

from fastapi import Request

logger = logging.getLogger("xpay.http")

EXTRA_FIELDS = (
    "address",
    "tx_hash",
    "engine_result",
    "payment_id",
    "order_id",
    "domain_id",
    "method",
    "path",
    "ip",
    "user_agent",
)


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in EXTRA_FIELDS:
            val = record.__dict__.get(key)
            if val is not None:
                log[key] = val
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False)


def setup_logging(level: str = "INFO", fmt: str = "text") -> None:
    """Install a single root handler. Safe to call more than once."""
    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_xpay", False):
            root.removeHandler(handler)
    handler = logging.StreamHandler()
    handler._xpay = True  # type: ignore[attr-defined]
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))


async def log_requests(request: Request, call_next):
    client_ip = request.client.host if request.client else None
    logger.info(
        f"{request.method} {request.url.path}",
        extra={
            "method": request.method,
            "path": request.url.path,
            "ip": client_ip,
            "user_agent": request.headers.get("user-agent"),
        },
    )
    return await call_next(request)
