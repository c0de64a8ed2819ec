"""Error hierarchy for the XPay API.

Every error carries the HTTP status and the error category rendered in the
JSON error envelope. Routes never build error responses themselves; they
raise one of these and the handlers in ``error_handlers`` render it.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional


class XPayError(Exception):
    status_code = 500
    error = "Server Error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_response(self, masked: bool = False) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "success": False,
            "error": self.error,
            "message": "Something went wrong" if masked else self.message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        if self.details and not masked:
            body["details"] = self.details
        return body


class XrplServiceError(XPayError):
    status_code = 503
    error = "XRPL Service Error"


class InvalidInputError(XPayError):
    status_code = 400
    error = "Validation Error"


class PaymentError(XPayError):
    status_code = 400
    error = "Payment Error"


class ShopError(XPayError):
    status_code = 400
    error = "Shop Error"


class CredentialError(XPayError):
    status_code = 400
    error = "Credential Error"


class NotFoundError(XPayError):
    status_code = 404
    error = "Not Found"


class CatalogError(XPayError):
    status_code = 503
    error = "Catalog Error"


class PriceServiceError(XPayError):
    status_code = 502
    error = "Price Service Error"


class AuthError(XPayError):
    status_code = 401
    error = "Unauthorized"
