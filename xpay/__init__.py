"""XPay: XRP Ledger payments, shop checkout and credential-gated trading."""

__version__ = "0.1.0"
