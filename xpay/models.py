from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, Field, field_validator


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    EXPIRED = "expired"
    REFUNDED = "refunded"


class HistoryType(str, Enum):
    ALL = "all"
    SENT = "sent"
    RECEIVED = "received"
    PENDING = "pending"


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    EXPIRED = "EXPIRED"


# Ledger / account records


class WalletInfo(BaseModel):
    address: str
    seed: str
    public_key: str
    private_key: Optional[str] = None
    funded: bool = False
    funding_error: Optional[str] = None


class Account(BaseModel):
    address: str
    secret: Optional[str] = None
    public_key: Optional[str] = None
    private_key: Optional[str] = None
    balance: int = 0
    balance_xrp: float = 0.0
    user_id: Optional[str] = None
    sequence: Optional[int] = None
    owner_count: Optional[int] = None
    flags: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Balance(BaseModel):
    address: str
    balance: int
    balance_xrp: float


class TransactionRecord(BaseModel):
    hash: str
    amount: float
    from_address: str
    to_address: str
    timestamp: datetime
    status: str
    tx_type: Optional[str] = None
    fee: Optional[float] = None


class PaymentRequest(BaseModel):
    id: str
    amount: float
    description: str
    merchant_address: str
    status: PaymentStatus = PaymentStatus.PENDING
    created_at: datetime
    updated_at: datetime
    expires_at: datetime
    transaction_hash: Optional[str] = None
    customer_address: Optional[str] = None
    completed_at: Optional[datetime] = None
    refund_hash: Optional[str] = None
    refunded_at: Optional[datetime] = None
    transaction_details: Optional[Dict[str, Any]] = None


class PaymentStats(BaseModel):
    address: str
    total_payments: int
    completed_payments: int
    pending_payments: int
    total_sent: float
    total_received: float
    net_amount: float


# Shop


class Product(BaseModel):
    id: int
    name: str
    description: Union[List[str], str] = Field(default_factory=list)
    price: float
    image: Optional[str] = None
    category: str
    stock: int = 0
    is_active: bool = True
    created_at: Optional[datetime] = None


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_products: int
    has_next: bool
    has_prev: bool


class ProductPage(BaseModel):
    products: List[Product]
    pagination: Pagination
    categories: List[str]


class StockCheck(BaseModel):
    product_id: int
    available: bool
    current_stock: int


class CartItem(BaseModel):
    product_id: int
    name: str
    price: float
    quantity: int
    image: Optional[str] = None
    is_active: bool = True
    current_stock: int = 0


class Cart(BaseModel):
    session_id: str
    items: List[CartItem] = Field(default_factory=list)
    total_items: int = 0
    total_amount: float = 0.0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Order(BaseModel):
    id: str
    session_id: str
    items: List[CartItem]
    total_xrp: float
    merchant_address: str
    payment_id: str
    status: OrderStatus = OrderStatus.PENDING
    transaction_hash: Optional[str] = None
    created_at: datetime
    paid_at: Optional[datetime] = None


# Credentials and permissioned domains


class AcceptedCredential(BaseModel):
    issuer: str
    credential_type: str = Field(min_length=1, max_length=64)


class CredentialInfo(BaseModel):
    issuer: str
    subject: str
    credential_type: str
    accepted: bool
    expired: bool = False
    expiration: Optional[datetime] = None
    uri: Optional[str] = None


class PermissionedDomain(BaseModel):
    domain_id: str
    owner: str
    accepted_credentials: List[AcceptedCredential]


class IssuedAmount(BaseModel):
    currency: str = Field(min_length=3, max_length=40)
    issuer: str
    value: str

    @field_validator("value")
    @classmethod
    def value_must_be_positive(cls, value: str) -> str:
        try:
            amount = Decimal(value)
        except InvalidOperation as exc:
            raise ValueError("value must be a decimal number") from exc
        if not amount.is_finite() or amount <= 0:
            raise ValueError("value must be a positive number")
        return value


class LedgerResult(BaseModel):
    success: bool
    tx_hash: Optional[str] = None
    engine_result: str
    message: str
    validated: bool = False


class CredentialResult(LedgerResult):
    issuer: Optional[str] = None
    subject: Optional[str] = None
    credential_type: Optional[str] = None
    expiration: Optional[datetime] = None


class DomainResult(LedgerResult):
    domain_id: Optional[str] = None
    owner: Optional[str] = None
    accepted_credentials: List[AcceptedCredential] = Field(default_factory=list)


class OfferResult(LedgerResult):
    account: str
    domain_id: str
    offer_sequence: Optional[int] = None
    credential: Optional[CredentialInfo] = None


class PriceInfo(BaseModel):
    currency: str
    current_price: float
    price_change_percent: Optional[float] = None
    last_updated: Optional[str] = None
    high_24h: Optional[float] = None
    low_24h: Optional[float] = None


# Request bodies


class CreateWalletRequest(BaseModel):
    fund: bool = False


class SendPaymentRequest(BaseModel):
    to_address: str = Field(min_length=1)
    amount: float = Field(gt=0)
    from_wallet_seed: str = Field(min_length=1)


class ValidateSeedRequest(BaseModel):
    seed: str = ""


class CreateAccountRequest(BaseModel):
    nickname: str = Field(min_length=1)


class AccountSendRequest(BaseModel):
    to_address: str = Field(min_length=1)
    amount: float = Field(gt=0)


class CreatePaymentRequest(BaseModel):
    amount: float = Field(gt=0)
    description: str = Field(min_length=1, max_length=500)
    merchant_address: str = Field(min_length=1)


class ProcessPaymentRequest(BaseModel):
    payment_id: str = Field(
        pattern=r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
    )
    customer_wallet_seed: str = Field(min_length=1)
    customer_address: str = Field(min_length=1)


class RefundPaymentRequest(BaseModel):
    payment_id: str = Field(
        pattern=r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
    )
    merchant_wallet_seed: str = Field(min_length=1)


class AddToCartRequest(BaseModel):
    product_id: int
    quantity: int = Field(default=1, ge=1)


class CheckoutRequest(BaseModel):
    merchant_address: Optional[str] = None


class PayOrderRequest(BaseModel):
    customer_wallet_seed: str = Field(min_length=1)
    customer_address: str = Field(min_length=1)


class CreateCredentialRequest(BaseModel):
    issuer_seed: str = Field(min_length=1)
    subject_address: str = Field(min_length=1)
    credential_type: str = Field(min_length=1, max_length=64)
    expiration_hours: Optional[int] = Field(default=24, ge=1)
    uri: Optional[str] = Field(default=None, max_length=256)


class AcceptCredentialRequest(BaseModel):
    subject_seed: str = Field(min_length=1)
    issuer_address: str = Field(min_length=1)
    credential_type: Optional[str] = Field(default=None, max_length=64)


class DeleteCredentialRequest(BaseModel):
    subject_seed: str = Field(min_length=1)
    issuer_address: str = Field(min_length=1)
    credential_type: str = Field(min_length=1, max_length=64)


class CheckCredentialsRequest(BaseModel):
    account_seed: str = Field(min_length=1)


class CreateDomainRequest(BaseModel):
    owner_seed: str = Field(min_length=1)
    accepted_credentials: List[AcceptedCredential] = Field(min_length=1, max_length=10)
    domain_id: Optional[str] = None


class GatedOfferRequest(BaseModel):
    account_seed: str = Field(min_length=1)
    domain_id: str = Field(min_length=64, max_length=64)
    taker_gets_xrp: float = Field(gt=0)
    taker_pays: IssuedAmount
    credential_types: Optional[List[str]] = None
