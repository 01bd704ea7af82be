"""
Payment schemas for the premium QRIS flow.
"""
from pydantic import BaseModel
from typing import Optional, List
from enum import Enum


class PaymentStatus(str, Enum):
    """Payment status enum."""
    PENDING = "pending"
    PAID = "paid"
    EXPIRED = "expired"
    FAILED = "failed"


class PaymentCreateResponse(BaseModel):
    """QR code issued for a premium purchase."""
    order_id: str
    amount: int
    qr_string: Optional[str] = None
    xendit_qr_id: Optional[str] = None
    status: Optional[str] = None


class PaymentRecord(BaseModel):
    """A row of the caller's payment history."""
    id: Optional[str] = None
    order_id: str
    amount: int
    amount_label: str
    status: str
    created_at: Optional[str] = None


class PremiumBenefit(BaseModel):
    title: str
    desc: str


class PremiumOverview(BaseModel):
    """Premium page payload."""
    price: int
    price_label: str
    is_premium: bool = False
    premium_since: Optional[str] = None
    premium_since_label: str = "—"
    recent_payments: List[PaymentRecord] = []
    benefits: List[PremiumBenefit] = []
