"""
Premium payments over QRIS.

Flow: create_payment inserts a pending row and asks Xendit for a dynamic QR
code; Xendit later calls handle_webhook, which flips the row to paid and the
user's profile to premium. The two writes are not transactional and a
repeated callback simply repeats them.
"""
import hmac
import logging
import math
import time
from datetime import datetime, timezone
from typing import Optional, Dict, Any, Tuple

from fastapi import Depends

from config import settings
from database import SupabaseClient, get_database
from models.payment import PaymentCreateResponse, PaymentRecord, PaymentStatus, PremiumBenefit, PremiumOverview
from models.user import AuthUser
from repositories.payment_repository import PaymentRepository
from repositories.profile_repository import ProfileRepository
from services.xendit_service import XenditClient, get_xendit_client
from utils.exceptions import AuthenticationError, DatabaseError, NotFoundError, PaymentGatewayError, ValidationError
from utils.formatting import format_date_id, format_idr

logger = logging.getLogger(__name__)

PAID_STATUSES = {"PAID", "COMPLETED", "SUCCEEDED", "SUCCESS"}
TERMINAL_FAILURES = {
    "EXPIRED": PaymentStatus.EXPIRED,
    "FAILED": PaymentStatus.FAILED,
    "CANCELLED": PaymentStatus.FAILED,
}

# Shapes seen in callbacks: top level, data, qr_code, payment
_PAYLOAD_SECTIONS = (None, "data", "qr_code", "payment")

PREMIUM_BENEFITS = [
    PremiumBenefit(title="Badge Premium", desc="Role / gelar premium tampil di profile & navbar."),
    PremiumBenefit(title="Akses Prioritas", desc="Siap untuk fitur premium selanjutnya (bookmark sync, dll)."),
    PremiumBenefit(title="Dukungan", desc="Support lebih cepat + request judul."),
]


def _first_field(payload: Dict[str, Any], key: str) -> Any:
    for section in _PAYLOAD_SECTIONS:
        source = payload if section is None else payload.get(section)
        if isinstance(source, dict) and source.get(key):
            return source[key]
    return None


def extract_ref_and_status(payload: Any) -> Tuple[Optional[str], Optional[str]]:
    """reference_id and status from the first payload section carrying each."""
    if not isinstance(payload, dict):
        return None, None
    reference_id = _first_field(payload, "reference_id")
    status = _first_field(payload, "status")
    return (
        str(reference_id) if reference_id else None,
        str(status) if status else None,
    )


def is_paid_status(status: Any) -> bool:
    return str(status or "").upper() in PAID_STATUSES


def parse_amount(raw: Any, default: int) -> int:
    """
    Amount in whole Rupiah.

    Raises:
        ValidationError: not a finite whole number at or above the minimum
    """
    invalid = ValidationError(f"amount invalid (min {settings.min_payment_amount})")
    if raw is None:
        raw = default
    if isinstance(raw, bool):
        raise invalid
    if isinstance(raw, str):
        raw = raw.strip()
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise invalid
    if not math.isfinite(value) or value < settings.min_payment_amount or not value.is_integer():
        raise invalid
    return int(value)


def callback_token_valid(received: Optional[str], expected: Optional[str]) -> bool:
    if not expected or not received:
        return False
    return hmac.compare_digest(received.encode(), expected.encode())


def _record(row: Dict[str, Any]) -> PaymentRecord:
    amount = int(float(row.get("amount") or 0))
    return PaymentRecord(
        id=str(row["id"]) if row.get("id") is not None else None,
        order_id=row.get("order_id") or "",
        amount=amount,
        amount_label=format_idr(amount),
        status=row.get("status") or PaymentStatus.PENDING.value,
        created_at=row.get("created_at"),
    )


class PaymentService:
    """Premium purchase and gateway callback handling."""

    def __init__(self, payments: PaymentRepository, profiles: ProfileRepository, xendit: XenditClient):
        self.payments = payments
        self.profiles = profiles
        self.xendit = xendit

    async def _store_raw_payload(self, order_id: str, payload: Dict[str, Any]) -> None:
        """Keep the gateway payload on the row for debugging; never fatal."""
        try:
            await self.payments.update_by_order_id(order_id, {"raw_payload": payload})
        except Exception as e:
            logger.warning(f"⚠️ [PAYMENTS] Could not store raw payload for {order_id}: {e}")

    async def create_payment(self, user: AuthUser, raw_amount: Any = None) -> PaymentCreateResponse:
        """
        Start a premium purchase.

        Raises:
            ValidationError: amount below the minimum or not a number
            DatabaseError: the pending row could not be inserted
            PaymentGatewayError: Xendit rejected the QR request
        """
        amount = parse_amount(raw_amount, settings.premium_price)
        order_id = f"prem_{user.id}_{int(time.time() * 1000)}"

        try:
            await self.payments.create({
                "user_id": user.id,
                "provider": "xendit",
                "order_id": order_id,
                "amount": amount,
                "status": PaymentStatus.PENDING.value,
            })
        except Exception as e:
            raise DatabaseError(str(e) or "payment insert failed", operation="insert", table="payments")

        logger.info(f"💳 [PAYMENTS] Created pending {order_id} for {amount}")

        result = await self.xendit.create_qr_code(order_id, amount)
        await self._store_raw_payload(order_id, result.data)

        if not result.ok:
            logger.error(f"❌ [PAYMENTS] Xendit rejected {order_id}: {result.status_code}")
            raise PaymentGatewayError(
                "Xendit create QR failed",
                status_code=result.status_code,
                payload=result.data
            )

        return PaymentCreateResponse(
            order_id=order_id,
            amount=amount,
            qr_string=result.data.get("qr_string"),
            xendit_qr_id=result.data.get("id"),
            status=result.data.get("status"),
        )

    def authorize_callback(self, callback_token: Optional[str]) -> None:
        """
        Raises:
            AuthenticationError: callback token missing, unconfigured or wrong
        """
        if not callback_token_valid(callback_token, settings.xendit_callback_token):
            logger.warning("🚫 [WEBHOOK] Invalid callback token")
            raise AuthenticationError("Invalid callback token")

    async def handle_webhook(self, callback_token: Optional[str], payload: Any) -> Dict[str, Any]:
        """Apply a Xendit callback after checking its token."""
        self.authorize_callback(callback_token)

        reference_id, status = extract_ref_and_status(payload)

        if not reference_id:
            logger.warning("⚠️ [WEBHOOK] Callback without reference_id")
            return {"ok": True, "note": "no reference_id"}

        await self._store_raw_payload(reference_id, payload)

        if is_paid_status(status):
            rows = await self.payments.update_by_order_id(reference_id, {"status": PaymentStatus.PAID.value})
            user_id = rows[0].get("user_id") if rows else None
            if user_id:
                await self.profiles.mark_premium(user_id, datetime.now(timezone.utc).isoformat())
                logger.info(f"👑 [WEBHOOK] {reference_id} paid, user {user_id} is premium")
            else:
                logger.warning(f"⚠️ [WEBHOOK] Paid callback for unknown order {reference_id}")
        else:
            failure = TERMINAL_FAILURES.get(str(status or "").upper())
            if failure:
                await self.payments.update_by_order_id(
                    reference_id,
                    {"status": failure.value},
                    only_status=PaymentStatus.PENDING.value
                )
                logger.info(f"[WEBHOOK] {reference_id} -> {failure.value}")
            else:
                logger.info(f"[WEBHOOK] {reference_id} status {status} ignored")

        return {"ok": True}

    async def premium_overview(self, user: AuthUser) -> PremiumOverview:
        profile = await self.profiles.get_profile(user.id) or {}
        rows = await self.payments.list_recent_for_user(user.id, settings.recent_payments_limit)
        since = profile.get("premium_since")
        return PremiumOverview(
            price=settings.premium_price,
            price_label=format_idr(settings.premium_price),
            is_premium=bool(profile.get("is_premium")),
            premium_since=since,
            premium_since_label=format_date_id(since) if since else "—",
            recent_payments=[_record(row) for row in rows],
            benefits=PREMIUM_BENEFITS,
        )

    async def payment_status(self, order_id: str, user: AuthUser) -> PaymentRecord:
        """A payment the caller owns; other users' orders look missing."""
        row = await self.payments.get_by_order_id(order_id)
        if not row or str(row.get("user_id")) != str(user.id):
            raise NotFoundError("Payment not found", resource_id=order_id, resource_type="payment")
        return _record(row)


def get_payment_service(
    db: SupabaseClient = Depends(get_database),
    xendit: XenditClient = Depends(get_xendit_client)
) -> PaymentService:
    return PaymentService(PaymentRepository(db), ProfileRepository(db), xendit)
