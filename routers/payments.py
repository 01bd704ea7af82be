"""
Payments router for premium QRIS checkout and the Xendit callback.

Error bodies here are {"error": ...} (plus "detail" for gateway failures);
the premium page and Xendit both read that shape.
"""
import json
import logging
from fastapi import APIRouter, Depends, HTTPException, Request, Header
from fastapi.responses import JSONResponse
from typing import Optional

from middleware.auth import get_current_user
from middleware.rate_limiting import payment_limit
from models.payment import PaymentRecord, PremiumOverview
from models.user import AuthUser
from services.payment_service import PaymentService, get_payment_service
from services.supabase_auth import SupabaseAuth, get_supabase_auth
from utils.exceptions import FluxInkError, PaymentGatewayError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["payments"])


def _error(status_code: int, message: str, detail=None) -> JSONResponse:
    body = {"error": message}
    if detail is not None:
        body["detail"] = detail
    return JSONResponse(status_code=status_code, content=body)


def _bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("authorization") or ""
    if header.startswith("Bearer ") and header[7:].strip():
        return header[7:].strip()
    return None


async def _json_body(request: Request):
    """Parsed JSON body, or None when the body is empty or not JSON."""
    raw = await request.body()
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        return None


@router.post("/create")
async def create_payment(
    request: Request,
    auth: SupabaseAuth = Depends(get_supabase_auth),
    payments: PaymentService = Depends(get_payment_service)
):
    """Create a pending payment and a dynamic QRIS code for it."""
    token = _bearer_token(request)
    if not token:
        return _error(401, "Missing Bearer token")

    try:
        user = await auth.authenticate(token)
    except HTTPException as e:
        logger.warning(f"🚫 [PAYMENTS] Session rejected: {e.detail}")
        return _error(401, "Invalid session")

    try:
        payment_limit(user.id)
    except HTTPException as e:
        response = _error(e.status_code, e.detail)
        response.headers.update(e.headers or {})
        return response

    body = await _json_body(request)
    raw_amount = body.get("amount") if isinstance(body, dict) else None

    try:
        result = await payments.create_payment(user, raw_amount)
    except PaymentGatewayError as e:
        return _error(502, e.message, e.payload)
    except FluxInkError as e:
        return _error(e.http_status, e.message)
    except Exception as e:
        logger.exception(f"❌ [PAYMENTS] Unexpected failure creating payment for {user.id}")
        return _error(500, str(e) or "Unknown error")

    return result.model_dump()


@router.post("/webhook")
async def xendit_webhook(
    request: Request,
    x_callback_token: Optional[str] = Header(None, alias="x-callback-token"),
    payments: PaymentService = Depends(get_payment_service)
):
    """
    Xendit payment callback.

    Always answers 200 once the token checks out, even without a
    reference_id, so Xendit does not keep retrying.
    """
    try:
        payments.authorize_callback(x_callback_token)
        payload = json.loads(await request.body())
        return await payments.handle_webhook(x_callback_token, payload)
    except FluxInkError as e:
        return _error(e.http_status, e.message)
    except Exception as e:
        logger.exception("❌ [WEBHOOK] Callback processing failed")
        return _error(500, str(e) or "Unknown error")


@router.get("/premium", response_model=PremiumOverview)
async def premium_overview(
    current_user: AuthUser = Depends(get_current_user),
    payments: PaymentService = Depends(get_payment_service)
):
    """Price, premium status, recent payments and benefits."""
    return await payments.premium_overview(current_user)


@router.get("/{order_id}", response_model=PaymentRecord)
async def payment_status(
    order_id: str,
    current_user: AuthUser = Depends(get_current_user),
    payments: PaymentService = Depends(get_payment_service)
):
    """Poll one of the caller's payments."""
    return await payments.payment_status(order_id, current_user)
