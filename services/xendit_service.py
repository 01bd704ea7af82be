"""
Xendit REST client for dynamic QRIS codes.
"""
import base64
import logging
from dataclasses import dataclass, field
from typing import Optional, Dict, Any

import httpx

from config import settings
from utils.exceptions import ConfigurationError, PaymentGatewayError

logger = logging.getLogger(__name__)


def basic_auth(secret_key: str) -> str:
    """Xendit uses HTTP Basic auth with the secret key as user and an empty password."""
    return "Basic " + base64.b64encode(f"{secret_key}:".encode()).decode()


@dataclass
class GatewayResponse:
    """Raw gateway answer; data is {} when the body was not JSON."""
    status_code: int
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class XenditClient:

    def __init__(
        self,
        secret_key: Optional[str] = None,
        api_base: Optional[str] = None,
        api_version: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.secret_key = secret_key if secret_key is not None else settings.xendit_secret_key
        self.api_base = (api_base or settings.xendit_api_base).rstrip("/")
        self.api_version = api_version or settings.xendit_api_version
        self.timeout = timeout or settings.xendit_timeout
        self._transport = transport

    async def create_qr_code(self, reference_id: str, amount: int) -> GatewayResponse:
        """
        POST /qr_codes for a one-off dynamic QRIS code.

        Raises:
            ConfigurationError: no secret key configured
            PaymentGatewayError: the gateway could not be reached
        """
        if not self.secret_key:
            raise ConfigurationError("XENDIT_SECRET_KEY is not configured", config_key="XENDIT_SECRET_KEY")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    f"{self.api_base}/qr_codes",
                    headers={
                        "Authorization": basic_auth(self.secret_key),
                        "Content-Type": "application/json",
                        "api-version": self.api_version,
                    },
                    json={
                        "reference_id": reference_id,
                        "type": "DYNAMIC",
                        "currency": "IDR",
                        "amount": amount,
                    }
                )
        except httpx.HTTPError as e:
            logger.error(f"❌ [XENDIT] QR request for {reference_id} failed: {e}")
            raise PaymentGatewayError(
                "Xendit create QR failed",
                payload={"message": str(e) or e.__class__.__name__}
            )

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {"body": data}

        logger.info(f"💳 [XENDIT] QR for {reference_id} -> {response.status_code}")
        return GatewayResponse(status_code=response.status_code, data=data)


def get_xendit_client() -> XenditClient:
    return XenditClient()
