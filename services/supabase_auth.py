"""
Supabase Auth (GoTrue) client.
This is the SINGLE source of truth for authentication: sessions, sign-up,
OAuth redirects, token verification and user metadata all go through here.
"""

import jwt
import logging
from typing import Optional, Dict, Any
from urllib.parse import urlencode
from fastapi import HTTPException, status
import httpx
from functools import lru_cache

from config import settings
from models.user import AuthUser

logger = logging.getLogger(__name__)

OAUTH_PROVIDERS = ("google", "discord")


def _error_message(response: httpx.Response, default: str) -> str:
    """Pull the human readable message out of a GoTrue error body."""
    try:
        body = response.json()
    except ValueError:
        return default
    if not isinstance(body, dict):
        return default
    for key in ("msg", "error_description", "message", "error"):
        value = body.get(key)
        if isinstance(value, str) and value.strip():
            return value
    return default


def _session_from(data: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "access_token": data.get("access_token"),
        "refresh_token": data.get("refresh_token"),
        "expires_in": data.get("expires_in"),
        "token_type": data.get("token_type", "bearer"),
        "user": data.get("user") or {},
    }


class SupabaseAuth:
    """
    Supabase authentication service.
    Handles JWT verification, session management and user metadata.
    """

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.url = settings.supabase_url.rstrip("/")
        self.anon_key = settings.supabase_anon_key
        self.jwt_secret = settings.supabase_jwt_secret
        self.timeout = settings.auth_timeout
        self._transport = transport

        if not all([self.url, self.anon_key]):
            raise ValueError(
                "Missing required Supabase configuration. "
                "Check SUPABASE_URL and SUPABASE_ANON_KEY"
            )

        logger.info(f"SupabaseAuth initialized for {self.url}")
        if not self.jwt_secret:
            logger.warning("JWT secret not configured - validating tokens through /auth/v1/user")

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.url, timeout=self.timeout, transport=self._transport)

    def _headers(self, token: Optional[str] = None) -> Dict[str, str]:
        headers = {
            "apikey": self.anon_key,
            "Content-Type": "application/json"
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def verify_jwt(self, token: str) -> Dict[str, Any]:
        """
        Verify a Supabase JWT locally with the project's JWT secret.

        Raises:
            HTTPException: If token is invalid or expired
        """
        try:
            payload = jwt.decode(
                token,
                self.jwt_secret,
                algorithms=["HS256"],
                audience="authenticated",
                options={"verify_exp": True, "verify_aud": True}
            )
        except jwt.ExpiredSignatureError:
            logger.warning("JWT token expired")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Token has expired"
            )
        except jwt.InvalidTokenError as e:
            logger.warning(f"Invalid JWT token: {e}")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid authentication token"
            )

        if "sub" not in payload:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid token: missing user ID"
            )

        logger.debug(f"JWT verified for user {payload['sub']}")
        return payload

    async def authenticate(self, token: str) -> AuthUser:
        """
        Resolve a bearer token to the calling user.

        Verified locally when SUPABASE_JWT_SECRET is configured, otherwise
        by asking Supabase Auth for the token's user.
        """
        if self.jwt_secret:
            claims = self.verify_jwt(token)
            return AuthUser(
                id=claims["sub"],
                email=claims.get("email"),
                access_token=token,
                user_metadata=claims.get("user_metadata") or {},
                app_metadata=claims.get("app_metadata") or {},
            )

        user = await self.get_user(token)
        return AuthUser(
            id=user["id"],
            email=user.get("email"),
            access_token=token,
            user_metadata=user.get("user_metadata") or {},
            app_metadata=user.get("app_metadata") or {},
            identities=user.get("identities") or [],
        )

    async def get_user(self, token: str) -> Dict[str, Any]:
        """Full user record (metadata and identities) for an access token."""
        try:
            async with self._client() as client:
                response = await client.get("/auth/v1/user", headers=self._headers(token))
        except httpx.TimeoutException:
            logger.error("Supabase auth timeout")
            raise HTTPException(
                status_code=status.HTTP_504_GATEWAY_TIMEOUT,
                detail="Authentication service timeout"
            )
        except httpx.HTTPError as e:
            logger.error(f"Supabase auth unreachable: {e}")
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Authentication service unavailable"
            )

        if response.status_code == 200:
            return response.json()
        if response.status_code in (401, 403, 404):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid authentication token"
            )
        logger.error(f"Supabase auth error: {response.status_code}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Authentication service unavailable"
        )

    async def sign_in_with_password(self, email: str, password: str) -> Dict[str, Any]:
        """
        Sign in a user with email and password via Supabase.

        Returns:
            Session data with access_token, refresh_token, and user
        """
        try:
            async with self._client() as client:
                response = await client.post(
                    "/auth/v1/token?grant_type=password",
                    headers=self._headers(),
                    json={"email": email, "password": password}
                )
        except httpx.TimeoutException:
            logger.error("Supabase auth timeout")
            raise HTTPException(
                status_code=status.HTTP_504_GATEWAY_TIMEOUT,
                detail="Authentication service timeout"
            )
        except httpx.HTTPError as e:
            logger.error(f"Supabase auth unreachable: {e}")
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Authentication service unavailable"
            )

        if response.status_code == 200:
            logger.info(f"User {email} logged in successfully")
            return _session_from(response.json())
        if response.status_code in (400, 401, 422):
            logger.warning(f"Invalid credentials for {email}")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=_error_message(response, "Invalid login credentials")
            )
        logger.error(f"Supabase auth error: {response.status_code}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Authentication service unavailable"
        )

    async def sign_up(self, email: str, password: str, user_metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Sign up a new user through the public signup endpoint.

        When email confirmation is enabled Supabase returns the user without a
        session; the tokens in the result are then None.
        """
        try:
            async with self._client() as client:
                response = await client.post(
                    "/auth/v1/signup",
                    headers=self._headers(),
                    json={
                        "email": email,
                        "password": password,
                        "data": user_metadata or {}
                    }
                )
        except httpx.HTTPError as e:
            logger.error(f"Sign up error: {e}")
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Registration service unavailable"
            )

        if response.status_code in (200, 201):
            data = response.json()
            logger.info(f"User {email} registered successfully")
            if "access_token" in data:
                return _session_from(data)
            return _session_from({"user": data.get("user") or data})

        message = _error_message(response, "Invalid registration data")
        if response.status_code in (400, 422):
            if "already" in message.lower() and "registered" in message.lower():
                raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=message)
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)

        logger.error(f"Registration failed: {response.status_code}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Registration service error"
        )

    async def refresh_token(self, refresh_token: str) -> Dict[str, Any]:
        """Exchange a refresh token for a new session."""
        try:
            async with self._client() as client:
                response = await client.post(
                    "/auth/v1/token?grant_type=refresh_token",
                    headers=self._headers(),
                    json={"refresh_token": refresh_token}
                )
        except httpx.HTTPError as e:
            logger.error(f"Token refresh error: {e}")
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Token refresh failed"
            )

        if response.status_code == 200:
            logger.info("Token refreshed successfully")
            return _session_from(response.json())

        logger.warning(f"Token refresh failed: {response.status_code}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid refresh token"
        )

    async def sign_out(self, token: str) -> bool:
        """Revoke the session behind an access token."""
        try:
            async with self._client() as client:
                response = await client.post("/auth/v1/logout", headers=self._headers(token))
        except httpx.HTTPError as e:
            logger.error(f"Signout error: {e}")
            return False

        if response.status_code in (200, 204):
            logger.info("User signed out successfully")
            return True
        logger.warning(f"Signout returned {response.status_code}")
        return False

    async def update_user_metadata(self, token: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Merge keys into the caller's user_metadata.
        Keys set to None are cleared.
        """
        try:
            async with self._client() as client:
                response = await client.put(
                    "/auth/v1/user",
                    headers=self._headers(token),
                    json={"data": data}
                )
        except httpx.HTTPError as e:
            logger.error(f"User update error: {e}")
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Authentication service unavailable"
            )

        if response.status_code == 200:
            return response.json()
        if response.status_code == 401:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid authentication token"
            )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=_error_message(response, "Gagal update profil.")
        )

    def oauth_url(self, provider: str, redirect_to: Optional[str] = None) -> str:
        """Authorize URL that starts an OAuth login with Google or Discord."""
        provider = (provider or "").strip().lower()
        if provider not in OAUTH_PROVIDERS:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Unsupported OAuth provider: {provider or '-'}"
            )
        params = {"provider": provider, "redirect_to": redirect_to or settings.site_url}
        return f"{self.url}/auth/v1/authorize?{urlencode(params)}"


# Singleton instance
@lru_cache()
def get_supabase_auth() -> SupabaseAuth:
    """Get singleton SupabaseAuth instance."""
    return SupabaseAuth()
