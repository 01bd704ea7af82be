"""
Authentication router. Sessions are issued by Supabase Auth; this router
forwards credentials and hands the session back to the frontend.
"""
import logging
from fastapi import APIRouter, Depends, Request, status
from fastapi.security import HTTPAuthorizationCredentials
from typing import Optional

from middleware.auth import get_current_user, security
from middleware.rate_limiting import auth_limit
from models.user import AuthSession, AuthUser, LoginRequest, OAuthUrlResponse, RefreshRequest, RegisterRequest, UserResponse
from services.profile_service import ProfileService, get_profile_service
from services.supabase_auth import SupabaseAuth, get_supabase_auth

logger = logging.getLogger(__name__)

router = APIRouter(tags=["authentication"])


@router.post("/login", response_model=AuthSession)
@auth_limit()
async def login(
    request: Request,
    credentials: LoginRequest,
    auth: SupabaseAuth = Depends(get_supabase_auth)
):
    """Email/password login. Bad credentials return 401 with the provider's message."""
    logger.info(f"🔐 [AUTH-ROUTER] Login attempt for {credentials.email}")
    session = await auth.sign_in_with_password(credentials.email, credentials.password)
    return AuthSession(**session)


@router.post("/register", response_model=AuthSession, status_code=status.HTTP_201_CREATED)
@auth_limit()
async def register(
    request: Request,
    payload: RegisterRequest,
    auth: SupabaseAuth = Depends(get_supabase_auth)
):
    """Sign up; the username becomes display_name in user metadata."""
    logger.info(f"📝 [AUTH-ROUTER] Registration for {payload.email}")
    session = await auth.sign_up(payload.email, payload.password, {"display_name": payload.username})
    return AuthSession(**session)


@router.get("/oauth/{provider}", response_model=OAuthUrlResponse)
async def oauth_url(
    provider: str,
    redirect_to: Optional[str] = None,
    auth: SupabaseAuth = Depends(get_supabase_auth)
):
    """Authorize URL for Google or Discord login."""
    url = auth.oauth_url(provider, redirect_to)
    return OAuthUrlResponse(provider=provider.strip().lower(), url=url)


@router.post("/refresh", response_model=AuthSession)
async def refresh(body: RefreshRequest, auth: SupabaseAuth = Depends(get_supabase_auth)):
    return AuthSession(**await auth.refresh_token(body.refresh_token))


@router.post("/logout")
async def logout(
    current_user: AuthUser = Depends(get_current_user),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth: SupabaseAuth = Depends(get_supabase_auth)
):
    revoked = await auth.sign_out(credentials.credentials)
    logger.info(f"👋 [AUTH-ROUTER] Logout for {current_user.id} (revoked={revoked})")
    return {"ok": True, "revoked": revoked}


@router.get("/me", response_model=UserResponse)
async def me(
    current_user: AuthUser = Depends(get_current_user),
    profiles: ProfileService = Depends(get_profile_service)
):
    """Current user with role and premium flags."""
    return await profiles.get_me(current_user)
