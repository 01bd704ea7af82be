"""
Authentication dependencies.
Bearer tokens are resolved through Supabase Auth; the admin gate reads
profiles.role on every call so role changes apply immediately.
"""

import logging
from typing import Optional
from fastapi import HTTPException, status, Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from database import SupabaseClient, get_database
from models.user import AuthUser
from repositories.profile_repository import ProfileRepository
from services.supabase_auth import SupabaseAuth, get_supabase_auth

logger = logging.getLogger(__name__)

# HTTP Bearer security scheme
security = HTTPBearer(auto_error=False)


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth: SupabaseAuth = Depends(get_supabase_auth)
) -> AuthUser:
    """
    Authentication dependency.

    Raises:
        HTTPException: 401 if the token is missing or invalid
    """
    if not credentials or not credentials.credentials:
        logger.warning(f"🚫 [AUTH] No bearer token for {request.url.path}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header required",
            headers={"WWW-Authenticate": "Bearer"}
        )

    try:
        user = await auth.authenticate(credentials.credentials)
    except HTTPException as e:
        if e.status_code == status.HTTP_401_UNAUTHORIZED:
            logger.warning(f"🚫 [AUTH] Token rejected for {request.url.path}: {e.detail}")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=e.detail,
                headers={"WWW-Authenticate": "Bearer"}
            )
        raise

    request.state.user_id = user.id
    logger.debug(f"✅ [AUTH] Authenticated {user.id}")
    return user


async def get_current_user_optional(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth: SupabaseAuth = Depends(get_supabase_auth)
) -> Optional[AuthUser]:
    """
    Optional authentication dependency.
    Returns None for anonymous callers and for rejected tokens.
    """
    if not credentials or not credentials.credentials:
        return None
    try:
        return await get_current_user(request, credentials, auth)
    except HTTPException as e:
        if e.status_code == status.HTTP_401_UNAUTHORIZED:
            return None
        raise


async def require_admin_user(
    current_user: AuthUser = Depends(get_current_user),
    db: SupabaseClient = Depends(get_database)
) -> AuthUser:
    """
    Admin authorization dependency.

    Raises:
        HTTPException: 403 unless profiles.role is "admin"
    """
    try:
        role = await ProfileRepository(db).get_role(current_user.id)
    except Exception as e:
        logger.error(f"❌ [AUTH] Role lookup failed for {current_user.id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Authorization service unavailable"
        )

    if role != "admin":
        logger.warning(f"🚫 [AUTH] Admin access denied for user {current_user.id}: role={role}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )

    current_user.role = role
    logger.info(f"✅ [AUTH] Admin access granted for {current_user.id}")
    return current_user
