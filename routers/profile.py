"""
Profile router: view and edit the signed-in user's profile and avatar.
"""
import logging
from fastapi import APIRouter, Depends, File, UploadFile

from config import settings
from middleware.auth import get_current_user
from models.user import AuthUser, ProfileActionResponse, ProfileResponse, ProfileUpdateRequest
from services.profile_service import ProfileService, get_profile_service
from utils.uploads import read_upload

logger = logging.getLogger(__name__)

router = APIRouter(tags=["profile"])


@router.get("", response_model=ProfileResponse)
async def get_profile(
    current_user: AuthUser = Depends(get_current_user),
    profiles: ProfileService = Depends(get_profile_service)
):
    return await profiles.get_profile(current_user)


@router.patch("", response_model=ProfileActionResponse)
async def update_profile(
    body: ProfileUpdateRequest,
    current_user: AuthUser = Depends(get_current_user),
    profiles: ProfileService = Depends(get_profile_service)
):
    """Update display name and bio; blank values clear them."""
    return await profiles.update_profile(current_user, body.display_name, body.bio)


@router.post("/avatar", response_model=ProfileActionResponse)
async def upload_avatar(
    file: UploadFile = File(...),
    current_user: AuthUser = Depends(get_current_user),
    profiles: ProfileService = Depends(get_profile_service)
):
    """Replace the custom avatar (image/*, at most 5MB)."""
    data = await read_upload(file, settings.max_avatar_size)
    logger.info(f"🖼️ [PROFILE-ROUTER] Avatar upload from {current_user.id}: {file.filename} ({len(data)} bytes)")
    return await profiles.upload_avatar(current_user, file.filename, file.content_type, data)


@router.delete("/avatar", response_model=ProfileActionResponse)
async def reset_avatar(
    current_user: AuthUser = Depends(get_current_user),
    profiles: ProfileService = Depends(get_profile_service)
):
    """Remove the custom avatar and fall back to the social one."""
    return await profiles.reset_avatar(current_user)
