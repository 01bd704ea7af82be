"""
User model schemas for authentication and profile management.
Accounts live in Supabase Auth; role and premium flags live in the profiles table.
"""
from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional, Dict, Any, List


class AuthUser(BaseModel):
    """The authenticated caller, resolved from a bearer token."""
    id: str
    email: Optional[str] = None
    role: str = "user"
    access_token: str = Field(default="", exclude=True, repr=False)
    user_metadata: Dict[str, Any] = {}
    app_metadata: Dict[str, Any] = {}
    identities: List[Dict[str, Any]] = []


class LoginRequest(BaseModel):
    """Email/password login."""
    email: EmailStr
    password: str = Field(..., min_length=1)


class RegisterRequest(BaseModel):
    """Email/password sign-up with a display name."""
    username: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)

    @field_validator('username')
    @classmethod
    def strip_username(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Username wajib diisi")
        return v


class RefreshRequest(BaseModel):
    refresh_token: str


class AuthSession(BaseModel):
    """Session issued by Supabase Auth."""
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    token_type: str = "bearer"
    user: Dict[str, Any] = {}


class OAuthUrlResponse(BaseModel):
    provider: str
    url: str


class UserResponse(BaseModel):
    """Current user with role and premium flags."""
    id: str
    email: Optional[str] = None
    display_name: str
    role: str = "user"
    is_admin: bool = False
    is_premium: bool = False
    premium_since: Optional[str] = None


class ProfileResponse(BaseModel):
    """Profile page payload."""
    id: str
    email: Optional[str] = None
    display_name: str
    bio: str = ""
    provider: str
    provider_label: str
    avatar_url: Optional[str] = None
    custom_avatar_url: Optional[str] = None
    social_avatar_url: Optional[str] = None
    is_premium: bool = False
    premium_since: Optional[str] = None
    premium_since_label: str = "—"


class ProfileUpdateRequest(BaseModel):
    """Editable profile fields; blank values clear the field."""
    display_name: Optional[str] = Field(None, max_length=80)
    bio: Optional[str] = Field(None, max_length=500)


class ProfileActionResponse(BaseModel):
    """Result of a profile mutation."""
    message: str
    profile: ProfileResponse
