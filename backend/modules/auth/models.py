"""
Authentication module data models.

These models define the data structures used by the auth module
and exposed to other modules through the interface.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field


class UserStatus(str, Enum):
    """Account status; only active accounts may log in."""

    ACTIVE = "active"
    DISABLED = "disabled"
    SUSPENDED = "suspended"


class PublicUser(BaseModel):
    """
    Sanitized user record.

    Every read path of the credential store returns this model;
    it never carries the password hash.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Opaque user ID")
    name: str = Field(..., description="Display name")
    email: str = Field(..., description="Normalized email address")
    status: UserStatus = Field(default=UserStatus.ACTIVE)
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")
    last_login_at: Optional[datetime] = Field(None, alias="lastLoginAt")
    login_count: int = Field(default=0, alias="loginCount")


class UserRecord(PublicUser):
    """Full user record as persisted by a storage backend."""

    password_hash: str = Field(..., alias="passwordHash")
    password_reset_at: Optional[datetime] = Field(None, alias="passwordResetAt")

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE

    def to_public(self) -> PublicUser:
        """Drop the hash and other sensitive fields."""
        return PublicUser.model_validate(
            self.model_dump(exclude={"password_hash", "password_reset_at"})
        )

    def to_storage(self) -> dict[str, Any]:
        """Serialize for a storage backend (camelCase keys, ISO timestamps)."""
        return self.model_dump(mode="json", by_alias=True)


class TokenClaims(BaseModel):
    """
    Decoded session token payload.

    Not persisted anywhere: validity depends only on signature and expiry.
    """

    sub: str = Field(..., description="Subject (user ID)")
    email: str = Field(..., description="User's email")
    name: str = Field(default="", description="User's display name")
    iat: int = Field(..., description="Issued-at timestamp")
    exp: int = Field(..., description="Expiration timestamp")

    @property
    def lifetime(self) -> int:
        """Original token lifetime in seconds."""
        return self.exp - self.iat


class IssuedToken(BaseModel):
    """A freshly signed token along with its claims."""

    token: str
    claims: TokenClaims

    @property
    def expires_in(self) -> int:
        return self.claims.lifetime


class LoginRequest(BaseModel):
    """Login request body. Validation happens in the service layer."""

    email: Optional[str] = None
    password: Optional[str] = None
    remember: bool = False


class RegisterRequest(BaseModel):
    """Registration request body. Validation happens in the store."""

    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class UpdateProfileRequest(BaseModel):
    """Profile update from the account owner."""

    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class AuthResponse(BaseModel):
    """Response from register/login."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str = ""
    user: PublicUser
    token: str
    expires_in: int = Field(..., alias="expiresIn")


class SessionStatusResponse(BaseModel):
    """Response from the status endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    user: PublicUser
    token_refreshed: bool = Field(default=False, alias="tokenRefreshed")
    token: Optional[str] = None
    expires_in: Optional[int] = Field(None, alias="expiresIn")
