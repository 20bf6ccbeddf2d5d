"""
Authentication-specific schemas.
"""

from pydantic import EmailStr, Field

from collaboranexio.core.scope import Scope, Unrestricted
from collaboranexio.schemas.common import BaseSchema
from collaboranexio.schemas.user import UserRead


class LoginRequest(BaseSchema):
    """Login request schema."""

    email: EmailStr = Field(..., description="User email")
    password: str = Field(..., description="User password")


class ScopeRead(BaseSchema):
    """Resolved company scope of the caller."""

    unrestricted: bool = Field(False, description="True for super admins")
    tenant_ids: list[str] = Field(default_factory=list)

    @classmethod
    def from_scope(cls, scope: Scope) -> "ScopeRead":
        if isinstance(scope, Unrestricted):
            return cls(unrestricted=True)
        return cls(tenant_ids=sorted(scope))


class SessionRead(BaseSchema):
    """The authenticated principal with its current scope."""

    user: UserRead
    scope: ScopeRead


class TokenResponse(BaseSchema):
    """Token response schema."""

    access_token: str = Field(..., description="JWT access token")
    refresh_token: str = Field(..., description="JWT refresh token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: int = Field(..., description="Access token expiration in seconds")


class LoginResponse(TokenResponse):
    """Tokens plus the session they open."""

    user: UserRead
    scope: ScopeRead


class RefreshTokenRequest(BaseSchema):
    """Refresh token request."""

    refresh_token: str = Field(..., description="Valid refresh token")
