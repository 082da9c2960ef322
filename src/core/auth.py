"""
Supabase JWT authentication and actor resolution.

Every tracked request resolves to an Actor: either an authenticated
profile or a client-generated anonymous id, never both and never neither.

Usage:
    from core.auth import get_current_user, resolve_actor

    @router.post("/track")
    async def track(user: Optional[SupabaseUser] = Depends(get_current_user)):
        actor = resolve_actor(user, body.anonymous_id, profiles)
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from config.settings import get_settings
from core.errors import UnauthenticatedError

if TYPE_CHECKING:
    from core.profiles import ProfileDirectory


security = HTTPBearer(
    scheme_name="Supabase JWT",
    description="JWT token from Supabase Auth.",
    auto_error=False,
)


@dataclass
class SupabaseUser:
    """
    Authenticated user from Supabase JWT.

    Attributes:
        id: User's UUID (from 'sub' claim)
        email: User's email address
        role: Postgres role (usually 'authenticated')
        session_id: Current auth session UUID
        is_anonymous: True if anonymous auth
        user_metadata: User profile metadata (name, avatar, etc.)
    """
    id: str
    email: Optional[str] = None
    role: str = "authenticated"
    session_id: Optional[str] = None
    is_anonymous: bool = False
    user_metadata: Optional[dict] = None


@dataclass(frozen=True)
class Actor:
    """Who performed a request: exactly one of profile_id / anonymous_id."""
    profile_id: Optional[str] = None
    anonymous_id: Optional[str] = None

    def __post_init__(self):
        if bool(self.profile_id) == bool(self.anonymous_id):
            raise ValueError("Actor requires exactly one of profile_id or anonymous_id")

    @property
    def is_authenticated(self) -> bool:
        return self.profile_id is not None

    @property
    def key(self) -> str:
        return self.profile_id or f"anon:{self.anonymous_id}"


def verify_jwt(token: str) -> dict:
    """
    Verify and decode a Supabase JWT token.

    Raises:
        HTTPException: If token is invalid, expired, or malformed
    """
    settings = get_settings()

    try:
        return jwt.decode(
            token,
            settings.supabase_jwt_secret,
            algorithms=["HS256"],
            audience="authenticated",
            options={
                "verify_exp": True,
                "verify_aud": True,
                "require": ["sub", "exp", "aud"],
            }
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except jwt.InvalidTokenError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )


def extract_user(payload: dict) -> SupabaseUser:
    return SupabaseUser(
        id=payload["sub"],
        email=payload.get("email"),
        role=payload.get("role", "authenticated"),
        session_id=payload.get("session_id"),
        is_anonymous=payload.get("is_anonymous", False),
        user_metadata=payload.get("user_metadata"),
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[SupabaseUser]:
    """
    FastAPI dependency returning the authenticated user, or None when no
    bearer token was sent (anonymous traffic is allowed on tracking routes).
    """
    if not credentials or not credentials.credentials:
        return None

    payload = verify_jwt(credentials.credentials)
    return extract_user(payload)


async def require_auth(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> SupabaseUser:
    """FastAPI dependency that requires authentication."""
    if not credentials or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = verify_jwt(credentials.credentials)
    return extract_user(payload)


def resolve_actor(
    user: Optional[SupabaseUser],
    anonymous_id: Optional[str],
    profiles: "ProfileDirectory",
) -> Actor:
    """
    Resolve the request to an Actor.

    Authenticated users win over a supplied anonymous id; anonymous Supabase
    sessions are treated as unauthenticated.

    Raises:
        UnauthenticatedError: No user and no anonymous id.
    """
    if user is not None and not user.is_anonymous:
        profile_id = profiles.get_or_create_profile(user.id, email=user.email)
        return Actor(profile_id=profile_id)

    anonymous_id = (anonymous_id or "").strip()
    if not anonymous_id:
        raise UnauthenticatedError("Missing anonymous_id or authentication")
    return Actor(anonymous_id=anonymous_id)
