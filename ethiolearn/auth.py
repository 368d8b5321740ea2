"""Authentication utilities for the EthioLearn backend."""

from datetime import datetime, timedelta, timezone
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from .config import Settings, get_settings
from .logging_config import log_auth_event
from .models import Role

# Cookie name for httpOnly auth
AUTH_COOKIE_NAME = "ethiolearn_auth"

# Make bearer optional to allow cookie fallback
security = HTTPBearer(auto_error=False)


def create_access_token(
    settings: Settings,
    user_id: str,
    role: Role | str | None = None,
    email: str | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a JWT access token for a user."""
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))

    to_encode = {
        "sub": user_id,
        "exp": expire,
        "iat": now,
        "type": "access",
    }
    if role:
        to_encode["role"] = Role.parse(role).value
    if email:
        to_encode["email"] = email
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str, settings: Settings) -> dict:
    """Decode and validate a JWT token."""
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
        return payload
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )


class AuthContext:
    """The authenticated caller: user id, role and (if known) email."""

    def __init__(self, user_id: str, role: Role, email: str | None = None):
        self.user_id = user_id
        self.role = role
        self.email = email

    @property
    def is_admin(self) -> bool:
        return self.role is Role.admin

    def has_role(self, *roles: Role) -> bool:
        return self.role in roles

    def __repr__(self) -> str:
        return f"AuthContext(user_id={self.user_id!r}, role={self.role.value!r})"


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    settings: Annotated[Settings, Depends(get_settings)],
    request: Request,
) -> AuthContext:
    """Get the current authenticated user from the bearer token or auth cookie."""
    token = None
    if credentials:
        token = credentials.credentials
    else:
        token = request.cookies.get(AUTH_COOKIE_NAME)

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated - provide Authorization header or auth cookie",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_token(token, settings)
    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
            headers={"WWW-Authenticate": "Bearer"},
        )

    role = payload.get("role")
    email = payload.get("email")
    if not role:
        # Older tokens carry no role; fall back to the profile row
        from .database import get_profile, get_supabase_client

        try:
            profile = await get_profile(get_supabase_client(settings), user_id)
        except Exception as e:
            log_auth_event("profile_lookup", user_id=user_id, success=False, error=str(e)[:80])
            profile = None
        if not profile:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="No profile found for this user",
                headers={"WWW-Authenticate": "Bearer"},
            )
        role = profile.get("role")
        email = email or profile.get("email")

    try:
        parsed_role = Role.parse(role)
    except ValueError:
        log_auth_event("token_rejected", user_id=user_id, success=False, role=role)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown role in token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return AuthContext(user_id=user_id, role=parsed_role, email=email)


# Type alias for dependency injection
CurrentUser = Annotated[AuthContext, Depends(get_current_user)]


def require_role(*roles: Role):
    """Build a dependency that only lets the given roles through."""
    allowed = ", ".join(r.value for r in roles)

    async def _dependency(user: CurrentUser) -> AuthContext:
        if not user.has_role(*roles):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"This action requires role: {allowed}",
            )
        return user

    return _dependency


AdminUser = Annotated[AuthContext, Depends(require_role(Role.admin))]
