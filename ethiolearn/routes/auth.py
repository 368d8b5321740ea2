"""Authentication routes.

Credentials are checked by Supabase Auth; the role lives in the
``profiles`` table. On success the backend issues its own access token
carrying the user id and role.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from ..auth import AUTH_COOKIE_NAME, CurrentUser, create_access_token
from ..config import Settings, get_settings
from ..database import Database, create_profile, get_auth_client, get_profile
from ..errors import store_call
from ..logging_config import get_logger, log_auth_event
from ..models import LoginRequest, Role, SignupRequest, TokenResponse, UserInfo
from ..rate_limit import limiter

logger = get_logger("ethiolearn.routes.auth")
router = APIRouter(prefix="/auth", tags=["auth"])


def supabase_sign_up(settings: Settings, email: str, password: str, role: Role) -> dict:
    """Create a Supabase Auth user; the role is also kept in user metadata."""
    client = get_auth_client(settings)
    response = client.auth.sign_up(
        {
            "email": email,
            "password": password,
            "options": {"data": {"role": role.value}},
        }
    )
    if not response.user:
        raise RuntimeError("Sign-up returned no user")
    return {"id": response.user.id, "email": response.user.email or email}


def supabase_sign_in(settings: Settings, email: str, password: str) -> dict:
    """Verify credentials with Supabase Auth."""
    client = get_auth_client(settings)
    response = client.auth.sign_in_with_password({"email": email, "password": password})
    if not response.user:
        raise RuntimeError("Sign-in returned no user")
    metadata = response.user.user_metadata or {}
    return {
        "id": response.user.id,
        "email": response.user.email or email,
        "role": metadata.get("role"),
    }


def _issue_token(response: Response, settings: Settings, user_id: str, role: Role, email: str) -> TokenResponse:
    token = create_access_token(settings, user_id=user_id, role=role, email=email)
    expires_in = settings.jwt_expire_minutes * 60
    response.set_cookie(
        key=AUTH_COOKIE_NAME,
        value=token,
        max_age=expires_in,
        httponly=True,
        secure=not settings.debug,
        samesite="lax",
    )
    return TokenResponse(access_token=token, expires_in=expires_in, user_id=user_id, role=role)


@router.post("/signup", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("5/minute")
async def signup(
    request: Request,
    response: Response,
    body: SignupRequest,
    db: Database,
    settings: Annotated[Settings, Depends(get_settings)],
):
    """Create an account with a learner, instructor or employer role."""
    try:
        user = supabase_sign_up(settings, body.email, body.password, body.role)
    except Exception as e:
        log_auth_event("signup", success=False, email=body.email, error=str(e)[:80])
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Could not create account. The email may already be registered.",
        )

    # A database trigger may already have created the profile from metadata
    with store_call("create profile"):
        profile = await get_profile(db, user["id"])
        if not profile:
            await create_profile(db, user["id"], user["email"], body.role.value)

    log_auth_event("signup", user_id=user["id"], role=body.role.value)
    return _issue_token(response, settings, user["id"], body.role, user["email"])


@router.post("/login", response_model=TokenResponse)
@limiter.limit("10/minute")
async def login(
    request: Request,
    response: Response,
    body: LoginRequest,
    db: Database,
    settings: Annotated[Settings, Depends(get_settings)],
):
    """Exchange email and password for an access token."""
    try:
        user = supabase_sign_in(settings, body.email, body.password)
    except Exception as e:
        log_auth_event("login", success=False, email=body.email, error=str(e)[:80])
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    with store_call("get profile"):
        profile = await get_profile(db, user["id"])

    role_tag = (profile or {}).get("role") or user.get("role")
    try:
        role = Role.parse(role_tag)
    except ValueError:
        log_auth_event("login", user_id=user["id"], success=False, role=role_tag)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account has no valid role",
        )

    log_auth_event("login", user_id=user["id"], role=role.value)
    return _issue_token(response, settings, user["id"], role, user["email"])


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(response: Response):
    """Clear the auth cookie."""
    response.delete_cookie(AUTH_COOKIE_NAME)


@router.get("/me", response_model=UserInfo)
async def me(user: CurrentUser):
    """Return the authenticated user."""
    return UserInfo(user_id=user.user_id, role=user.role, email=user.email)
