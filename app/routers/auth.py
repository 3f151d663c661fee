"""
Authentication router.

This module contains the sign-in, sign-up and session endpoints.
"""

from datetime import timedelta

from fastapi import APIRouter, Depends, Request
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import ConflictError, UnauthorizedError
from app.crud.user import user as crud_user
from app.database import get_db
from app.dependencies.auth import get_current_user
from app.models.user import User
from app.schemas.auth import LoginRequest, SessionIdentity, SignupRequest, TokenResponse
from app.schemas.user import UserCreate, UserPublic
from app.utils.logging_config import get_logger
from app.utils.rate_limit import limiter
from app.utils.security import create_session_token

logger = get_logger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["authentication"],
    responses={401: {"description": "Unauthorized"}},
)


async def _issue_token(db: AsyncSession, identifier: str, password: str) -> TokenResponse:
    """Authenticate and build the token response shared by both sign-in endpoints."""
    user_obj = await crud_user.authenticate(db, identifier=identifier, password=password)
    if not user_obj:
        logger.info("Sign-in rejected")
        raise UnauthorizedError("Invalid credentials")

    expires_in = settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60
    access_token = create_session_token(
        user_obj.id,
        user_obj.is_admin,
        expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    logger.info(f"Session issued: user_id={user_obj.id}")

    return TokenResponse(
        access_token=access_token,
        token_type="bearer",
        user=UserPublic.model_validate(user_obj),
        expires_in=expires_in,
    )


@router.post("/token", response_model=TokenResponse)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def login_for_access_token(
    request: Request,
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_db)
):
    """
    Authenticate with an OAuth2 password form and return a session token.

    The ``username`` form field accepts either the email or the username.

    Raises:
        UnauthorizedError: If the credentials do not match an active user
    """
    return await _issue_token(db, form_data.username, form_data.password)


@router.post("/login", response_model=TokenResponse)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def login(
    request: Request,
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    Authenticate with a JSON body and return a session token.

    Rate limit: LOGIN_RATE_LIMIT per client address.
    """
    return await _issue_token(db, credentials.identifier, credentials.password)


@router.post("/signup", response_model=UserPublic)
@limiter.limit(settings.SIGNUP_RATE_LIMIT)
async def signup(
    request: Request,
    user_in: SignupRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    Register a new (non-admin) user.

    Raises:
        ConflictError: If the username or email is already registered
    """
    if await crud_user.find_conflict(db, username=user_in.username, email=user_in.email):
        raise ConflictError()

    new_user = await crud_user.create(
        db,
        obj_in=UserCreate(
            username=user_in.username,
            email=user_in.email,
            password=user_in.password,
        ),
    )
    return new_user


@router.get("/session", response_model=SessionIdentity)
async def get_session(
    request: Request,
    current_user: User = Depends(get_current_user)
):
    """Return the identity attached to the current session token."""
    return SessionIdentity(
        id=current_user.id,
        username=current_user.username,
        email=current_user.email,
        is_admin=current_user.is_admin,
    )
