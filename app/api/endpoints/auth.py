from datetime import timedelta
from typing import Any

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app import crud
from app.api import deps
from app.core import security
from app.core.settings import Settings
from app.schemas.user import Token
from app.schemas.user import User as UserSchema
from app.schemas.user import UserCreate, UserLogin

router = APIRouter()


@router.post(
    "/register",
    response_model=UserSchema,
    status_code=status.HTTP_201_CREATED,
    summary="Register User",
)  # type: ignore[misc]
async def register_user(
    user_in: UserCreate,
    db: AsyncSession = Depends(deps.get_db),
    settings: Settings = Depends(deps.get_settings),
) -> Any:
    """
    Register a new user.

    **Errors:**
    - `400`: Password too short
    - `409`: Email already registered
    """
    return await crud.user.create(
        db,
        email=user_in.email,
        password=user_in.password,
        min_password_length=settings.security.PASSWORD_MIN_LENGTH,
    )


@router.post("/login", response_model=Token, summary="User Login")  # type: ignore[misc]
async def login(
    user_in: UserLogin,
    response: Response,
    db: AsyncSession = Depends(deps.get_db),
    settings: Settings = Depends(deps.get_settings),
) -> Any:
    """
    **Authenticate User and Get Access Token**

    Returns a bearer token and also sets it as an HttpOnly cookie.

    **Errors:**
    - `401`: Incorrect email/password or inactive user
    """
    user = await crud.user.authenticate(db, email=user_in.email, password=user_in.password)

    expires = timedelta(minutes=settings.security.ACCESS_TOKEN_EXPIRE_MINUTES)
    access_token = security.create_access_token(
        settings.security,
        user.id,
        expires_delta=expires,
        additional_claims={"email": user.email, "is_superuser": user.is_superuser},
    )
    response.set_cookie(
        key=settings.security.SESSION_COOKIE_NAME,
        value=access_token,
        max_age=int(expires.total_seconds()),
        httponly=True,
        secure=settings.security.SESSION_COOKIE_SECURE,
        samesite=settings.security.SESSION_COOKIE_SAMESITE,
    )
    return Token(access_token=access_token)


@router.post("/logout", summary="User Logout")  # type: ignore[misc]
async def logout(
    response: Response,
    settings: Settings = Depends(deps.get_settings),
) -> Any:
    """Clear the session cookie. Bearer tokens simply expire."""
    response.delete_cookie(settings.security.SESSION_COOKIE_NAME)
    return {"message": "Logout successful"}


@router.get("/me", response_model=UserSchema, summary="Current User")  # type: ignore[misc]
async def read_me(
    subject: security.Subject = Depends(deps.get_current_subject),
) -> Any:
    return UserSchema(
        id=subject.id, email=subject.email, is_superuser=subject.is_superuser
    )
