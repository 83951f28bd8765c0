import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db_utils import db_transaction
from app.core.errors import ConflictError, InvalidCredentialError, ValidationError
from app.models.user import User

from ..core.security import get_password_hash, verify_password

logger = logging.getLogger(__name__)


async def get_by_email(db: AsyncSession, *, email: str) -> Optional[User]:
    result = await db.execute(select(User).filter(User.email == email.lower()))
    first: Optional[User] = result.scalars().first()
    return first


async def create(
    db: AsyncSession,
    *,
    email: str,
    password: str,
    is_superuser: bool = False,
    min_password_length: int = 8,
) -> User:
    if len(password) < min_password_length:
        raise ValidationError(
            f"Password must be at least {min_password_length} characters"
        )
    if await get_by_email(db, email=email):
        raise ConflictError("User already exists")

    db_obj = User(
        email=email.lower(),
        hashed_password=get_password_hash(password),
        is_superuser=is_superuser,
    )
    try:
        async with db_transaction(db):
            db.add(db_obj)
            await db.flush()
    except IntegrityError:
        # Lost a race with a concurrent registration for the same email
        raise ConflictError("User already exists")
    logger.info("User registered", extra={"user_id": db_obj.id})
    return db_obj


async def authenticate(db: AsyncSession, *, email: str, password: str) -> User:
    user = await get_by_email(db, email=email)
    if not user or not verify_password(password, user.hashed_password):
        raise InvalidCredentialError("Invalid credentials")
    if not user.is_active:
        raise InvalidCredentialError("Inactive user")
    return user


async def ensure_superuser(db: AsyncSession, *, email: str, password: str) -> User:
    """Create the configured first superuser unless it already exists."""
    existing = await get_by_email(db, email=email)
    if existing:
        return existing
    return await create(db, email=email, password=password, is_superuser=True, min_password_length=1)
