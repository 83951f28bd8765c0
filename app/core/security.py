import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, cast

from jose import jwt
from jose.exceptions import ExpiredSignatureError, JWTError
from passlib.context import CryptContext
from pydantic import ValidationError as PydanticValidationError

from app.core.errors import InvalidCredentialError, UnauthenticatedError
from app.core.settings import SecuritySettings
from app.schemas.user import TokenPayload

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


@dataclass(frozen=True)
class Subject:
    """Identity resolved from a verified credential."""

    id: int
    email: Optional[str] = None
    is_superuser: bool = False


def create_access_token(
    settings: SecuritySettings,
    subject: Any,
    expires_delta: Optional[timedelta] = None,
    additional_claims: Optional[dict[str, Any]] = None,
) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta
        if expires_delta is not None
        else timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode: dict[str, Any] = {"exp": expire, "sub": str(subject)}

    if additional_claims:
        to_encode.update(additional_claims)

    encoded_jwt = jwt.encode(
        to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM
    )
    return cast(str, encoded_jwt)


class CredentialVerifier:
    """Stateless bearer token check: token in, subject out."""

    def __init__(self, settings: SecuritySettings) -> None:
        self._secret = settings.JWT_SECRET_KEY
        self._algorithm = settings.JWT_ALGORITHM

    def verify(self, credential: Optional[str]) -> Subject:
        """
        Resolve a bearer credential to its subject.

        Raises:
            UnauthenticatedError: no credential was supplied.
            InvalidCredentialError: the token is malformed, tampered or expired.
        """
        if credential is None or not credential.strip():
            raise UnauthenticatedError()

        token = credential.strip()
        if token.lower().startswith("bearer "):
            token = token[7:].strip()

        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
            token_data = TokenPayload(**payload)
        except ExpiredSignatureError:
            logger.info("Rejected expired credential")
            raise InvalidCredentialError("Credential has expired")
        except (JWTError, PydanticValidationError):
            logger.info("Rejected invalid credential")
            raise InvalidCredentialError()

        if token_data.sub is None:
            raise InvalidCredentialError()

        return Subject(
            id=token_data.sub,
            email=token_data.email,
            is_superuser=token_data.is_superuser,
        )


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return cast(bool, pwd_context.verify(plain_password, hashed_password))


def get_password_hash(password: str) -> str:
    return cast(str, pwd_context.hash(password))
