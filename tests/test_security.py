from datetime import timedelta

import pytest
from jose import jwt

from app.core.errors import InvalidCredentialError, UnauthenticatedError
from app.core.security import (
    CredentialVerifier,
    create_access_token,
    get_password_hash,
    verify_password,
)
from app.core.settings import SecuritySettings


def test_verify_resolves_subject(verifier, make_token) -> None:
    subject = verifier.verify(make_token(42, is_superuser=True, email="admin@example.com"))
    assert subject.id == 42
    assert subject.is_superuser is True
    assert subject.email == "admin@example.com"


def test_verify_is_pure(verifier, make_token) -> None:
    token = make_token(3)
    assert verifier.verify(token) == verifier.verify(token)


@pytest.mark.parametrize("credential", [None, "", "  "])  # type: ignore[misc]
def test_missing_credential(verifier, credential) -> None:
    with pytest.raises(UnauthenticatedError):
        verifier.verify(credential)


def test_expired_credential(verifier, make_token) -> None:
    with pytest.raises(InvalidCredentialError) as exc_info:
        verifier.verify(make_token(expires_delta=timedelta(seconds=-1)))
    assert "expired" in exc_info.value.message


def test_wrong_secret_is_rejected(make_token) -> None:
    other = CredentialVerifier(SecuritySettings(JWT_SECRET_KEY="some-other-secret"))
    with pytest.raises(InvalidCredentialError):
        other.verify(make_token())


def test_token_without_subject_is_rejected(verifier, settings) -> None:
    token = jwt.encode(
        {"email": "x@example.com"}, settings.security.JWT_SECRET_KEY, algorithm="HS256"
    )
    with pytest.raises(InvalidCredentialError):
        verifier.verify(token)


def test_non_numeric_subject_is_rejected(verifier, settings) -> None:
    with pytest.raises(InvalidCredentialError):
        verifier.verify(create_access_token(settings.security, "not-a-number"))


def test_password_hashing_round_trip() -> None:
    hashed = get_password_hash("correct horse")
    assert hashed != "correct horse"
    assert verify_password("correct horse", hashed)
    assert not verify_password("wrong horse", hashed)
