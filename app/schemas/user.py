from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr
from pydantic.alias_generators import to_camel


class UserCreate(BaseModel):
    email: EmailStr
    password: str


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class User(BaseModel):
    id: int
    email: Optional[EmailStr] = None
    is_superuser: bool = False

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TokenPayload(BaseModel):
    sub: Optional[int] = None
    email: Optional[str] = None
    is_superuser: bool = False
