from typing import Any

from fastapi.security import OAuth2PasswordBearer
from jose import jwt
from pydantic import BaseModel

from app.tally.core.config import settings

# Tokens are issued by the external identity service; this app only verifies them.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")


class TokenData(BaseModel):
    sub: str
    company_id: str | None = None
    name: str | None = None


def decode_token(token: str) -> dict[str, Any]:
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])


def create_access_token(data: dict[str, Any]) -> str:
    return jwt.encode(dict(data), settings.SECRET_KEY, algorithm=settings.ALGORITHM)
