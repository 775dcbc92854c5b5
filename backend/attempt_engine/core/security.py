from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from attempt_engine.core.config import settings


class TokenDecodeError(Exception):
    pass


def create_access_token(subject: str, *, name: str | None = None, roles: list[str] | None = None) -> str:
    data: dict[str, Any] = {
        'sub': subject,
        'token_type': 'access',
        'name': name,
        'roles': list(roles or []),
        'exp': datetime.now(UTC) + timedelta(minutes=30),
    }
    return jwt.encode(data, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any]:
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as exc:
        raise TokenDecodeError('Invalid access token') from exc

    if payload.get('token_type') != 'access':
        raise TokenDecodeError('Unexpected token type for access token')
    return payload
