"""Bearer tokens bound to a user id."""

from datetime import datetime, timedelta, timezone

import jwt

from consultations.core import config
from consultations.core.errors import Unauthenticated

TOKEN_TYPE = "access"


def create_access_token(subject: str | int, expires_minutes: int | None = None) -> str:
    lifetime = timedelta(minutes=config.JWT_EXPIRES_MINUTES if expires_minutes is None else expires_minutes)
    issued_at = datetime.now(timezone.utc)
    payload = {
        "sub": str(subject),
        "typ": TOKEN_TYPE,
        "iat": issued_at,
        "exp": issued_at + lifetime,
    }
    return jwt.encode(payload, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    return jwt.decode(
        token,
        config.JWT_SECRET_KEY,
        algorithms=[config.JWT_ALGORITHM],
        options={"require": ["sub", "exp"]},
    )


def user_id_from_token(token: str) -> int:
    try:
        payload = decode_access_token(token)
    except jwt.ExpiredSignatureError as exc:
        raise Unauthenticated("Token has expired.") from exc
    except jwt.InvalidTokenError as exc:
        raise Unauthenticated("Invalid token.") from exc

    subject = str(payload["sub"])
    if payload.get("typ", TOKEN_TYPE) != TOKEN_TYPE or not subject.isdigit():
        raise Unauthenticated("Invalid token subject.")
    return int(subject)
