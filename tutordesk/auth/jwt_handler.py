from datetime import datetime, timedelta, timezone

import jwt

from tutordesk.core import config

REQUIRED_CLAIMS = ["exp", "iat", "sub"]


def create_access_token(subject: str, expires_minutes: int | None = None, extra_claims: dict | None = None) -> str:
    expire_minutes = expires_minutes or config.JWT_EXPIRES_MINUTES
    issued_at = datetime.now(timezone.utc)
    payload = dict(extra_claims or {})
    payload.update({"sub": subject, "iat": issued_at, "exp": issued_at + timedelta(minutes=expire_minutes)})
    return jwt.encode(payload, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    return jwt.decode(
        token,
        config.JWT_SECRET_KEY,
        algorithms=[config.JWT_ALGORITHM],
        leeway=config.JWT_LEEWAY_SECONDS,
        options={"require": REQUIRED_CLAIMS},
    )
