from datetime import datetime, timedelta, timezone

import jwt

from backend.core import config

def create_access_token(
    subject: str,
    extra_claims: dict | None = None,
    expires_minutes: int | None = None,
) -> str:
    expire_minutes = expires_minutes or config.JWT_EXPIRES_MINUTES
    now = datetime.now(timezone.utc)
    payload = dict(extra_claims or {})
    payload.update({"sub": subject, "email": subject, "exp": now + timedelta(minutes=expire_minutes), "iat": now})
    return jwt.encode(payload, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def issue_token_for_claims(claims: dict) -> str:
    """Sign whatever the caller posted; the store is not consulted."""
    now = datetime.now(timezone.utc)
    payload = {key: value for key, value in claims.items() if key not in {"exp", "iat"}}
    payload["exp"] = now + timedelta(minutes=config.JWT_EXPIRES_MINUTES)
    payload["iat"] = now
    return jwt.encode(payload, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    return jwt.decode(token, config.JWT_SECRET_KEY, algorithms=[config.JWT_ALGORITHM])


def email_from_claims(payload: dict) -> str | None:
    email = payload.get("email") or payload.get("sub")
    if not isinstance(email, str) or not email.strip():
        return None
    return email.strip().lower()
