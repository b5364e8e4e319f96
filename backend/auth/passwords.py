"""Password hashing helpers."""
import secrets

from passlib.context import CryptContext


pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def _truncate_for_bcrypt(password: str) -> str:
    """Truncate to bcrypt's 72-byte limit without splitting a UTF-8 sequence."""
    return password.encode("utf-8")[:72].decode("utf-8", "ignore")


def hash_password(password: str) -> str:
    return pwd_context.hash(_truncate_for_bcrypt(password))


def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not hashed_password:
        return False
    return pwd_context.verify(_truncate_for_bcrypt(plain_password), hashed_password)


def generate_random_password() -> str:
    # Social accounts never sign in with it.
    return secrets.token_urlsafe(24)
