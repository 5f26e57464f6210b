"""Session tokens (HS256 JWT carried in the session cookie) and bcrypt password hashes."""

from datetime import datetime, timedelta, timezone
from uuid import UUID

import bcrypt
import jwt

from backoffice.core.config import settings

ALGORITHM = "HS256"
# bcrypt only looks at the first 72 bytes; current releases reject longer input
BCRYPT_MAX_BYTES = 72


def create_session_token(employee_id: UUID, role: str, token_version: int) -> str:
    issued_at = datetime.now(timezone.utc)
    claims = {
        "sub": str(employee_id),
        "role": role,
        "token_version": token_version,
        "iat": issued_at,
        "exp": issued_at + timedelta(hours=settings.JWT_EXPIRES_HOURS),
    }
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=ALGORITHM)


def decode_session_token(token: str) -> dict:
    """
    Verify a session token against JWT_SECRET, then JWT_SECRET_PREVIOUS.

    Raises jwt.InvalidTokenError when no secret accepts it.
    """
    error: jwt.InvalidTokenError = jwt.InvalidSignatureError("No signing secret configured")
    for secret in settings.jwt_secrets:
        try:
            return jwt.decode(token, secret, algorithms=[ALGORITHM])
        except jwt.ExpiredSignatureError:
            raise
        except jwt.InvalidTokenError as e:
            error = e
    raise error


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt()).decode("ascii")


def verify_password(password: str, password_hash: str | None) -> bool:
    """False for employees without a login as well as for a wrong password."""
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("ascii"))
    except ValueError:
        # Stored value is not a bcrypt hash
        return False
