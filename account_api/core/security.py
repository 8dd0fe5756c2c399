from __future__ import annotations
from datetime import datetime, timedelta, timezone
from jose import jwt, JWTError
from jose.exceptions import ExpiredSignatureError
from pwdlib import PasswordHash
from pwdlib.hashers.bcrypt import BcryptHasher
from .config import settings
from .errors import AccountError, ErrorKind

password_hash = PasswordHash((BcryptHasher(),))

# bcrypt only looks at the first 72 bytes and refuses anything longer
MAX_PASSWORD_BYTES = 72

# aud carries the user id; it is compared by hand rather than by jose's audience check
DECODE_OPTIONS = {"verify_aud": False}


def verify_password(plain_password, password):
    if len(plain_password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        return False
    return password_hash.verify(plain_password, password)


def get_password_hash(password):
    return password_hash.hash(password)


def _encode(user_id: str, key: str, expires_delta: timedelta) -> str:
    now = datetime.now(timezone.utc)
    to_encode = {"aud": str(user_id), "iat": now, "exp": now + expires_delta}
    return jwt.encode(to_encode, key, algorithm=settings.ALGORITHM)


def create_access_token(user_id: str, expires_delta: timedelta | None = None):
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return _encode(user_id, settings.SECRET_KEY, expires_delta)


def create_refresh_token(user_id: str, expires_delta: timedelta | None = None):
    if expires_delta is None:
        expires_delta = timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    return _encode(user_id, settings.REFRESH_SECRET_KEY, expires_delta)


def _decode_subject(token: str, key: str, expired: ErrorKind, invalid: ErrorKind) -> str:
    try:
        payload = jwt.decode(token, key, algorithms=[settings.ALGORITHM], options=DECODE_OPTIONS)
    except ExpiredSignatureError:
        raise AccountError(expired)
    except JWTError:
        raise AccountError(invalid)

    user_id = payload.get("aud")
    if not isinstance(user_id, str) or not user_id:
        raise AccountError(invalid)
    return user_id


def verify_access_token(token: str | None) -> str:
    """Return the user id an access token was issued for."""
    if not token:
        raise AccountError(ErrorKind.ACCESS_TOKEN_MISSING)
    return _decode_subject(
        token, settings.SECRET_KEY, ErrorKind.ACCESS_TOKEN_EXPIRED, ErrorKind.INVALID_ACCESS_TOKEN
    )


def verify_refresh_token(token: str | None) -> str:
    """Return the user id a refresh token was issued for."""
    if not token:
        raise AccountError(ErrorKind.REFRESH_TOKEN_MISSING)
    return _decode_subject(
        token, settings.REFRESH_SECRET_KEY, ErrorKind.REFRESH_TOKEN_EXPIRED, ErrorKind.INVALID_REFRESH_TOKEN
    )
