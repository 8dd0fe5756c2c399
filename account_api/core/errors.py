# account_api/core/errors.py
"""Closed set of account failures and the status/message each one maps to."""
import logging
from enum import Enum, auto

from fastapi import Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal server error. Please try again later."


class ErrorKind(Enum):
    USER_EXISTS = auto()
    USERNAME_TAKEN = auto()
    USER_NOT_FOUND = auto()
    INVALID_CREDENTIALS = auto()
    USER_NOT_VERIFIED = auto()
    PASSWORDS_DO_NOT_MATCH = auto()
    INVALID_OLD_PASSWORD = auto()
    INVALID_USER_ID = auto()
    NO_IMAGE_FILE = auto()
    ACCESS_TOKEN_MISSING = auto()
    ACCESS_TOKEN_EXPIRED = auto()
    INVALID_ACCESS_TOKEN = auto()
    DELETION_USER_NOT_FOUND = auto()
    EMAIL_NOT_VERIFIED = auto()
    OTP_MISMATCH = auto()
    REFRESH_TOKEN_MISSING = auto()
    INVALID_REFRESH_TOKEN = auto()
    REFRESH_TOKEN_EXPIRED = auto()
    INTERNAL = auto()


ERROR_TABLE: dict[ErrorKind, tuple[int, str]] = {
    ErrorKind.USER_EXISTS: (
        status.HTTP_409_CONFLICT,
        "User already exists. Try signing up with a different email.",
    ),
    ErrorKind.USERNAME_TAKEN: (status.HTTP_409_CONFLICT, "Username already taken"),
    ErrorKind.USER_NOT_FOUND: (status.HTTP_404_NOT_FOUND, "User not found"),
    ErrorKind.INVALID_CREDENTIALS: (status.HTTP_401_UNAUTHORIZED, "Invalid credentials"),
    ErrorKind.USER_NOT_VERIFIED: (status.HTTP_401_UNAUTHORIZED, "User is not verified"),
    ErrorKind.PASSWORDS_DO_NOT_MATCH: (status.HTTP_400_BAD_REQUEST, "New passwords do not match"),
    ErrorKind.INVALID_OLD_PASSWORD: (status.HTTP_401_UNAUTHORIZED, "Invalid old password"),
    ErrorKind.INVALID_USER_ID: (status.HTTP_400_BAD_REQUEST, "Invalid user ID format"),
    ErrorKind.NO_IMAGE_FILE: (status.HTTP_400_BAD_REQUEST, "No image file provided"),
    ErrorKind.ACCESS_TOKEN_MISSING: (status.HTTP_401_UNAUTHORIZED, "Access token missing"),
    ErrorKind.ACCESS_TOKEN_EXPIRED: (status.HTTP_401_UNAUTHORIZED, "Access token expired"),
    ErrorKind.INVALID_ACCESS_TOKEN: (status.HTTP_401_UNAUTHORIZED, "Invalid access token"),
    ErrorKind.DELETION_USER_NOT_FOUND: (status.HTTP_409_CONFLICT, "No such user found"),
    ErrorKind.EMAIL_NOT_VERIFIED: (status.HTTP_401_UNAUTHORIZED, "Verify Your Email"),
    ErrorKind.OTP_MISMATCH: (status.HTTP_400_BAD_REQUEST, "OTP doesn't match"),
    ErrorKind.REFRESH_TOKEN_MISSING: (status.HTTP_401_UNAUTHORIZED, "Refresh token missing"),
    ErrorKind.INVALID_REFRESH_TOKEN: (status.HTTP_401_UNAUTHORIZED, "Invalid refresh token"),
    ErrorKind.REFRESH_TOKEN_EXPIRED: (status.HTTP_401_UNAUTHORIZED, "Refresh token expired"),
    ErrorKind.INTERNAL: (status.HTTP_500_INTERNAL_SERVER_ERROR, INTERNAL_ERROR_MESSAGE),
}


class AccountError(Exception):
    def __init__(self, kind: ErrorKind):
        self.kind = kind
        self.status_code, self.message = ERROR_TABLE[kind]
        super().__init__(self.message)


async def account_error_handler(request: Request, exc: AccountError):
    logger.info("%s %s -> %s (%s)", request.method, request.url.path, exc.status_code, exc.kind.name)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": INTERNAL_ERROR_MESSAGE},
    )
