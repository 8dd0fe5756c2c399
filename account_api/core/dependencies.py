from typing import Optional
from uuid import UUID

from fastapi import Request, Depends
from sqlalchemy.orm import Session

from account_api import crud
from account_api.database import get_db
from account_api.deletion import DeletionScheduler
from .errors import AccountError, ErrorKind


async def get_token_from_cookie_or_header(request: Request) -> Optional[str]:
    token = request.cookies.get("AccessToken")
    if token:
        return token

    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header[len("Bearer "):]

    return None


def validate_user_id(user_id: str) -> str:
    try:
        UUID(user_id)
    except (ValueError, TypeError):
        raise AccountError(ErrorKind.INVALID_USER_ID)
    return user_id


def get_users(db: Session = Depends(get_db)) -> crud.UserRepository:
    return crud.UserRepository(db)


def get_otps(db: Session = Depends(get_db)) -> crud.OtpRepository:
    return crud.OtpRepository(db)


def get_deletion_scheduler(db: Session = Depends(get_db)) -> DeletionScheduler:
    return DeletionScheduler(db)
