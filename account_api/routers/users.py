import base64
import logging
from typing import Optional

from fastapi import APIRouter, Depends, BackgroundTasks, File, UploadFile

from .. import crud, schemas
from ..core import security
from ..core.dependencies import (
    get_deletion_scheduler,
    get_otps,
    get_token_from_cookie_or_header,
    get_users,
    validate_user_id,
)
from ..core.errors import AccountError, ErrorKind
from ..deletion import DeletionScheduler
from ..utils import send_mailer

logger = logging.getLogger(__name__)

router = APIRouter()


def get_verified_user(users: crud.UserRepository, user_id: str):
    user = users.find_by_id(user_id)
    if not user:
        raise AccountError(ErrorKind.USER_NOT_FOUND)
    if not user.is_verified:
        raise AccountError(ErrorKind.USER_NOT_VERIFIED)
    return user


@router.patch("/users/{user_id}/password", response_model=schemas.Message)
def update_password(
        user_id: str,
        data: schemas.UpdatePassword,
        users: crud.UserRepository = Depends(get_users)
):
    user = get_verified_user(users, user_id)

    if data.new_password != data.confirm_new_password:
        raise AccountError(ErrorKind.PASSWORDS_DO_NOT_MATCH)
    if not security.verify_password(data.old_password, user.password):
        raise AccountError(ErrorKind.INVALID_OLD_PASSWORD)

    users.update(user, password=security.get_password_hash(data.new_password))
    logger.info("Password changed for user: %s", user.id)
    return {"message": "Password updated successfully"}


@router.patch("/users/{user_id}/image", response_model=schemas.Message)
def update_image(
        user_id: str,
        file: Optional[UploadFile] = File(None),
        users: crud.UserRepository = Depends(get_users)
):
    validate_user_id(user_id)
    user = get_verified_user(users, user_id)

    if file is None:
        raise AccountError(ErrorKind.NO_IMAGE_FILE)

    image = base64.b64encode(file.file.read()).decode("ascii")
    users.update(user, image=image)
    return {"message": "Image updated successfully"}


@router.get("/users/{user_id}", response_model=schemas.UserInfo)
def user_info(
        user_id: str,
        token: Optional[str] = Depends(get_token_from_cookie_or_header),
        users: crud.UserRepository = Depends(get_users)
):
    validate_user_id(user_id)
    if security.verify_access_token(token) != user_id:
        raise AccountError(ErrorKind.INVALID_ACCESS_TOKEN)

    user = get_verified_user(users, user_id)
    return schemas.UserInfo(data=schemas.User.model_validate(user))


@router.delete("/users/{user_id}", response_model=schemas.Message)
def delete_user(
        user_id: str,
        data: schemas.DeleteAccount,
        background_tasks: BackgroundTasks,
        users: crud.UserRepository = Depends(get_users),
        otps: crud.OtpRepository = Depends(get_otps),
        scheduler: DeletionScheduler = Depends(get_deletion_scheduler)
):
    user = users.find_by_id(user_id)
    if not user:
        raise AccountError(ErrorKind.DELETION_USER_NOT_FOUND)
    if not user.is_verified:
        raise AccountError(ErrorKind.EMAIL_NOT_VERIFIED)

    # the code must have been issued to this account's own address
    if data.email.strip().lower() != user.email or not otps.find_match(user.email, data.otp):
        raise AccountError(ErrorKind.OTP_MISMATCH)

    users.update(user, marked_for_deletion=True)
    scheduler.schedule(user)
    background_tasks.add_task(send_mailer, user.email, data.otp, user.username, "accountDeleted")
    return {"message": "User Deleted Successfully"}
