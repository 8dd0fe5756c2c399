import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, BackgroundTasks, Request, Response, status

from .. import crud, schemas
from ..core import security
from ..core.config import settings
from ..core.dependencies import get_otps, get_users
from ..core.errors import AccountError, ErrorKind
from ..utils import generate_otp, initials_avatar_url, send_mailer

logger = logging.getLogger(__name__)

router = APIRouter()

ACCESS_COOKIE = "AccessToken"
REFRESH_COOKIE = "RefreshToken"
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def set_auth_cookies(response: Response, access_token: str, refresh_token: str, httponly: bool = False):
    response.set_cookie(
        key=ACCESS_COOKIE,
        value=access_token,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        httponly=httponly,
        samesite="strict",
        secure=settings.COOKIE_SECURE
    )
    response.set_cookie(
        key=REFRESH_COOKIE,
        value=refresh_token,
        max_age=settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60,
        httponly=httponly,
        samesite="strict",
        secure=settings.COOKIE_SECURE
    )


def clear_auth_cookies(response: Response):
    for key in (ACCESS_COOKIE, REFRESH_COOKIE):
        response.set_cookie(key=key, value="", expires=EPOCH, httponly=True)


def issue_tokens(response: Response, user) -> schemas.Token:
    access_token = security.create_access_token(user.id)
    refresh_token = security.create_refresh_token(user.id)
    set_auth_cookies(response, access_token, refresh_token)
    return schemas.Token(
        access_token=access_token,
        refresh_token=refresh_token,
        user_id=user.id,
        email=user.email
    )


@router.post("/register", response_model=schemas.Token, status_code=status.HTTP_201_CREATED)
def register(
        user_in: schemas.UserCreate,
        response: Response,
        background_tasks: BackgroundTasks,
        users: crud.UserRepository = Depends(get_users),
        otps: crud.OtpRepository = Depends(get_otps)
):
    if users.find_by_email(user_in.email):
        raise AccountError(ErrorKind.USER_EXISTS)
    if users.find_by_username(user_in.username):
        raise AccountError(ErrorKind.USERNAME_TAKEN)

    otp = generate_otp()
    user = users.insert(
        username=user_in.username,
        first_name=user_in.first_name,
        last_name=user_in.last_name,
        phone_number=user_in.phone_number,
        email=user_in.email,
        password=security.get_password_hash(user_in.password),
        image=initials_avatar_url(user_in.first_name, user_in.last_name),
        is_verified=False
    )
    otps.create(user.email, otp)

    background_tasks.add_task(send_mailer, user.email, otp, user.username, "registration")
    logger.info("User registered (pending verification): %s", user.id)
    return issue_tokens(response, user)


@router.post("/login", response_model=schemas.Token)
def login(
        credentials: schemas.UserLogin,
        response: Response,
        users: crud.UserRepository = Depends(get_users)
):
    user = users.find_by_email(credentials.email)
    if not user:
        raise AccountError(ErrorKind.USER_NOT_FOUND)
    if not security.verify_password(credentials.password, user.password):
        raise AccountError(ErrorKind.INVALID_CREDENTIALS)

    logger.info("User logged in: %s", user.id)
    return issue_tokens(response, user)


@router.post("/logout", response_model=schemas.Message)
def logout(response: Response):
    clear_auth_cookies(response)
    return {"message": "user logged out successfully"}


@router.post("/refresh", response_model=schemas.RefreshedToken)
def refresh(request: Request, response: Response):
    user_id = security.verify_refresh_token(request.cookies.get(REFRESH_COOKIE))

    access_token = security.create_access_token(user_id)
    refresh_token = security.create_refresh_token(user_id)
    set_auth_cookies(response, access_token, refresh_token, httponly=True)
    return schemas.RefreshedToken(access_token=access_token, refresh_token=refresh_token)


@router.post("/verify-otp", response_model=schemas.Message)
def verify_otp(
        data: schemas.VerifyOTP,
        users: crud.UserRepository = Depends(get_users),
        otps: crud.OtpRepository = Depends(get_otps)
):
    user = users.find_by_email(data.email)
    if not user:
        raise AccountError(ErrorKind.USER_NOT_FOUND)
    if user.is_verified:
        return {"message": "Account already verified"}

    if not otps.find_match(user.email, data.otp):
        raise AccountError(ErrorKind.OTP_MISMATCH)

    users.update(user, is_verified=True)
    logger.info("Email verified for user: %s", user.id)
    return {"message": "Email verified successfully"}


@router.post("/resend-otp", response_model=schemas.Message)
def resend_otp(
        data: schemas.ResendOTP,
        background_tasks: BackgroundTasks,
        users: crud.UserRepository = Depends(get_users),
        otps: crud.OtpRepository = Depends(get_otps)
):
    user = users.find_by_email(data.email)
    if not user:
        raise AccountError(ErrorKind.USER_NOT_FOUND)

    otp = generate_otp()
    otps.create(user.email, otp)
    background_tasks.add_task(send_mailer, user.email, otp, user.username, "otp")
    return {"message": "Verification code sent successfully"}
