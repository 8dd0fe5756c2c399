"""Integration tests for registration, login, logout, refresh and OTP verification."""

from unittest.mock import patch

from account_api import crud
from account_api.core import security
from account_api.models import OTP, User

from conftest import PASSWORD, registration_payload


def test_register_success(client, db, mailer):
    response = client.post("/register", json=registration_payload())

    assert response.status_code == 201
    data = response.json()
    assert set(data) == {"accessToken", "refreshToken", "userId", "email"}
    assert data["email"] == "a@x.com"
    assert security.verify_access_token(data["accessToken"]) == data["userId"]
    assert security.verify_refresh_token(data["refreshToken"]) == data["userId"]

    user = db.get(User, data["userId"])
    assert user.is_verified is False
    assert user.password != PASSWORD
    assert user.image.startswith("https://api.dicebear.com/5.x/initials/svg?seed=Alice")

    otp = db.query(OTP).filter_by(email="a@x.com").one()
    assert len(otp.otp) == 6 and otp.otp.isdigit()
    mailer["auth"].assert_called_once_with("a@x.com", otp.otp, "alice", "registration")


def test_register_sets_session_cookies(client):
    response = client.post("/register", json=registration_payload())

    cookies = response.headers.get_list("set-cookie")
    access = next(c for c in cookies if c.startswith("AccessToken="))
    refresh = next(c for c in cookies if c.startswith("RefreshToken="))
    assert "Max-Age=1200" in access
    assert "Max-Age=2592000" in refresh
    for cookie in (access, refresh):
        assert "Secure" in cookie
        assert "SameSite=strict" in cookie


def test_register_duplicate_email(client):
    client.post("/register", json=registration_payload())
    response = client.post("/register", json=registration_payload(username="other", email="A@x.com"))

    assert response.status_code == 409
    assert response.json() == {"error": "User already exists. Try signing up with a different email."}


def test_register_duplicate_username(client):
    client.post("/register", json=registration_payload())
    response = client.post("/register", json=registration_payload(email="b@x.com"))

    assert response.status_code == 409
    assert response.json() == {"error": "Username already taken"}


def test_register_validates_payload(client):
    assert client.post("/register", json=registration_payload(password="short")).status_code == 422
    assert client.post("/register", json=registration_payload(email="not-an-email")).status_code == 422
    assert client.post("/register", json=registration_payload(username="a")).status_code == 422

    payload = registration_payload()
    del payload["phoneNumber"]
    assert client.post("/register", json=payload).status_code == 422


def test_register_rejects_overlong_fields(client, db):
    assert client.post("/register", json=registration_payload(username="u" * 51)).status_code == 422
    assert client.post("/register", json=registration_payload(email="a" * 45 + "@x.com")).status_code == 422
    assert client.post("/register", json=registration_payload(username="u" * 50)).status_code == 201
    assert db.query(User).count() == 1


def test_register_rejects_password_over_72_bytes(client, db):
    # 40 characters but 80 bytes once encoded
    response = client.post("/register", json=registration_payload(password="\u00e9" * 40))

    assert response.status_code == 422
    assert db.query(User).count() == 0


def test_register_unexpected_failure_is_generic_500(unsafe_client):
    with patch.object(crud.UserRepository, "find_by_email", side_effect=RuntimeError("db down")):
        response = unsafe_client.post("/register", json=registration_payload())

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error. Please try again later."}


def test_login_success(client):
    registered = client.post("/register", json=registration_payload()).json()

    response = client.post("/login", json={"email": "a@x.com", "password": PASSWORD})

    assert response.status_code == 200
    data = response.json()
    assert data["userId"] == registered["userId"]
    assert security.verify_access_token(data["accessToken"]) == registered["userId"]


def test_login_unknown_user(client):
    response = client.post("/login", json={"email": "nobody@x.com", "password": PASSWORD})

    assert response.status_code == 404
    assert response.json() == {"error": "User not found"}


def test_login_wrong_password(client):
    client.post("/register", json=registration_payload())

    response = client.post("/login", json={"email": "a@x.com", "password": "wrong-password"})

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid credentials"}


def test_login_with_overlong_password(client):
    client.post("/register", json=registration_payload())

    response = client.post("/login", json={"email": "a@x.com", "password": "x" * 100})

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid credentials"}


def test_logout_clears_cookies(client):
    response = client.post("/logout")

    assert response.status_code == 200
    assert response.json() == {"message": "user logged out successfully"}
    cookies = response.headers.get_list("set-cookie")
    for name in ("AccessToken", "RefreshToken"):
        cookie = next(c for c in cookies if c.startswith(f"{name}="))
        assert "1970" in cookie
        assert "HttpOnly" in cookie


def test_refresh_rotates_tokens(client):
    registered = client.post("/register", json=registration_payload()).json()

    response = client.post("/refresh")

    assert response.status_code == 200
    data = response.json()
    assert set(data) == {"AccessToken", "refreshToken"}
    assert security.verify_access_token(data["AccessToken"]) == registered["userId"]
    assert security.verify_refresh_token(data["refreshToken"]) == registered["userId"]
    cookies = response.headers.get_list("set-cookie")
    assert all("HttpOnly" in c for c in cookies)


def test_refresh_without_cookie(client):
    response = client.post("/refresh")

    assert response.status_code == 401
    assert response.json() == {"error": "Refresh token missing"}


def test_refresh_with_invalid_token(client):
    client.cookies.set("RefreshToken", "garbage")

    response = client.post("/refresh")

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid refresh token"}


def test_refresh_with_expired_token(client):
    from datetime import timedelta

    client.cookies.set("RefreshToken", security.create_refresh_token("user-1", expires_delta=timedelta(seconds=-5)))

    response = client.post("/refresh")

    assert response.status_code == 401
    assert response.json() == {"error": "Refresh token expired"}


def test_verify_otp(client, db):
    client.post("/register", json=registration_payload())
    otp = db.query(OTP).filter_by(email="a@x.com").one().otp

    wrong = "000000" if otp != "000000" else "111111"
    assert client.post("/verify-otp", json={"email": "a@x.com", "otp": wrong}).status_code == 400

    response = client.post("/verify-otp", json={"email": "a@x.com", "otp": otp})

    assert response.status_code == 200
    db.expire_all()
    assert db.query(User).filter_by(email="a@x.com").one().is_verified is True

    again = client.post("/verify-otp", json={"email": "a@x.com", "otp": otp})
    assert again.json() == {"message": "Account already verified"}


def test_verify_otp_unknown_user(client):
    response = client.post("/verify-otp", json={"email": "nobody@x.com", "otp": "123456"})

    assert response.status_code == 404


def test_resend_otp(client, db, verified_user, mailer):
    response = client.post("/resend-otp", json={"email": "v@x.com"})

    assert response.status_code == 200
    otp = db.query(OTP).filter_by(email="v@x.com").one().otp
    mailer["auth"].assert_called_once_with("v@x.com", otp, "verified", "otp")


def test_scenario_register_login_refresh_info(client):
    registered = client.post("/register", json=registration_payload())
    assert registered.status_code == 201
    user_id = registered.json()["userId"]
    token = registered.json()["accessToken"]
    assert security.verify_access_token(token) == user_id

    assert client.post("/login", json={"email": "a@x.com", "password": PASSWORD}).status_code == 200

    wrong = client.post("/login", json={"email": "a@x.com", "password": "not-the-password"})
    assert wrong.status_code == 401
    assert wrong.json() == {"error": "Invalid credentials"}

    client.cookies.clear()
    missing = client.post("/refresh")
    assert missing.status_code == 401
    assert missing.json() == {"error": "Refresh token missing"}

    info = client.get(f"/users/{user_id}", headers={"Authorization": f"Bearer {token}"})
    assert info.status_code == 401
    assert info.json() == {"error": "User is not verified"}
