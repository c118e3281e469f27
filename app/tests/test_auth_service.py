import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import jwt
import pytest

from app.models import User, VerificationCode
from app.services.auth_service import (
    AuthService,
    create_access_token,
    generate_verification_code,
    get_password_hash,
    is_valid_email,
    verify_password,
)
from app.services.errors import Unauthorized
from conftest import last_sent_code


def _register(client, email="learner@example.com"):
    assert client.post("/user/register", json={"email": email}).status_code == 200


def test_code_accepted_just_before_expiry(client, mailer, clock):
    _register(client)
    code = last_sent_code(mailer)
    clock.advance(minutes=9, seconds=59, microseconds=999999)
    response = client.post("/user/verify", json={"email": "learner@example.com", "code": code, "password": "secret1"})
    assert response.status_code == 200


def test_code_rejected_at_expiry(client, mailer, clock):
    _register(client)
    code = last_sent_code(mailer)
    clock.advance(minutes=10)
    response = client.post("/user/verify", json={"email": "learner@example.com", "code": code, "password": "secret1"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Verification code is invalid or has expired."


def test_code_expiry_is_ten_minutes_after_issue(client, db, clock):
    issued_at = clock()
    _register(client)
    row = db.query(VerificationCode).one()
    assert row.expires_at.replace(tzinfo=None) == (issued_at + timedelta(minutes=10)).replace(tzinfo=None)


def test_mail_receives_code_and_lifetime(client, mailer):
    _register(client)
    email, code, minutes = mailer.send_verification_code.await_args.args
    assert email == "learner@example.com"
    assert len(code) == 6 and code.isdigit()
    assert minutes == 10


def test_generate_verification_code_bounds():
    with patch("app.services.auth_service.secrets.randbelow", return_value=0):
        assert generate_verification_code() == "100000"
    with patch("app.services.auth_service.secrets.randbelow", return_value=899999):
        assert generate_verification_code() == "999999"


def test_email_pattern():
    assert is_valid_email("a@b.com")
    assert not is_valid_email("a@b")
    assert not is_valid_email("a b.com")


def test_password_helpers():
    hashed = get_password_hash("secret1")
    assert hashed.startswith("$2b$10$")
    assert verify_password("secret1", hashed)
    assert not verify_password("secret2", hashed)
    assert not verify_password("secret1", "")
    assert not verify_password("secret1", "not-a-hash")


def test_decode_token_errors(settings):
    service = AuthService(settings, mailer=MagicMock())
    valid = create_access_token({"id": 1, "email": "a@b.com"}, settings.secret_key, settings.algorithm, timedelta(minutes=5))
    assert service.decode_token(valid)["email"] == "a@b.com"

    expired = create_access_token({"id": 1}, settings.secret_key, settings.algorithm, timedelta(seconds=-1))
    with pytest.raises(Unauthorized) as excinfo:
        service.decode_token(expired)
    assert excinfo.value.detail == "Token expired"

    forged = create_access_token({"id": 1}, "other-secret", settings.algorithm, timedelta(minutes=5))
    with pytest.raises(Unauthorized):
        service.decode_token(forged)

    no_exp = jwt.encode({"id": 1}, settings.secret_key, algorithm=settings.algorithm)
    with pytest.raises(Unauthorized):
        service.decode_token(no_exp)


def test_login_token_lifetime_follows_settings(client, mailer, settings):
    _register(client)
    code = last_sent_code(mailer)
    client.post("/user/verify", json={"email": "learner@example.com", "code": code, "password": "secret1"})
    token = client.post("/user/login", json={"email": "learner@example.com", "password": "secret1"}).json()["token"]
    claims = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    assert claims["email"] == "learner@example.com"
    assert claims["exp"] - claims["iat"] == int(settings.token_lifetime.total_seconds())


def test_concurrent_registrations_leave_one_code(app):
    database = app.state.database
    database.create_all()
    sent_codes = []

    async def slow_send(email, code, minutes):
        sent_codes.append(code)
        await asyncio.sleep(0.01)

    service = AuthService(app.state.settings, MagicMock(send_verification_code=AsyncMock(side_effect=slow_send)))

    async def run():
        sessions = [database.session() for _ in range(3)]
        try:
            await asyncio.gather(*(service.register(s, "learner@example.com") for s in sessions))
        finally:
            for s in sessions:
                s.close()

    asyncio.run(run())

    db = database.session()
    try:
        assert db.query(User).count() == 1
        codes = db.query(VerificationCode).all()
        assert len(codes) == 1
        assert codes[0].code == sent_codes[-1]
    finally:
        db.close()
    assert service._registration_locks == {}
