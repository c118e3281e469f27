"""
Authentication service: email-code registration, verification and login.

Registration is serialized per email so that the delete-then-insert of
verification codes cannot interleave between concurrent requests.
"""
from collections.abc import Callable
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
import asyncio
import logging
import re
import secrets

import jwt
from passlib.context import CryptContext
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from app.config import Settings
from app.db.transactions import TransactionContext, atomic_transaction
from app.models import User, VerificationCode
from app.services.errors import BadGateway, Conflict, InternalError, InvalidInput, NotFound, Unauthorized

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"\S+@\S+\.\S+")
MIN_PASSWORD_LENGTH = 6
# Same message for unknown, unverified and wrong-password logins
LOGIN_FAILED_MESSAGE = "Incorrect email or password, or the account is not verified yet."

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=10)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # Unrecognized or malformed hash
        return False


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.search(email))


def generate_verification_code() -> str:
    return str(100000 + secrets.randbelow(900000))


def create_access_token(data: dict, secret_key: str, algorithm: str, expires_delta: timedelta) -> str:
    now = datetime.now(timezone.utc)
    to_encode = data.copy()
    to_encode["iat"] = now
    to_encode["exp"] = now + expires_delta
    return jwt.encode(to_encode, secret_key, algorithm=algorithm)


def decode_access_token(token: str, secret_key: str, algorithm: str) -> dict:
    return jwt.decode(token, secret_key, algorithms=[algorithm], options={"require": ["exp"]})


@atomic_transaction
def ensure_pending_user(db: Session, email: str) -> tuple[int, bool]:
    """
    Return (user_id, is_verified) for the email, creating an unverified
    user with an empty password hash when none exists.
    """
    user = db.query(User).filter_by(email=email).first()
    if user is None:
        logger.info(f"[Register] Creating new user entry for: {email}")
        user = User(email=email, password_hash="", is_verified=False)
        db.add(user)
        db.flush()
    elif not user.is_verified:
        logger.info(f"[Register] User exists but not verified, reusing entry for: {email}")
    return user.id, bool(user.is_verified)


@atomic_transaction
def replace_verification_code(db: Session, user_id: int, code: str, expires_at: datetime) -> None:
    db.query(VerificationCode).filter_by(user_id=user_id).delete(synchronize_session=False)
    db.add(VerificationCode(user_id=user_id, code=code, expires_at=expires_at))


@atomic_transaction
def delete_verification_code(db: Session, user_id: int, code: str) -> None:
    db.query(VerificationCode).filter_by(user_id=user_id, code=code).delete(synchronize_session=False)


class AuthService:
    """Handles registration, email verification and login."""

    def __init__(self, settings: Settings, mailer, clock: Callable[[], datetime] | None = None):
        self.settings = settings
        self.mailer = mailer
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._registration_locks: dict[str, list] = {}

    def _now(self) -> datetime:
        return self._clock()

    @asynccontextmanager
    async def _registration_lock(self, email: str):
        entry = self._registration_locks.get(email)
        if entry is None:
            entry = self._registration_locks[email] = [asyncio.Lock(), 0]
        entry[1] += 1
        try:
            async with entry[0]:
                yield
        finally:
            entry[1] -= 1
            if entry[1] == 0:
                del self._registration_locks[email]

    # ------------------------------------------------------------------ register
    async def register(self, db: Session, email: str | None) -> dict:
        logger.info(f"[Register Attempt] Email: {email}")
        if not email or not is_valid_email(email):
            logger.warning(f"[Register Failed] Invalid email format: {email}")
            raise InvalidInput("Invalid email format.")

        ttl = self.settings.verification_code_ttl
        async with self._registration_lock(email):
            try:
                user_id, is_verified = await run_in_threadpool(ensure_pending_user, db, email)
                if is_verified:
                    logger.warning(f"[Register Failed] Email already registered and verified: {email}")
                    raise Conflict("This email is already registered.")
                code = generate_verification_code()
                await run_in_threadpool(replace_verification_code, db, user_id, code, self._now() + ttl)
                logger.info(f"[Register] Verification code generated for: {email}")
            except SQLAlchemyError as e:
                logger.exception(f"[Register Failed] Database error during registration for {email}: {e}")
                raise InternalError("Internal server error, registration request failed.")

            try:
                await self.mailer.send_verification_code(email, code, int(ttl.total_seconds() // 60))
            except Exception as e:
                logger.error(f"[Register Failed] Failed to send verification email to {email}: {e}", exc_info=True)
                try:
                    await run_in_threadpool(delete_verification_code, db, user_id, code)
                except SQLAlchemyError:
                    logger.exception(f"[Register] Could not clean up verification code for: {email}")
                    raise InternalError("Internal server error, registration request failed.")
                raise BadGateway(
                    "Failed to send the verification email. Please try again later "
                    "or check that the email address is correct."
                )

        logger.info(f"[Register] Verification email sent successfully to: {email}")
        return {"status": "success", "message": "A verification code has been sent to your email."}

    # -------------------------------------------------------------------- verify
    def verify(self, db: Session, email: str | None, code: str | None, password: str | None) -> dict:
        logger.info(f"[Verify Attempt] Email: {email}")
        if not email or not code or not password:
            logger.warning(f"[Verify Failed] Missing fields: email={email}, code provided={bool(code)}, password provided={bool(password)}")
            raise InvalidInput("Email, verification code and password are required.")
        if len(password) < MIN_PASSWORD_LENGTH:
            logger.warning(f"[Verify Failed] Password too short for email: {email}")
            raise InvalidInput(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long.")

        try:
            user = db.query(User).filter_by(email=email).first()
            if not user:
                logger.warning(f"[Verify Failed] User not found: {email}")
                raise NotFound("User not found or wrong email.")
            if user.is_verified:
                logger.warning(f"[Verify Failed] User already verified: {email}")
                raise InvalidInput("This account is already verified, please log in.")

            match = (
                db.query(VerificationCode)
                .filter(
                    VerificationCode.user_id == user.id,
                    VerificationCode.code == code,
                    VerificationCode.expires_at > self._now(),
                )
                .first()
            )
            if not match:
                logger.warning(f"[Verify Failed] Invalid or expired code for email: {email}")
                raise InvalidInput("Verification code is invalid or has expired.")

            with TransactionContext(db) as tx:
                user.password_hash = get_password_hash(password)
                user.is_verified = True
                tx.session.query(VerificationCode).filter_by(user_id=user.id).delete(synchronize_session=False)
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception(f"[Verify Failed] Error during verification for {email}: {e}")
            raise InternalError("Internal server error, verification failed.")

        logger.info(f"[Verify Success] User verified successfully: {email}")
        return {"status": "success", "message": "Account registered and verified successfully."}

    # --------------------------------------------------------------------- login
    def login(self, db: Session, email: str | None, password: str | None) -> dict:
        logger.info(f"[Login Attempt] Email: {email}")
        if not email or not password:
            logger.warning(f"[Login Failed] Missing fields: email={email}, password provided={bool(password)}")
            raise InvalidInput("Email and password are required.")

        try:
            user = db.query(User).filter_by(email=email).first()
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception(f"[Login Failed] Error during login for {email}: {e}")
            raise InternalError("Internal server error, login failed.")

        if not user or not user.is_verified:
            logger.warning(f"[Login Failed] User not found or not verified: {email}")
            # Keep response time close to the wrong-password path
            pwd_context.dummy_verify()
            raise Unauthorized(LOGIN_FAILED_MESSAGE)
        if not verify_password(password, user.password_hash):
            logger.warning(f"[Login Failed] Incorrect password for email: {email}")
            raise Unauthorized(LOGIN_FAILED_MESSAGE)

        token = create_access_token(
            {"id": user.id, "email": user.email},
            self.settings.secret_key,
            self.settings.algorithm,
            self.settings.token_lifetime,
        )
        logger.info(f"[Login Success] User logged in successfully: {email}")
        return {
            "status": "success",
            "message": "Login successful",
            "token": token,
            "token_type": "bearer",
            "user": {"id": user.id, "email": user.email},
        }

    def get_user(self, db: Session, user_id) -> User:
        """Resolve the user behind a token's claims."""
        if not isinstance(user_id, int):
            raise Unauthorized("Invalid token")
        try:
            user = db.get(User, user_id)
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception(f"[Account] Failed to load user_id={user_id}: {e}")
            raise InternalError()
        if user is None:
            logger.warning(f"[Account] Token refers to a missing user: user_id={user_id}")
            raise Unauthorized("User no longer exists")
        return user

    def decode_token(self, token: str) -> dict:
        try:
            return decode_access_token(token, self.settings.secret_key, self.settings.algorithm)
        except jwt.ExpiredSignatureError:
            raise Unauthorized("Token expired")
        except jwt.InvalidTokenError:
            raise Unauthorized("Invalid token")
