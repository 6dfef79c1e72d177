"""Authentication service for JWT session authentication."""

import logging
import secrets
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import VerifyMismatchError
from jwt.exceptions import PyJWTError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import settings
from app.core.errors import AuthError, ConflictError, ValidationError
from app.models.user import User
from app.schemas.auth import CurrentUser, LoginRequest
from app.schemas.user import RegisterRequest
from app.services.token_blacklist import is_token_revoked, revoke_token

logger = logging.getLogger(__name__)

# Argon2 password hasher with recommended parameters
# Memory: 64 MiB, Time: 3 iterations, Parallelism: 4
ph = PasswordHasher(
    time_cost=3,
    memory_cost=65536,
    parallelism=4,
    hash_len=32,
    salt_len=16,
)

# Verified against for unknown emails so both failure paths cost one hash check
_DUMMY_HASH: str | None = None

INVALID_CREDENTIALS_MESSAGE = "Wrong email or password!"


class TokenError(AuthError):
    """JWT token error."""

    pass


class TokenExpiredError(TokenError):
    """JWT token has expired."""

    default_message = "Token has expired"


class InvalidTokenError(TokenError):
    """JWT token is invalid."""

    default_message = "Invalid token"


def hash_password(password: str) -> str:
    """Hash a password using Argon2id."""
    return ph.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its hash using constant-time comparison."""
    try:
        ph.verify(password_hash, password)
        return True
    except VerifyMismatchError:
        return False


def _dummy_hash() -> str:
    global _DUMMY_HASH
    if _DUMMY_HASH is None:
        _DUMMY_HASH = hash_password(secrets.token_hex(16))
    return _DUMMY_HASH


def create_session_token(user: User) -> str:
    """Create a signed session token embedding the user's identity."""
    now = datetime.now(UTC)
    payload = {
        "sub": str(user.id),
        "email": user.email,
        "name": user.name,
        "iat": now,
        "exp": now + timedelta(hours=settings.session_ttl_hours),
        # Unique per issuance so a re-login never reproduces a revoked token
        "jti": secrets.token_hex(16),
    }
    token = jwt.encode(
        payload,
        settings.effective_jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return str(token)


def decode_token(token: str) -> dict[str, Any]:
    """Decode and validate a session token's signature and expiry."""
    try:
        payload = jwt.decode(
            token,
            settings.effective_jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "exp"]},
        )
        return payload
    except jwt.ExpiredSignatureError as e:
        raise TokenExpiredError() from e
    except PyJWTError as e:
        raise InvalidTokenError(f"Invalid token: {e}") from e


def is_well_formed_token(token: str) -> bool:
    """Cheap shape check for a compact JWT (three non-empty dot-separated segments)."""
    parts = token.split(".")
    return len(parts) == 3 and all(parts)


def current_user_from_payload(payload: dict[str, Any]) -> CurrentUser:
    try:
        return CurrentUser(
            user_id=UUID(str(payload["sub"])),
            email=payload.get("email", ""),
            name=payload.get("name", ""),
        )
    except (KeyError, ValueError) as e:
        raise InvalidTokenError("Token missing user identity") from e


class AuthService:
    """Service for registration, login, logout and request authorization."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_user_by_email(self, email: str) -> User | None:
        """Get user by email."""
        result = await self.session.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def get_user_by_id(self, user_id: UUID) -> User | None:
        """Get user by ID."""
        result = await self.session.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def register(self, data: RegisterRequest) -> User:
        """Create a new user account.

        Raises ConflictError if the email is already registered.
        """
        if await self.get_user_by_email(data.email) is not None:
            raise ConflictError("User already exists")

        user = User(
            name=data.name,
            email=data.email,
            password_hash=hash_password(data.password),
        )
        self.session.add(user)
        try:
            await self.session.commit()
        except IntegrityError as e:
            # Unique email constraint catches a registration racing this one
            await self.session.rollback()
            raise ConflictError("User already exists") from e
        await self.session.refresh(user)

        logger.info(f"Registered user: {user.email}", extra={"user_id": str(user.id)})
        return user

    async def has_active_session(self, token: str | None) -> bool:
        """True if ``token`` is a verifiable, unexpired, non-revoked session token."""
        if not token or not is_well_formed_token(token):
            return False
        try:
            decode_token(token)
        except TokenError:
            return False
        return not await is_token_revoked(self.session, token)

    async def login(self, data: LoginRequest, existing_token: str | None = None) -> tuple[User, str]:
        """Authenticate credentials and issue a session token.

        A caller still holding a live session token is refused with a 403
        ConflictError; a revoked, expired or unverifiable existing token is
        ignored. Unknown email and wrong password fail identically.
        """
        if await self.has_active_session(existing_token):
            raise ConflictError("User already logged in. Please logout first.", status_code=403)

        user = await self.get_user_by_email(data.email)

        if user is None:
            # Perform a dummy verification to prevent timing attacks
            verify_password(data.password, _dummy_hash())
            raise AuthError(INVALID_CREDENTIALS_MESSAGE)

        if not verify_password(data.password, user.password_hash):
            raise AuthError(INVALID_CREDENTIALS_MESSAGE)

        token = create_session_token(user)
        logger.info(f"User logged in: {user.email}", extra={"user_id": str(user.id)})
        return user, token

    async def logout(self, token: str | None) -> None:
        """Revoke a session token for the rest of its lifetime."""
        if not token:
            raise AuthError("Unauthorized request")
        await revoke_token(self.session, token)
        await self.session.commit()

    async def authorize(self, token: str | None) -> CurrentUser:
        """Validate a session token and return the identity it carries.

        Checks run in order: presence (403), shape (400), blacklist (401),
        signature and expiry (401).
        """
        if not token:
            raise AuthError("Logged out, please login!", status_code=403)

        if not is_well_formed_token(token):
            raise ValidationError("Invalid token format")

        if await is_token_revoked(self.session, token):
            raise AuthError("You are logged out, please login to continue")

        payload = decode_token(token)
        return current_user_from_payload(payload)
