"""Auth service — registration, login and token re-issue.

Learn: The ordering rules here are the whole point of this module:
- register: validate → uniqueness pre-check → hash → insert + commit →
  only then issue a token. A token never exists for a user that
  failed to persist.
- login: an unknown email and a wrong password raise the exact same
  InvalidCredentials, and both pay for one bcrypt verification.

The UNIQUE constraint on users.email is the authority on uniqueness.
If two registrations race past the pre-check, the loser's commit fails
with IntegrityError, which we report as EmailTaken.
"""

import re

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from todo_api.auth.dependencies import CurrentIdentity
from todo_api.auth.jwt import TokenCodec
from todo_api.auth.password import (
    DEFAULT_ROUNDS,
    dummy_hash,
    hash_password,
    verify_password,
)
from todo_api.db.models import User
from todo_api.db.repositories import UserRepository
from todo_api.errors import (
    EmailTaken,
    InvalidCredentials,
    NotFound,
    Unauthenticated,
    ValidationFailed,
)

logger = structlog.get_logger()

# Pragmatic shape check: something@something.tld, no spaces.
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def normalize_email(email: str) -> str:
    return email.strip().lower()


class AuthService:
    """Business logic for accounts and credentials."""

    def __init__(
        self,
        db: AsyncSession,
        codec: TokenCodec,
        bcrypt_rounds: int = DEFAULT_ROUNDS,
        password_min_length: int = 6,
        password_max_length: int = 100,
    ):
        self.db = db
        self.users = UserRepository(db)
        self.codec = codec
        self.bcrypt_rounds = bcrypt_rounds
        self.password_min_length = password_min_length
        self.password_max_length = password_max_length

    # ─── Validation ──────────────────────────────────────

    def _validate(self, email: str, password: str) -> None:
        errors = {}
        if len(email) > 255 or not EMAIL_RE.match(email):
            errors["email"] = "must be a valid email address"
        if not (self.password_min_length <= len(password) <= self.password_max_length):
            errors["password"] = (
                f"must be between {self.password_min_length} and "
                f"{self.password_max_length} characters"
            )
        if errors:
            raise ValidationFailed(details=errors)

    # ─── Register ────────────────────────────────────────

    async def register(self, email: str, password: str) -> tuple[User, str]:
        """Create a new account and return it with a fresh token."""
        email = normalize_email(email)
        self._validate(email, password)

        if await self.users.exists_by_email(email):
            logger.info("auth.register_conflict", email=email)
            raise EmailTaken()

        password_hash = await run_in_threadpool(
            hash_password, password, self.bcrypt_rounds
        )

        try:
            user = await self.users.insert(User(email=email, password_hash=password_hash))
            await self.db.commit()
        except IntegrityError:
            # Lost a race with a concurrent registration for the same email.
            await self.db.rollback()
            logger.info("auth.register_conflict", email=email, late=True)
            raise EmailTaken() from None

        token = self.codec.issue(user.id, user.email)
        logger.info("auth.registered", user_id=user.id)
        return user, token

    # ─── Login ───────────────────────────────────────────

    async def login(self, email: str, password: str) -> tuple[User, str]:
        """Check credentials and return the user with a fresh token."""
        email = normalize_email(email)
        user = await self.users.find_by_email(email)

        if user is None:
            # Burn the same bcrypt time as a real check.
            await run_in_threadpool(
                verify_password, password, dummy_hash(self.bcrypt_rounds)
            )
            logger.warning("auth.login_failed", email=email)
            raise InvalidCredentials()

        if not await run_in_threadpool(verify_password, password, user.password_hash):
            logger.warning("auth.login_failed", email=email)
            raise InvalidCredentials()

        token = self.codec.issue(user.id, user.email)
        logger.info("auth.login", user_id=user.id)
        return user, token

    # ─── Profile / re-issue ──────────────────────────────

    async def get_user(self, user_id: int) -> User:
        user = await self.users.find_by_id(user_id)
        if user is None:
            raise NotFound("User")
        return user

    async def reissue(self, identity: CurrentIdentity) -> tuple[User, str]:
        """New token built from the *current* user row.

        Learn: This is how an email change reaches the token without the
        gate ever hitting the database — the client swaps its token here.
        """
        user = await self.users.find_by_id(identity.user_id)
        if user is None:
            raise Unauthenticated()
        token = self.codec.issue(user.id, user.email)
        logger.info("auth.token_reissued", user_id=user.id)
        return user, token
