"""
User registration and login.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Sequence

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from registrar.errors import EmailAlreadyRegistered, InvalidCredentials, InvalidPassword, NotFound
from registrar.models.user import Phone, User
from registrar.services.policy_engine import PolicyEngine
from registrar.services.tokens import TokenService
from registrar.utils.crypto import hash_password, verify_password

logger = logging.getLogger(__name__)


@dataclass
class PhoneData:
    number: str
    city_code: str
    country_code: str


class UserService:
    """Service for registering and authenticating users."""

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        engine: PolicyEngine,
        tokens: TokenService,
    ):
        self._session_factory = session_factory
        self._engine = engine
        self._tokens = tokens

    async def register(
        self,
        full_name: str,
        email: str,
        password: str,
        phones: Sequence[PhoneData] = (),
    ) -> User:
        """
        Register a new user.

        Raises:
            EmailAlreadyRegistered: If the email is taken.
            InvalidPassword: If the password does not satisfy the policy.
            PolicyUnavailable: If no password policy is stored.
        """
        async with self._session_factory() as session:
            result = await session.execute(select(User.id).where(User.email == email))
            if result.first() is not None:
                raise EmailAlreadyRegistered()

            if not await self._engine.validate(password):
                logger.info(f"Registration rejected for {email}: password does not meet policy")
                raise InvalidPassword()

            now = datetime.now(timezone.utc)
            user = User(
                full_name=full_name,
                email=email,
                password_hash=await asyncio.to_thread(hash_password, password),
                token=self._tokens.create_token(email),
                is_active=True,
                last_login=now,
                created_at=now,
                updated_at=now,
                phones=[
                    Phone(
                        number=phone.number,
                        city_code=phone.city_code,
                        country_code=phone.country_code,
                    )
                    for phone in phones
                ],
            )
            session.add(user)

            try:
                await session.commit()
            except IntegrityError as e:
                # Lost a race with a concurrent registration of the same email
                raise EmailAlreadyRegistered() from e

            logger.info(f"Registered user {user.id}")
            return user

    async def login(self, email: str, password: str) -> User:
        """
        Authenticate a user and issue a fresh token.

        Raises:
            NotFound: If no user has the email.
            InvalidCredentials: If the password is wrong.
        """
        async with self._session_factory() as session:
            result = await session.execute(select(User).where(User.email == email))
            user = result.scalar_one_or_none()
            if user is None:
                raise NotFound("user not found")

            if not await asyncio.to_thread(verify_password, password, user.password_hash):
                raise InvalidCredentials()

            user.last_login = datetime.now(timezone.utc)
            user.token = self._tokens.create_token(email)
            await session.commit()
            return user
