"""
Policy store: durable parameter records for the password policy.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Callable, Mapping, Optional

from sqlalchemy import select
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from registrar.errors import StoreConflict, StoreUnavailable
from registrar.models.parameter import Parameter, ParameterType
from registrar.services.matcher import ParameterKey

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    """Get current UTC time."""
    return datetime.now(timezone.utc)


@asynccontextmanager
async def _translate_errors():
    """Map driver errors onto store errors."""
    try:
        yield
    except IntegrityError as e:
        logger.error(f"Parameter store constraint violated: {e.orig}")
        raise StoreConflict() from e
    except OperationalError as e:
        logger.warning(f"Parameter store unavailable: {e.orig}")
        raise StoreUnavailable() from e
    except DBAPIError as e:
        if e.connection_invalidated:
            logger.warning(f"Parameter store connection lost: {e.orig}")
            raise StoreUnavailable() from e
        raise


class PolicyStore:
    """Repository for parameter and parameter type records."""

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._session_factory = session_factory
        self._clock = clock
        self._locks: dict[str, asyncio.Lock] = {}
        self._revision = 0

    @property
    def revision(self) -> int:
        """Counter bumped after every upsert commit in this process."""
        return self._revision

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks.setdefault(key, asyncio.Lock())
        return lock

    @staticmethod
    def _select_active():
        return (
            select(Parameter)
            .join(ParameterType, Parameter.type_id == ParameterType.id)
            .where(Parameter.active.is_(True))
        )

    async def _get_active(self, session: AsyncSession, key: str) -> Optional[Parameter]:
        result = await session.execute(
            self._select_active()
            .where(ParameterType.key == key)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_active(self) -> list[Parameter]:
        """Get all active parameters."""
        async with _translate_errors():
            async with self._session_factory() as session:
                result = await session.execute(
                    self._select_active().order_by(ParameterType.key)
                )
                return list(result.scalars().all())

    async def find_by_key(self, key: str) -> Optional[Parameter]:
        """Get the active parameter for a key."""
        async with _translate_errors():
            async with self._session_factory() as session:
                return await self._get_active(session, key)

    async def find_type_by_id(self, type_id: int) -> Optional[ParameterType]:
        """Get a parameter type by its ID."""
        async with _translate_errors():
            async with self._session_factory() as session:
                result = await session.execute(
                    select(ParameterType).where(ParameterType.id == type_id)
                )
                return result.scalar_one_or_none()

    async def upsert(self, key: str, value: str) -> Parameter:
        """
        Update the active parameter for a key, or create it.

        The parameter type is created on first use of an unknown key. Upserts
        of the same key are serialized.

        Returns:
            The parameter as committed.
        """
        async with self._lock_for(key):
            async with _translate_errors():
                async with self._session_factory() as session:
                    now = self._clock()

                    result = await session.execute(
                        select(ParameterType).where(ParameterType.key == key)
                    )
                    parameter_type = result.scalar_one_or_none()
                    if parameter_type is None:
                        parameter_type = ParameterType(
                            key=key,
                            description=f"auto-generated for {key}",
                            active=True,
                            created_at=now,
                            updated_at=now,
                        )
                        session.add(parameter_type)
                        logger.info(f"Created parameter type {key}")

                    parameter = await self._get_active(session, key)
                    if parameter is not None:
                        parameter.value = value
                        parameter.updated_at = now
                    else:
                        parameter = Parameter(
                            parameter_type=parameter_type,
                            value=value,
                            active=True,
                            created_at=now,
                            updated_at=now,
                        )
                        session.add(parameter)

                    try:
                        await session.commit()
                    finally:
                        # Also bumped when the commit outcome is unknown, so
                        # the engine rereads the table rather than trusting
                        # its matcher
                        self._revision += 1

                    committed = await self._get_active(session, key)

        logger.info(f"Parameter {key} set to {value!r}")
        return committed

    async def init_defaults(self, seed: Mapping[str, str]) -> bool:
        """
        Seed the password policy parameters if none are stored.

        Returns True if defaults were written, False if a policy already exists.
        """
        existing = await self.list_active()
        if any(ParameterKey.from_key(p.key) is not None for p in existing):
            return False

        for key, value in seed.items():
            await self.upsert(key, value)

        logger.info("Initialized default password policy parameters")
        return True
