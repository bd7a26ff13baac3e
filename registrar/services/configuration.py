"""
Configuration service: admin operations on the password policy parameters.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Optional, TypeVar

from registrar.errors import NotFound, OperationTimeout, PolicyUnavailable, StoreUnavailable
from registrar.models.parameter import Parameter
from registrar.services.matcher import CompiledPolicy
from registrar.services.policy_engine import PolicyEngine
from registrar.services.policy_store import PolicyStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ParameterView:
    """Read-only view of a stored parameter."""

    id: int
    key: str
    type_id: int
    description: Optional[str]
    value: str
    active: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(cls, parameter: Parameter) -> "ParameterView":
        return cls(
            id=parameter.id,
            key=parameter.key,
            type_id=parameter.type_id,
            description=parameter.description,
            value=parameter.value,
            active=parameter.active,
            created_at=parameter.created_at,
            updated_at=parameter.updated_at,
        )


class ConfigurationService:
    """Reads and updates parameters, recompiling the password policy after each change."""

    def __init__(self, store: PolicyStore, engine: PolicyEngine, request_timeout: float = 5.0):
        self._store = store
        self._engine = engine
        self._request_timeout = request_timeout

    async def _within_deadline(self, operation: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(operation, timeout=self._request_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Configuration request exceeded {self._request_timeout}s deadline")
            raise OperationTimeout()

    @staticmethod
    async def _retry_once(operation: Callable[[], Awaitable[T]]) -> T:
        try:
            return await operation()
        except StoreUnavailable:
            logger.warning("Parameter store unavailable, retrying once")
            return await operation()

    async def get_all(self) -> list[ParameterView]:
        """Get all active parameters."""
        parameters = await self._within_deadline(self._retry_once(self._store.list_active))
        return [ParameterView.from_record(p) for p in parameters]

    async def get_by_key(self, key: str) -> ParameterView:
        """
        Get the active parameter for a key.

        Raises:
            NotFound: If no active parameter exists for the key.
        """
        parameter = await self._within_deadline(
            self._retry_once(lambda: self._store.find_by_key(key))
        )
        if parameter is None:
            raise NotFound(f"configuration not found for key: {key}")
        return ParameterView.from_record(parameter)

    async def upsert_by_type_id(self, type_id: int, value: str) -> ParameterView:
        """
        Set the value of the parameter whose type has the given ID.

        Raises:
            NotFound: If no parameter type has the ID.
            PolicyInconsistent: If the new value breaks the policy. The value
                stays stored.
        """
        return await self._within_deadline(self._upsert_by_type_id(type_id, value))

    async def upsert_by_key(self, key: str, value: str) -> ParameterView:
        """
        Set the value of a parameter, creating it if needed.

        Raises:
            PolicyInconsistent: If the new value breaks the policy. The value
                stays stored.
        """
        return await self._within_deadline(self._upsert(key, value))

    async def _upsert_by_type_id(self, type_id: int, value: str) -> ParameterView:
        parameter_type = await self._retry_once(lambda: self._store.find_type_by_id(type_id))
        if parameter_type is None:
            raise NotFound(f"configuration type not found with id: {type_id}")
        return await self._upsert(parameter_type.key, value)

    async def _upsert(self, key: str, value: str) -> ParameterView:
        parameter = await self._retry_once(lambda: self._store.upsert(key, value))

        try:
            await self._engine.recompile()
        except PolicyUnavailable:
            # Only unrelated keys are stored; nothing to compile yet
            logger.info(f"Stored {key} without a password policy in place")

        return ParameterView.from_record(parameter)

    async def describe_policy(self) -> tuple[str, CompiledPolicy]:
        """Get the pattern and resolved values of the current password policy."""
        policy = await self._within_deadline(self._engine.snapshot())
        return policy.pattern, policy
