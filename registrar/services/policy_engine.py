"""
Password policy engine.

Holds the compiled Matcher and swaps it whenever the stored policy changes.
Validators read the current matcher once per call without locking. When the
matcher is stale, concurrent validators share a single recompile.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from registrar.errors import PolicyInconsistent, PolicyUnavailable, StoreUnavailable
from registrar.services.matcher import CompiledPolicy, Matcher, ParameterKey, compile_matcher
from registrar.services.policy_store import PolicyStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Compiled:
    matcher: Matcher
    revision: int


class PolicyEngine:
    """Service that validates passwords against the stored policy."""

    def __init__(self, store: PolicyStore):
        self._store = store
        self._current: Optional[_Compiled] = None
        # Store revision whose compile failed; the previous matcher stays in use
        self._failed_revision: Optional[int] = None
        # Store revision at which no policy was stored
        self._unavailable_revision: Optional[int] = None
        # Validators that find the matcher stale share one recompile
        self._refresh_lock = asyncio.Lock()

    @property
    def state(self) -> str:
        """One of "uninitialized", "ready" or "failing"."""
        if self._current is None:
            return "uninitialized"
        if self._failed_revision is not None and self._failed_revision >= self._current.revision:
            return "failing"
        return "ready"

    async def recompile(self) -> Matcher:
        """
        Rebuild the matcher from the store and swap it in.

        Raises:
            PolicyUnavailable: If the store holds no password policy parameters.
            PolicyInconsistent: If the stored parameters contradict each other.
                The previous matcher is kept.
        """
        revision = self._store.revision
        parameters = await self._store.list_active()
        values = {p.key: p.value for p in parameters}

        if not any(ParameterKey.from_key(key) is not None for key in values):
            self._unavailable_revision = revision
            logger.error("No password policy parameters are stored")
            raise PolicyUnavailable()

        try:
            matcher = compile_matcher(values)
        except PolicyInconsistent:
            self._failed_revision = revision
            if self._current is not None:
                logger.error(
                    f"Password policy recompile failed, keeping previous pattern "
                    f"{self._current.matcher.describe()}"
                )
            raise

        current = self._current
        # A slower recompile that read older rows must not replace a newer matcher
        if current is None or revision >= current.revision:
            self._current = _Compiled(matcher=matcher, revision=revision)
            self._failed_revision = None
            self._unavailable_revision = None
        return matcher

    def _cached(self) -> Optional[Matcher]:
        current = self._current
        revision = self._store.revision

        if current is not None and revision in (current.revision, self._failed_revision):
            return current.matcher

        if current is None and revision in (self._unavailable_revision, self._failed_revision):
            raise PolicyUnavailable()

        return None

    async def _matcher(self) -> Matcher:
        matcher = self._cached()
        if matcher is not None:
            return matcher

        async with self._refresh_lock:
            # Another validator may have recompiled while this one waited
            matcher = self._cached()
            if matcher is not None:
                return matcher
            return await self._refresh()

    async def _refresh(self) -> Matcher:
        current = self._current
        try:
            return await self.recompile()
        except PolicyInconsistent as e:
            if current is None:
                raise PolicyUnavailable() from e
            return current.matcher
        except StoreUnavailable:
            if current is None:
                raise
            logger.warning("Parameter store unavailable, validating with previous password policy")
            return current.matcher

    async def validate(self, password: Optional[str]) -> bool:
        """
        Check a password against the current policy.

        Raises:
            PolicyUnavailable: If no password policy is stored.
        """
        matcher = await self._matcher()
        is_valid = matcher.validate(password)
        if not is_valid:
            logger.debug("Password rejected by policy")
        return is_valid

    async def describe(self) -> str:
        """Get the regular expression rendition of the current policy."""
        return (await self._matcher()).describe()

    async def snapshot(self) -> CompiledPolicy:
        """Get the resolved values of the current policy."""
        return (await self._matcher()).policy
