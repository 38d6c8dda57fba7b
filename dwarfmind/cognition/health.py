"""Cached availability check for the inference service."""

from __future__ import annotations

from typing import Awaitable, Callable, Optional

from ..logging_utils import LOG_TAG_INFO, log_info
from .scheduler import Clock, SystemClock

ConnectionCheck = Callable[[], Awaitable[bool]]


class HealthProbe:
    """Wraps a connection check and remembers the answer for ``cache_seconds``.

    The engines consult :meth:`available` before every generation; the
    underlying HTTP probe only runs when the cached answer has expired.
    """

    def __init__(
        self,
        check: Optional[ConnectionCheck] = None,
        *,
        clock: Optional[Clock] = None,
        cache_seconds: float = 30.0,
    ) -> None:
        self._check = check
        self.clock: Clock = clock or SystemClock()
        self.cache_seconds = cache_seconds
        self._last_result: Optional[bool] = None
        self._checked_at: Optional[float] = None

    @classmethod
    def fixed(cls, available: bool) -> "HealthProbe":
        """Probe that always answers ``available`` without any I/O."""
        probe = cls(check=None)
        probe._last_result = available
        return probe

    @property
    def last_result(self) -> Optional[bool]:
        return self._last_result

    def _expired(self) -> bool:
        if self._check is None:
            return False
        if self._checked_at is None:
            return True
        return self.clock.now() - self._checked_at >= self.cache_seconds

    async def available(self) -> bool:
        if self._expired():
            await self.refresh()
        return bool(self._last_result)

    async def refresh(self) -> bool:
        if self._check is None:
            return bool(self._last_result)
        previous = self._last_result
        try:
            result = bool(await self._check())
        except Exception:
            result = False
        self._last_result = result
        self._checked_at = self.clock.now()
        if result != previous:
            state = "connected" if result else "unavailable, using fallbacks"
            log_info(f"  {LOG_TAG_INFO} [Health] Generation service {state}")
        return result

    def invalidate(self) -> None:
        self._checked_at = None


__all__ = ["ConnectionCheck", "HealthProbe"]
