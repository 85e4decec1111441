"""Cancel-and-replace request wrapper."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class LatestRequest:
    """Run at most one call at a time; a new call supersedes the running one.

    The superseded caller receives ``None`` instead of an exception, so a
    search box can fire on every keystroke and only the last answer lands.
    """

    def __init__(self) -> None:
        self._task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def cancel(self) -> None:
        if self.pending:
            self._task.cancel()
        self._task = None

    async def run(self, call: Callable[..., Awaitable[Any]], *args: Any, **kwargs: Any) -> Any:
        self.cancel()
        task = asyncio.ensure_future(call(*args, **kwargs))
        self._task = task
        try:
            return await task
        except asyncio.CancelledError:
            if task.cancelled() and self._task is not task:
                logger.debug("Request superseded by a newer call")
                return None
            raise
        finally:
            if self._task is task:
                self._task = None
