"""Latest-wins coalescing of bursty callbacks."""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, Callable, Optional, Tuple

logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())


class CoalescingScheduler:
    """Run ``callback`` at most once per interval with the latest arguments.

    Calls arriving while a run is scheduled replace the pending arguments
    instead of queueing. The first call schedules a run ``every_ms`` later;
    calls made after that run schedule the next one.

    Parameters
    ----------
    callback:
        Callable to execute.
    every_ms:
        Minimum spacing between runs, in milliseconds.
    """

    def __init__(self, callback: Callable[..., Any], *, every_ms: int) -> None:
        if every_ms <= 0:
            raise ValueError("every_ms must be > 0")
        self._callback = callback
        self._delay_s = every_ms / 1000.0
        self._pending: Optional[Tuple[Tuple[Any, ...], dict[str, Any]]] = None
        self._lock = threading.Lock()
        self._timer: Optional[Any] = None

    @property
    def is_scheduled(self) -> bool:
        return self._timer is not None

    def __call__(self, *args: Any, **kwargs: Any) -> None:
        with self._lock:
            self._pending = (args, dict(kwargs))
            if self._timer is None:
                self._schedule_locked()

    def _schedule_locked(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            timer = threading.Timer(self._delay_s, self._on_tick)
            timer.daemon = True
            self._timer = timer
            timer.start()
            return

        self._timer = loop.call_later(self._delay_s, self._on_tick)

    def cancel(self) -> None:
        """Drop the pending call and cancel its timer."""
        with self._lock:
            timer, self._timer = self._timer, None
            self._pending = None
        if timer is not None:
            timer.cancel()

    def _on_tick(self) -> None:
        with self._lock:
            self._timer = None
            pending, self._pending = self._pending, None
        if pending is None:
            return

        args, kwargs = pending
        try:
            self._callback(*args, **kwargs)
        except Exception:
            logger.exception("CoalescingScheduler callback failed")


__all__ = ["CoalescingScheduler"]
