"""Observable chart model base class.

:class:`ChartModel` holds what every chart model shares regardless of how
its document is produced: the observer registry, the title, and the last
rectangle reported by the host surface. Subclasses provide the document
(:meth:`get_data`, :meth:`get_layout`) and call :meth:`fire_update` when it
changes.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())


@dataclass(frozen=True)
class ChartEvent:
    """Notification delivered to model observers.

    Parameters
    ----------
    type : str
        One of the ``ChartModel.EVENT_*`` constants.
    detail : Any
        ``EVENT_UPDATED`` carries the full trace list; ``EVENT_ERROR`` the
        exception that caused it.
    """

    type: str
    detail: Any = None


@dataclass(frozen=True)
class ChartRect:
    """Pixel rectangle reported by the rendering surface."""

    width: float = 0.0
    height: float = 0.0

    def __post_init__(self) -> None:
        """Reject negative sizes."""
        if self.width < 0 or self.height < 0:
            raise ValueError(f"ChartRect sizes must be >= 0, got {self.width}x{self.height}")


ChartListener = Callable[[ChartEvent], Any]


class ChartModel:
    """Base model: observers, title and reported dimensions."""

    EVENT_UPDATED = "ChartModel.EVENT_UPDATED"
    EVENT_ERROR = "ChartModel.EVENT_ERROR"
    EVENT_TITLE_CHANGED = "ChartModel.EVENT_TITLE_CHANGED"

    def __init__(self) -> None:
        self._listeners: List[ChartListener] = []
        self._rect: Optional[ChartRect] = None
        self.title = ""

    @property
    def listeners(self) -> tuple[ChartListener, ...]:
        return tuple(self._listeners)

    def get_data(self) -> List[Dict[str, Any]]:
        return []

    def get_layout(self) -> Dict[str, Any]:
        return {}

    def get_default_title(self) -> str:
        return ""

    def set_title(self, title: str) -> None:
        if title == self.title:
            return
        self.title = title
        self.fire_event(ChartEvent(self.EVENT_TITLE_CHANGED, title))

    def subscribe(self, callback: ChartListener) -> None:
        """Register ``callback``; registering twice is a no-op."""
        if callback not in self._listeners:
            self._listeners.append(callback)

    def unsubscribe(self, callback: ChartListener) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def set_dimensions(self, rect: ChartRect | tuple[float, float]) -> None:
        """Record the rectangle the host surface is drawing into."""
        if not isinstance(rect, ChartRect):
            width, height = rect
            rect = ChartRect(width=width, height=height)
        self._rect = rect

    def get_rect(self) -> Optional[ChartRect]:
        return self._rect

    def fire_event(self, event: ChartEvent) -> None:
        """Deliver ``event`` to every listener.

        A listener that raises is logged and does not stop delivery to the
        remaining listeners.
        """
        for callback in list(self._listeners):
            try:
                callback(event)
            except Exception:
                logger.exception(f"Chart listener {callback!r} failed on {event.type}")

    def fire_update(self, data: Any) -> None:
        self.fire_event(ChartEvent(self.EVENT_UPDATED, data))

    def fire_error(self, error: BaseException) -> None:
        self.fire_event(ChartEvent(self.EVENT_ERROR, error))


__all__ = ["ChartEvent", "ChartListener", "ChartModel", "ChartRect"]
