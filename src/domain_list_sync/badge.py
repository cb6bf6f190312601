"""
Badge presentation.

The badge shows ``!`` on orange while the remote API is throttled, otherwise
the number of unlisted hosts seen so far on red (nothing on green when
there are none).
"""

from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable

from .audit_logger import AuditLogger


THROTTLED_TEXT = "!"
THROTTLED_COLOR = "#FFA726"
UNMATCHED_COLOR = "#E57373"
CLEAR_COLOR = "#4CAF50"


@runtime_checkable
class BadgeSink(Protocol):
    """Where badge updates go (browser action, terminal, test double)."""

    def set_text(self, text: str) -> None:
        ...

    def set_color(self, color: str) -> None:
        ...


@dataclass(frozen=True)
class BadgeView:
    text: str
    color: str


class BadgePresenter:
    """Computes the badge from engine state and pushes it to a sink."""

    def __init__(self, sink: Optional[BadgeSink] = None) -> None:
        self._sink = sink
        self._last: Optional[BadgeView] = None

    @property
    def last(self) -> Optional[BadgeView]:
        return self._last

    @staticmethod
    def render(throttled: bool, unmatched_count: int) -> BadgeView:
        if throttled:
            return BadgeView(THROTTLED_TEXT, THROTTLED_COLOR)
        if unmatched_count > 0:
            return BadgeView(str(unmatched_count), UNMATCHED_COLOR)
        return BadgeView("", CLEAR_COLOR)

    def update(self, throttled: bool, unmatched_count: int) -> BadgeView:
        view = self.render(throttled, unmatched_count)
        self._last = view
        if self._sink is not None:
            self._sink.set_text(view.text)
            self._sink.set_color(view.color)
        return view


class RecordingBadge:
    """Keeps the most recent text and color."""

    def __init__(self) -> None:
        self.text = ""
        self.color = ""
        self.updates = 0

    def set_text(self, text: str) -> None:
        self.text = text
        self.updates += 1

    def set_color(self, color: str) -> None:
        self.color = color


class LoggingBadge:
    """Writes badge changes to the audit logger."""

    def __init__(self, logger: AuditLogger) -> None:
        self._logger = logger
        self._text: Optional[str] = None

    def set_text(self, text: str) -> None:
        if text != self._text:
            self._text = text
            self._logger.debug("Badge", "Badge text changed", {"text": text})

    def set_color(self, color: str) -> None:
        pass
