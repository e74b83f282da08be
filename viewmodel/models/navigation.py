"""Reference-date navigation and keyboard shortcuts for the calendar."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Callable

from dateutil.relativedelta import relativedelta

from viewmodel.models.date_grid import ViewMode


class Direction(str, Enum):
    PREV = "prev"
    NEXT = "next"


@dataclass(frozen=True, slots=True)
class KeyEvent:
    """A key press as reported by the document listener."""

    key: str
    ctrl: bool = False
    meta: bool = False
    shift: bool = False
    alt: bool = False

    @property
    def has_command_modifier(self) -> bool:
        return self.ctrl or self.meta


_MODE_KEYS: dict[str, ViewMode] = {
    "m": ViewMode.MONTH,
    "w": ViewMode.WEEK,
    "d": ViewMode.DAY,
    "l": ViewMode.LIST,
}

_STEPS: dict[ViewMode, relativedelta | timedelta] = {
    ViewMode.MONTH: relativedelta(months=1),
    ViewMode.WEEK: timedelta(days=7),
    ViewMode.DAY: timedelta(days=1),
}


class NavigationController:
    """State machine over the calendar's reference date and view mode."""

    def __init__(
        self,
        reference_date: date,
        view_mode: ViewMode = ViewMode.MONTH,
        *,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.reference_date = reference_date
        self.view_mode = view_mode
        self._today = today

    def navigate(self, direction: Direction | str) -> date:
        """Move the reference date one view-sized step; list mode stays put.

        Month steps keep the day of month, clamped to the end of shorter
        months (31 January moves to the last day of February).
        """

        step = _STEPS.get(self.view_mode)
        if step is None:
            return self.reference_date
        if Direction(direction) is Direction.PREV:
            self.reference_date = self.reference_date - step
        else:
            self.reference_date = self.reference_date + step
        return self.reference_date

    def set_view_mode(self, mode: ViewMode | str) -> ViewMode:
        self.view_mode = ViewMode.parse(mode)
        return self.view_mode

    def go_to_today(self) -> date:
        self.reference_date = self._today()
        return self.reference_date

    def handle_key(self, event: KeyEvent) -> bool:
        """Apply the shortcut bound to ``event``.

        Returns ``True`` when the key was consumed so the caller can suppress
        the browser default. Presses with Ctrl or Cmd held are never consumed.
        """

        if event.has_command_modifier:
            return False
        if event.key == "ArrowLeft":
            self.navigate(Direction.PREV)
            return True
        if event.key == "ArrowRight":
            self.navigate(Direction.NEXT)
            return True
        key = event.key.lower() if len(event.key) == 1 else event.key
        if key == "t":
            self.go_to_today()
            return True
        mode = _MODE_KEYS.get(key)
        if mode is not None:
            self.set_view_mode(mode)
            return True
        return False


class KeyboardBinding:
    """Routes document key presses to a controller while attached."""

    def __init__(self, controller: NavigationController) -> None:
        self._controller = controller
        self.attached = False

    def attach(self) -> None:
        self.attached = True

    def detach(self) -> None:
        self.attached = False

    def dispatch(self, event: KeyEvent) -> bool:
        if not self.attached:
            return False
        return self._controller.handle_key(event)
