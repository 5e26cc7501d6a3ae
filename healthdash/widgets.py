"""Single-line status widgets: an animated spinner and a counting progress bar.

Both follow the same contract as the dashboard model: ``init()`` returns the
first command, ``update(msg)`` mutates state and returns an optional follow-up
command, ``view()`` renders. ``WidgetDone`` and ``WidgetError`` are terminal
and ask the driving program to stop.
"""

from __future__ import annotations

import itertools
from typing import Optional

from rich.progress_bar import ProgressBar
from rich.table import Table
from rich.text import Text

from .formatting import FAIL_GLYPH, PASS_GLYPH
from .messages import QUIT, Command, Message, ProgressUpdate, SpinnerTick, WidgetDone, WidgetError, tick

DOT_FRAMES = ("⣾", "⣽", "⣻", "⢿", "⡿", "⣟", "⣯", "⣷")

_spinner_ids = itertools.count(1)


class Spinner:
    def __init__(self, message: str, interval: float = 0.1) -> None:
        self.message = message
        self.interval = interval
        self.id = next(_spinner_ids)
        self.frame = 0
        self.done = False
        self.error: Optional[BaseException] = None

    @property
    def running(self) -> bool:
        return not self.done and self.error is None

    def init(self) -> Command:
        return self._next_tick()

    def update(self, msg: Message) -> Optional[Command]:
        if isinstance(msg, SpinnerTick):
            if msg.spinner_id != self.id or not self.running:
                return None
            self.frame = (self.frame + 1) % len(DOT_FRAMES)
            return self._next_tick()
        if isinstance(msg, WidgetDone):
            self.done = True
            return QUIT
        if isinstance(msg, WidgetError):
            self.error = msg.error
            self.done = True
            return QUIT
        return None

    def view(self) -> Text:
        if self.error is not None:
            return Text(f"{FAIL_GLYPH} {self.message}: {self.error}", style="red")
        if self.done:
            return Text(f"{PASS_GLYPH} {self.message}", style="green")
        line = Text(DOT_FRAMES[self.frame], style="magenta")
        line.append(f" {self.message}")
        return line

    def _next_tick(self) -> Command:
        spinner_id = self.id
        return tick(self.interval, lambda: SpinnerTick(spinner_id))


class Progress:
    def __init__(self, message: str, total: int, bar_width: int = 30) -> None:
        self.message = message
        self.requested_total = total
        # at least 1 so the fraction is always defined
        self.total = max(total, 1)
        self.bar_width = bar_width
        self.current = 0
        self.done = False
        self.error: Optional[BaseException] = None

    @property
    def no_work(self) -> bool:
        return self.requested_total <= 0

    @property
    def fraction(self) -> float:
        return min(self.current / self.total, 1.0)

    def init(self) -> Optional[Command]:
        return None

    def update(self, msg: Message) -> Optional[Command]:
        if isinstance(msg, (ProgressUpdate, WidgetDone)) and (self.done or self.error is not None):
            return None
        if isinstance(msg, ProgressUpdate):
            self.current = msg.current
            if not self.no_work and self.current >= self.total:
                self.done = True
                return QUIT
            return None
        if isinstance(msg, WidgetDone):
            self.done = True
            self.current = self.total
            return QUIT
        if isinstance(msg, WidgetError):
            self.error = msg.error
            self.done = True
            return QUIT
        return None

    def view(self):
        if self.error is not None:
            return Text(f"{FAIL_GLYPH} {self.message}: {self.error}", style="red")
        if self.done:
            return Text(f"{PASS_GLYPH} {self.message} ({self.total}/{self.total})", style="green")
        if self.no_work:
            return Text(f"{self.message} (no work to do)", style="yellow")

        row = Table.grid(padding=(0, 1))
        row.add_row(
            self.message,
            ProgressBar(total=1.0, completed=self.fraction, width=self.bar_width),
            f"{min(self.current, self.total)}/{self.total}",
        )
        return row
