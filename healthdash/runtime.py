"""Event loop that drives a model: deliver messages, run commands, re-render.

A ``Program`` works with anything exposing ``init()``, ``update(msg)`` and
``view()``: the dashboard model for the full-screen session, or a single
widget for the inline spinner and progress helpers. Messages are consumed one
at a time from a single queue on the calling thread; each command runs on its own
daemon thread and hands its result back through the same queue, so quitting
never waits for a load that is still in flight.
"""

from __future__ import annotations

import logging
import os
import queue
import select
import sys
import threading
from contextlib import ExitStack
from typing import Any, Callable, Dict, Optional, TypeVar

from rich.console import Console, RenderableType
from rich.errors import LiveError
from rich.live import Live
from rich.text import Text

from .app import DashboardModel
from .config import DashboardConfig
from .messages import (
    QUIT,
    Command,
    KeyInput,
    LoadFailed,
    Message,
    ProgressUpdate,
    QuitMsg,
    Resize,
    WidgetDone,
    WidgetError,
    flatten,
)
from .widgets import Progress, Spinner

IS_WINDOWS = sys.platform == "win32"

logger = logging.getLogger(__name__)

T = TypeVar("T")

ESCAPE_SEQUENCES = {
    "[A": "up",
    "[B": "down",
    "[C": "right",
    "[D": "left",
    "OA": "up",
    "OB": "down",
    "OC": "right",
    "OD": "left",
}
CONTROL_KEYS = {
    "\x03": "ctrl+c",
    "\r": "enter",
    "\n": "enter",
    "\t": "tab",
    "\x7f": "backspace",
    "\x08": "backspace",
    " ": "space",
}


class SessionError(Exception):
    """The terminal session could not be started or torn down."""


class KeyboardInput:
    """Non-blocking key reader; puts the terminal in cbreak mode while active."""

    def __init__(self, stream=None) -> None:
        self.stream = stream or sys.stdin
        self.fd: Optional[int] = None
        self.old_settings = None

    def __enter__(self) -> "KeyboardInput":
        if IS_WINDOWS:
            return self
        import termios
        import tty

        try:
            self.fd = self.stream.fileno()
            self.old_settings = termios.tcgetattr(self.fd)
            tty.setcbreak(self.fd)
        except (termios.error, OSError, ValueError) as exc:
            raise SessionError(f"unable to configure terminal input: {exc}") from exc
        return self

    def __exit__(self, *exc_info) -> None:
        if IS_WINDOWS or self.old_settings is None:
            return
        import termios

        try:
            termios.tcsetattr(self.fd, termios.TCSADRAIN, self.old_settings)
        except termios.error as exc:
            raise SessionError(f"unable to restore terminal settings: {exc}") from exc

    def read_key(self) -> Optional[str]:
        """Return the next key name, or ``None`` when nothing is waiting."""
        if IS_WINDOWS:
            return self._read_key_windows()
        if not self._ready(0.0):
            return None
        ch = self._read_char()
        if ch == "\x1b":
            if not self._ready(0.01):
                return "esc"
            sequence = self._read_char()
            if sequence in ("[", "O") and self._ready(0.01):
                sequence += self._read_char()
            return ESCAPE_SEQUENCES.get(sequence)
        return CONTROL_KEYS.get(ch, ch or None)

    def _ready(self, timeout: float) -> bool:
        try:
            return bool(select.select([self.fd], [], [], timeout)[0])
        except (InterruptedError, OSError):
            return False

    def _read_char(self) -> str:
        try:
            return os.read(self.fd, 1).decode("utf-8", errors="ignore")
        except OSError:
            return ""

    def _read_key_windows(self) -> Optional[str]:
        import msvcrt

        if not msvcrt.kbhit():
            return None
        ch = msvcrt.getwch()
        if ch in ("\x00", "\xe0"):
            return {"H": "up", "P": "down", "K": "left", "M": "right"}.get(msvcrt.getwch())
        return CONTROL_KEYS.get(ch, ch)


class Program:
    def __init__(
        self,
        model: Any,
        *,
        console: Optional[Console] = None,
        screen: bool = False,
        keyboard: Optional[KeyboardInput] = None,
        poll_interval: float = 0.05,
    ) -> None:
        self.model = model
        self.console = console or Console()
        self.screen = screen
        self.keyboard = keyboard
        self.poll_interval = poll_interval
        self._inbox: "queue.Queue[Message]" = queue.Queue()
        self._size = None

    def send(self, msg: Message) -> None:
        """Queue a message for the model. Safe to call from any thread."""
        self._inbox.put(msg)

    def run(self) -> Any:
        """Block until the model asks to quit; returns the final model."""
        try:
            with ExitStack() as stack:
                live = stack.enter_context(
                    Live(
                        self._renderable(),
                        console=self.console,
                        screen=self.screen,
                        auto_refresh=False,
                        redirect_stdout=False,
                        redirect_stderr=False,
                    )
                )
                if self.keyboard is not None:
                    stack.enter_context(self.keyboard)
                self._loop(live)
        except (LiveError, OSError) as exc:
            raise SessionError(str(exc)) from exc
        return self.model

    def _loop(self, live: Live) -> None:
        self._dispatch(self.model.init())
        live.update(self._renderable(), refresh=True)
        while True:
            try:
                self._poll_input()
                try:
                    msg = self._inbox.get(timeout=self.poll_interval)
                except queue.Empty:
                    continue
                if isinstance(msg, QuitMsg):
                    return
                self._dispatch(self.model.update(msg))
                live.update(self._renderable(), refresh=True)
            except KeyboardInterrupt:
                # without a key reader there is no model binding for ctrl+c
                if self.keyboard is None:
                    raise
                self.send(KeyInput("ctrl+c"))

    def _poll_input(self) -> None:
        size = (self.console.size.width, self.console.size.height)
        if size != self._size:
            self._size = size
            self.send(Resize(*size))
        if self.keyboard is None:
            return
        key = self.keyboard.read_key()
        while key is not None:
            self.send(KeyInput(key))
            key = self.keyboard.read_key()

    def _dispatch(self, command: Optional[Command]) -> None:
        for cmd in flatten(command):
            if cmd is QUIT:
                self.send(QuitMsg())
                continue
            thread = threading.Thread(target=self._run_command, args=(cmd,), name="healthdash-cmd", daemon=True)
            thread.start()

    def _run_command(self, cmd: Command) -> None:
        try:
            msg = cmd()
        except Exception as exc:
            logger.error("command raised an unexpected error", exc_info=exc)
            self.send(LoadFailed(exc))
            return
        if msg is not None:
            self.send(msg)

    def _renderable(self) -> RenderableType:
        view = self.model.view()
        if isinstance(view, str):
            return Text(view)
        return view


def run_session(config: Optional[DashboardConfig] = None, *, console: Optional[Console] = None) -> None:
    """Run the full-screen dashboard until the user quits.

    Raises ``SessionError`` when the terminal cannot be driven.
    """
    config = config or DashboardConfig()
    console = console or Console()
    if not console.is_terminal:
        raise SessionError("healthdash needs an interactive terminal")
    model = DashboardModel(config)
    program = Program(
        model,
        console=console,
        screen=True,
        keyboard=KeyboardInput(),
        poll_interval=config.poll_interval,
    )
    logger.info("starting dashboard session")
    program.run()
    logger.info("dashboard session ended")


def run_with_spinner(
    message: str, fn: Callable[[], T], *, console: Optional[Console] = None, interval: float = 0.1
) -> T:
    """Call ``fn`` on a worker thread while an inline spinner animates."""
    program = Program(Spinner(message, interval=interval), console=console)
    outcome = _run_in_background(program, fn)
    return _result(outcome)


def run_with_progress(
    message: str,
    total: int,
    fn: Callable[[Callable[[int], None]], T],
    *,
    console: Optional[Console] = None,
) -> T:
    """Call ``fn(report)`` on a worker thread; ``report(current)`` advances the bar."""
    program = Program(Progress(message, total), console=console)

    def report(current: int, *_: Any) -> None:
        program.send(ProgressUpdate(current))

    outcome = _run_in_background(program, lambda: fn(report))
    return _result(outcome)


def _run_in_background(program: Program, fn: Callable[[], Any]) -> Dict[str, Any]:
    outcome: Dict[str, Any] = {}

    def worker() -> None:
        try:
            outcome["value"] = fn()
        except Exception as exc:  # re-raised on the calling thread
            outcome["error"] = exc
            program.send(WidgetError(exc))
            return
        program.send(WidgetDone())

    thread = threading.Thread(target=worker, name="healthdash-worker", daemon=True)
    thread.start()
    program.run()
    thread.join()
    return outcome


def _result(outcome: Dict[str, Any]):
    if "error" in outcome:
        raise outcome["error"]
    return outcome["value"]
