"""Message and command primitives shared by the dashboard and its widgets."""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Sequence, Tuple, Union


class Screen(Enum):
    DASHBOARD = "dashboard"
    HEALTH = "health"
    INFO = "info"
    FLAKE = "flake"
    HELP = "help"


@dataclass(frozen=True)
class KeyInput:
    key: str


@dataclass(frozen=True)
class Resize:
    width: int
    height: int


@dataclass(frozen=True)
class HealthReady:
    checks: Tuple[Any, ...]


@dataclass(frozen=True)
class InfoReady:
    snapshot: Any


@dataclass(frozen=True)
class FlakeReady:
    outputs: Tuple[Any, ...]


@dataclass(frozen=True)
class LoadFailed:
    error: BaseException
    source: Optional[Screen] = None


@dataclass(frozen=True)
class SpinnerTick:
    spinner_id: int


@dataclass(frozen=True)
class ProgressUpdate:
    current: int


@dataclass(frozen=True)
class WidgetDone:
    pass


@dataclass(frozen=True)
class WidgetError:
    error: BaseException


@dataclass(frozen=True)
class QuitMsg:
    pass


Message = Union[
    KeyInput,
    Resize,
    HealthReady,
    InfoReady,
    FlakeReady,
    LoadFailed,
    SpinnerTick,
    ProgressUpdate,
    WidgetDone,
    WidgetError,
    QuitMsg,
]

Command = Callable[[], Optional[Message]]


@dataclass(frozen=True)
class Batch:
    """Several commands the runtime starts independently of each other."""

    commands: Tuple[Command, ...]

    def __call__(self) -> None:
        raise TypeError("Batch commands are expanded by the runtime, not called")


def quit_command() -> QuitMsg:
    return QuitMsg()


QUIT: Command = quit_command


def batch(*commands: Optional[Command]) -> Optional[Command]:
    """Combine commands, dropping ``None``. Returns ``None`` when nothing is left."""
    kept = tuple(cmd for cmd in commands if cmd is not None)
    if not kept:
        return None
    if len(kept) == 1:
        return kept[0]
    return Batch(kept)


def flatten(command: Optional[Command]) -> Sequence[Command]:
    if command is None:
        return []
    if isinstance(command, Batch):
        flat = []
        for inner in command.commands:
            flat.extend(flatten(inner))
        return flat
    return [command]


def tick(interval: float, make_message: Callable[[], Message]) -> Command:
    """Return a command that sleeps for ``interval`` seconds before producing a message."""

    def _tick() -> Message:
        time.sleep(interval)
        return make_message()

    return _tick
