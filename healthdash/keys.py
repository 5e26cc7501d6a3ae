"""Keyboard bindings used by the dashboard and listed on the help screen."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple


@dataclass(frozen=True)
class KeyBinding:
    keys: Tuple[str, ...]
    help_key: str
    help_text: str

    def matches(self, key: str) -> bool:
        return key in self.keys


@dataclass(frozen=True)
class KeyMap:
    up: KeyBinding = field(default_factory=lambda: KeyBinding(("up", "k"), "↑/k", "Move up"))
    down: KeyBinding = field(default_factory=lambda: KeyBinding(("down", "j"), "↓/j", "Move down"))
    help: KeyBinding = field(default_factory=lambda: KeyBinding(("?",), "?", "Toggle this help screen"))
    quit: KeyBinding = field(default_factory=lambda: KeyBinding(("q", "ctrl+c"), "q", "Quit the application"))
    go_dashboard: KeyBinding = field(default_factory=lambda: KeyBinding(("1",), "1", "Dashboard - main overview"))
    go_health: KeyBinding = field(default_factory=lambda: KeyBinding(("2",), "2", "Health - system health checks"))
    go_info: KeyBinding = field(default_factory=lambda: KeyBinding(("3",), "3", "Info - system information"))
    go_flake: KeyBinding = field(default_factory=lambda: KeyBinding(("4",), "4", "Flake - flake output browser"))
    refresh: KeyBinding = field(default_factory=lambda: KeyBinding(("r",), "r", "Refresh current view"))

    def navigation(self) -> Tuple[KeyBinding, ...]:
        return (self.go_dashboard, self.go_health, self.go_info, self.go_flake)

    def movement(self) -> Tuple[KeyBinding, ...]:
        return (self.up, self.down)

    def actions(self) -> Tuple[KeyBinding, ...]:
        return (self.refresh, self.help, self.quit)


DEFAULT_KEYMAP = KeyMap()
