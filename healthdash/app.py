"""The dashboard's application model.

``DashboardModel`` owns the active screen, the viewport size, the last load
error and one instance of every screen. The runtime calls ``update`` with one
message at a time; every state change happens there. Data is loaded by
commands that run on worker threads and report back only through messages.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Sequence

from rich.console import Group, RenderableType
from rich.rule import Rule
from rich.text import Text

from .config import DashboardConfig
from .diagnostics import NamedCheck, run_diagnostics
from .flake import FlakeError, FlakeOutput, fetch_flake_outputs
from .keys import DEFAULT_KEYMAP, KeyMap
from .messages import (
    QUIT,
    Command,
    FlakeReady,
    HealthReady,
    InfoReady,
    KeyInput,
    LoadFailed,
    Message,
    Resize,
    Screen,
    batch,
)
from .screens import DashboardScreen, FlakeScreen, HealthScreen, HelpScreen, InfoScreen
from .system_state import CollectionError, SystemSnapshot, fetch_info

logger = logging.getLogger(__name__)

# rows taken by the header and footer
HEADER_FOOTER_RESERVE = 4

NAV_SCREENS = (
    ("Dashboard", Screen.DASHBOARD),
    ("Health", Screen.HEALTH),
    ("Info", Screen.INFO),
    ("Flake", Screen.FLAKE),
)

InfoFetcher = Callable[[DashboardConfig], SystemSnapshot]
DiagnosticsRunner = Callable[[SystemSnapshot], Sequence[NamedCheck]]
FlakeFetcher = Callable[[str, float], Sequence[FlakeOutput]]

LOAD_ERRORS = (CollectionError, FlakeError, OSError)


class DashboardModel:
    def __init__(
        self,
        config: Optional[DashboardConfig] = None,
        *,
        fetch_info: InfoFetcher = fetch_info,
        run_diagnostics: DiagnosticsRunner = run_diagnostics,
        fetch_flake: FlakeFetcher = fetch_flake_outputs,
        keymap: KeyMap = DEFAULT_KEYMAP,
    ) -> None:
        self.config = config or DashboardConfig()
        self.keymap = keymap
        self._fetch_info = fetch_info
        self._run_diagnostics = run_diagnostics
        self._fetch_flake = fetch_flake

        self.screen = Screen.DASHBOARD
        self.width = 0
        self.height = 0
        self.error: Optional[BaseException] = None
        self.quitting = False

        self.dashboard = DashboardScreen()
        self.health = HealthScreen(keymap)
        self.info = InfoScreen()
        self.flake = FlakeScreen(keymap)
        self.help = HelpScreen(keymap)
        self._screens: Dict[Screen, object] = {
            Screen.DASHBOARD: self.dashboard,
            Screen.HEALTH: self.health,
            Screen.INFO: self.info,
            Screen.FLAKE: self.flake,
            Screen.HELP: self.help,
        }

    @property
    def active(self):
        return self._screens[self.screen]

    def init(self) -> Optional[Command]:
        """Warm the health and info screens before the user navigates to them."""
        return batch(self.load_health(), self.load_info())

    def update(self, msg: Message) -> Optional[Command]:
        if self.quitting:
            return None

        if isinstance(msg, KeyInput):
            handled, cmd = self._handle_key(msg.key)
            if handled:
                return cmd
        elif isinstance(msg, Resize):
            self._resize(msg.width, msg.height)
            return None
        elif isinstance(msg, HealthReady):
            self.health.set_data(msg.checks)
            return None
        elif isinstance(msg, InfoReady):
            self.info.set_data(msg.snapshot)
            return None
        elif isinstance(msg, FlakeReady):
            self.flake.set_data(msg.outputs)
            return None
        elif isinstance(msg, LoadFailed):
            logger.warning("load failed: %s", msg.error)
            self.error = msg.error
            if msg.source is not None:
                source = self._screens[msg.source]
                if hasattr(source, "loading"):
                    source.loading = False
            return None

        return self.active.update(msg)

    def _handle_key(self, key: str):
        keys = self.keymap
        if keys.quit.matches(key):
            self.quitting = True
            return True, QUIT
        if keys.help.matches(key):
            # the previous screen is not remembered
            self.screen = Screen.DASHBOARD if self.screen is Screen.HELP else Screen.HELP
            return True, None
        if keys.go_dashboard.matches(key):
            self.screen = Screen.DASHBOARD
            return True, None
        if keys.go_health.matches(key):
            self.screen = Screen.HEALTH
            return True, self.load_health()
        if keys.go_info.matches(key):
            self.screen = Screen.INFO
            return True, self.load_info()
        if keys.go_flake.matches(key):
            self.screen = Screen.FLAKE
            return True, None
        if keys.refresh.matches(key):
            return True, self.refresh()
        return False, None

    def _resize(self, width: int, height: int) -> None:
        self.width = max(width, 0)
        self.height = max(height, 0)
        inner_height = max(self.height - HEADER_FOOTER_RESERVE, 0)
        for screen in self._screens.values():
            screen.set_size(self.width, inner_height)

    def refresh(self) -> Optional[Command]:
        if self.screen is Screen.HEALTH:
            return self.load_health()
        if self.screen is Screen.INFO:
            return self.load_info()
        if self.screen is Screen.FLAKE:
            return self.load_flake()
        return None

    def load_health(self) -> Command:
        self.health.loading = True
        config = self.config
        fetch = self._fetch_info
        diagnose = self._run_diagnostics

        def _load() -> Message:
            try:
                snapshot = fetch(config)
                checks = diagnose(snapshot)
            except LOAD_ERRORS as exc:
                return LoadFailed(exc, Screen.HEALTH)
            except Exception as exc:
                logger.exception("health load failed unexpectedly")
                return LoadFailed(exc, Screen.HEALTH)
            return HealthReady(tuple(checks))

        return _load

    def load_info(self) -> Command:
        self.info.loading = True
        config = self.config
        fetch = self._fetch_info

        def _load() -> Message:
            try:
                snapshot = fetch(config)
            except LOAD_ERRORS as exc:
                return LoadFailed(exc, Screen.INFO)
            except Exception as exc:
                logger.exception("info load failed unexpectedly")
                return LoadFailed(exc, Screen.INFO)
            return InfoReady(snapshot)

        return _load

    def load_flake(self) -> Command:
        self.flake.loading = True
        path = self.config.flake_path
        timeout = self.config.nix_timeout
        fetch = self._fetch_flake

        def _load() -> Message:
            try:
                outputs = fetch(path, timeout)
            except LOAD_ERRORS as exc:
                return LoadFailed(exc, Screen.FLAKE)
            except Exception as exc:
                logger.exception("flake load failed unexpectedly")
                return LoadFailed(exc, Screen.FLAKE)
            return FlakeReady(tuple(outputs))

        return _load

    def view(self) -> RenderableType:
        if self.quitting:
            return ""
        return Group(self._header(), self.active.render(), self._footer())

    def _header(self) -> RenderableType:
        line = Text(" healthdash ", style="bold cyan")
        line.append("  ")
        for index, (name, screen) in enumerate(NAV_SCREENS):
            if index:
                line.append(" ")
            if screen is self.screen:
                line.append(f" {name} ", style="bold magenta on grey19")
            else:
                line.append(f" {name} ", style="grey50")
        return Group(line, Rule(style="grey35"))

    def _footer(self) -> RenderableType:
        if self.error is not None:
            status = Text(f"Error: {self.error}", style="red")
        else:
            status = Text(_footer_help(self.keymap), style="grey50")
        return Group(Rule(style="grey35"), status)


def _footer_help(keymap: KeyMap) -> str:
    parts: List[str] = [
        f"{keymap.go_dashboard.help_key}-{keymap.go_flake.help_key}: navigate",
        f"{keymap.refresh.help_key}: refresh",
        f"{keymap.help.help_key}: help",
        f"{keymap.quit.help_key}: quit",
    ]
    return " • ".join(parts)
