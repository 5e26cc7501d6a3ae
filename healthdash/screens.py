"""Screen state holders.

Screens never start background work. They hold their own size and payload,
react to the keys the dashboard does not handle itself, and render a rich
renderable from their current state.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from rich import box
from rich.console import Group, RenderableType
from rich.padding import Padding
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .diagnostics import NamedCheck
from .flake import FlakeOutput
from .formatting import disk_table, process_table, render_check_list, snapshot_table
from .keys import DEFAULT_KEYMAP, KeyBinding, KeyMap
from .messages import Command, KeyInput, Message
from .system_state import SystemSnapshot


class _Sized:
    def __init__(self) -> None:
        self.width = 0
        self.height = 0

    def set_size(self, width: int, height: int) -> None:
        self.width = width
        self.height = height

    def update(self, msg: Message) -> Optional[Command]:
        return None


class DashboardScreen(_Sized):
    def render(self) -> RenderableType:
        body = Text()
        body.append("Welcome to healthdash!\n", style="bold cyan")
        body.append(
            "\nBrowse cached system information and health checks.\n\n"
            "Use the keyboard shortcuts to navigate:\n\n"
            "  1 - Dashboard (current view)\n"
            "  2 - Health Checks\n"
            "  3 - System Info\n"
            "  4 - Flake Browser\n\n"
            "  r - Refresh current view\n"
            "  ? - Toggle help\n"
            "  q - Quit\n",
            style="grey85",
        )
        return Panel(body, box=box.ROUNDED, border_style="blue", padding=(1, 2))


class HealthScreen(_Sized):
    def __init__(self, keymap: KeyMap = DEFAULT_KEYMAP) -> None:
        super().__init__()
        self.keymap = keymap
        self.checks: List[NamedCheck] = []
        self.loading = True
        self.offset = 0

    def set_data(self, checks: Sequence[NamedCheck]) -> None:
        self.checks = list(checks)
        self.loading = False
        self.offset = min(self.offset, max(len(self.checks) - 1, 0))

    def update(self, msg: Message) -> Optional[Command]:
        if not isinstance(msg, KeyInput):
            return None
        if self.keymap.down.matches(msg.key):
            self.offset = min(self.offset + 1, max(len(self.checks) - 1, 0))
        elif self.keymap.up.matches(msg.key):
            self.offset = max(self.offset - 1, 0)
        return None

    def render(self) -> RenderableType:
        if self.loading and not self.checks:
            return Padding(Text("Loading health checks..."), 2)
        parts: List[RenderableType] = [render_check_list(self.checks[self.offset :], self.width)]
        if self.loading:
            parts.append(Text("Refreshing...", style="yellow"))
        return Group(*parts)


class InfoScreen(_Sized):
    def __init__(self) -> None:
        super().__init__()
        self.snapshot: Optional[SystemSnapshot] = None
        self.loading = True

    def set_data(self, snapshot: SystemSnapshot) -> None:
        self.snapshot = snapshot
        self.loading = False

    def render(self) -> RenderableType:
        if self.loading and self.snapshot is None:
            return Padding(Text("Loading system information..."), 2)
        if self.snapshot is None:
            return Padding(Text("No system information available. Press r to retry.", style="yellow"), 2)
        snapshot = self.snapshot
        parts: List[RenderableType] = [
            Text("System Information", style="bold cyan"),
            snapshot_table(snapshot),
            disk_table(snapshot.disk_usages),
        ]
        # process tables only when the viewport has room for them
        if self.height == 0 or self.height >= 30:
            parts.append(process_table("Top CPU", snapshot.top_cpu_processes))
            parts.append(process_table("Top memory", snapshot.top_memory_processes))
        if self.loading:
            parts.append(Text("Refreshing...", style="yellow"))
        return Padding(Group(*parts), (1, 2))


class FlakeScreen(_Sized):
    def __init__(self, keymap: KeyMap = DEFAULT_KEYMAP) -> None:
        super().__init__()
        self.keymap = keymap
        self.outputs: List[FlakeOutput] = []
        self.loading = False
        self.loaded = False
        self.selected = 0

    def set_data(self, outputs: Sequence[FlakeOutput]) -> None:
        self.outputs = list(outputs)
        self.loading = False
        self.loaded = True
        self.selected = min(self.selected, max(len(self.outputs) - 1, 0))

    def update(self, msg: Message) -> Optional[Command]:
        if not isinstance(msg, KeyInput) or not self.outputs:
            return None
        if self.keymap.down.matches(msg.key):
            self.selected = min(self.selected + 1, len(self.outputs) - 1)
        elif self.keymap.up.matches(msg.key):
            self.selected = max(self.selected - 1, 0)
        return None

    def render(self) -> RenderableType:
        title = Text("Flake Browser", style="bold cyan")
        if self.loading and not self.loaded:
            body: RenderableType = Text("Loading flake outputs...")
        elif not self.loaded:
            body = Text("Press r to list the outputs of the configured flake.", style="grey85")
        elif not self.outputs:
            body = Text("The flake has no outputs.", style="yellow")
        else:
            body = self._output_table()
        return Panel(Group(title, Text(""), body), box=box.ROUNDED, border_style="blue", padding=(1, 2))

    def _output_table(self) -> Table:
        table = Table(box=box.SIMPLE_HEAD, expand=True)
        table.add_column("Output")
        table.add_column("Type")
        table.add_column("Description")
        for index, output in enumerate(self.outputs):
            style = "bold magenta" if index == self.selected else None
            table.add_row(output.attr_path, output.kind, output.description, style=style)
        return table


class HelpScreen(_Sized):
    def __init__(self, keymap: KeyMap = DEFAULT_KEYMAP) -> None:
        super().__init__()
        self.keymap = keymap

    def render(self) -> RenderableType:
        parts: List[RenderableType] = [Text("healthdash - Keyboard Shortcuts", style="bold cyan")]
        parts.append(_binding_section("Navigation", self.keymap.navigation()))
        parts.append(_binding_section("Movement", self.keymap.movement()))
        actions = self.keymap.actions() + (KeyBinding(("ctrl+c",), "Ctrl+C", "Quit the application"),)
        parts.append(_binding_section("Actions", actions))
        return Padding(Group(*parts), (1, 2))


def _binding_section(title: str, bindings: Sequence[KeyBinding]) -> Group:
    table = Table.grid(padding=(0, 2))
    table.add_column(style="grey62", min_width=13)
    table.add_column(style="grey85")
    for binding in bindings:
        table.add_row(binding.help_key, binding.help_text)
    return Group(Text(""), Text(title, style="bold magenta"), table)
