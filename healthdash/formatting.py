"""Rich formatting helpers shared by the screens and the one-shot report."""

from __future__ import annotations

from typing import Iterable, Sequence

from rich import box
from rich.console import Group, RenderableType
from rich.padding import Padding
from rich.table import Table
from rich.text import Text

from .diagnostics import NamedCheck
from .system_state import DiskUsage, ProcessUsage, SystemSnapshot

PASS_GLYPH = "✓"
FAIL_GLYPH = "✗"


def format_bytes(num: float) -> str:
    suffixes = ["B", "KiB", "MiB", "GiB", "TiB"]
    value = float(num)
    for suffix in suffixes:
        if value < 1024 or suffix == suffixes[-1]:
            return f"{value:.1f} {suffix}"
        value /= 1024
    return f"{value:.1f} TiB"


def render_check(check: NamedCheck) -> Text:
    line = Text()
    if check.passed:
        line.append(PASS_GLYPH, style="bold green")
    else:
        line.append(FAIL_GLYPH, style="bold red")
    line.append(" ")
    line.append(check.title, style="bold")
    if check.detail:
        line.append("\n   ")
        line.append(check.detail, style="grey62")
    if not check.passed:
        for solution in check.solutions:
            line.append("\n   → ", style="yellow")
            line.append(solution, style="grey62")
    return line


def render_check_list(checks: Sequence[NamedCheck], width: int = 0) -> RenderableType:
    """Title plus one block per check; ``width`` of 0 pads instead of stretching."""
    lines: list[RenderableType] = [Text("Health Checks", style="bold cyan"), Text("")]
    lines.extend(render_check(check) for check in checks)
    passed = sum(1 for check in checks if check.passed)
    lines.append(Text(""))
    lines.append(Text(f"{passed}/{len(checks)} checks passed", style="green" if passed == len(checks) else "red"))
    body = Group(*lines)
    if width > 0:
        return Padding(body, (0, 0), expand=True)
    return Padding(body, (1, 2))


def snapshot_table(snapshot: SystemSnapshot) -> Table:
    host = snapshot.host
    summary = Table(show_header=False, box=box.ROUNDED)
    summary.add_column(style="bold", min_width=12)
    summary.add_column()
    summary.add_row("Host", f"{host.hostname} ({host.os_name} {host.os_release}, {host.machine})")
    summary.add_row("User", host.user or "-")
    if host.groups:
        summary.add_row("Groups", ", ".join(host.groups))
    summary.add_row("Python", host.python_version)
    summary.add_row("Nix", host.nix_version or "not installed")
    summary.add_row(
        "CPU",
        f"{snapshot.cpu_percent:.0f}% | load (1/5/15): {snapshot.load_avg[0]:.2f}/{snapshot.load_avg[1]:.2f}/{snapshot.load_avg[2]:.2f}"
        f" | {snapshot.cpu_count} cores",
    )
    summary.add_row(
        "Memory",
        f"{snapshot.memory_percent:.0f}% | {format_bytes(snapshot.memory_used)} / {format_bytes(snapshot.memory_total)}",
    )
    summary.add_row(
        "Swap", f"{snapshot.swap_percent:.0f}% | {format_bytes(snapshot.swap_used)} / {format_bytes(snapshot.swap_total)}"
    )
    if snapshot.battery_percent is not None:
        source = "plugged in" if snapshot.power_plugged else "on battery"
        summary.add_row("Battery", f"{snapshot.battery_percent:.0f}% ({source})")
    if snapshot.boot_time is not None:
        summary.add_row("Booted", f"{snapshot.boot_time:%Y-%m-%d %H:%M}")
    summary.add_row("Collected", f"{snapshot.timestamp:%Y-%m-%d %H:%M:%S}")
    return summary


def disk_table(disks: Iterable[DiskUsage]) -> Table:
    table = Table(title="Disks", box=box.SIMPLE_HEAD)
    table.add_column("Mount", style="bold")
    table.add_column("Used / Total")
    table.add_column("Use", justify="right")
    rows = 0
    for disk in disks:
        table.add_row(disk.mount_point, f"{disk.used_gb:.1f} / {disk.total_gb:.1f} GiB", f"{disk.percent:.0f}%")
        rows += 1
    if not rows:
        table.add_row("-", "no disk data", "-")
    return table


def process_table(title: str, processes: Sequence[ProcessUsage]) -> Table:
    table = Table(title=title, box=box.SIMPLE_HEAD)
    table.add_column("PID", justify="right")
    table.add_column("Process")
    table.add_column("CPU", justify="right")
    table.add_column("Mem", justify="right")
    table.add_column("RSS", justify="right")

    if not processes:
        table.add_row("-", "no process data", "-", "-", "-")
        return table

    for proc in processes:
        table.add_row(
            str(proc.pid),
            proc.name,
            f"{proc.cpu_percent:.0f}%",
            f"{proc.memory_percent:.0f}%",
            format_bytes(proc.rss_bytes),
        )
    return table
