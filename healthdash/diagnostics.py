"""Run pass/fail health checks against a system snapshot."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

from .system_state import DiskUsage, ProcessUsage, SystemSnapshot

logger = logging.getLogger(__name__)


@dataclass
class NamedCheck:
    name: str
    title: str
    passed: bool
    detail: str = ""
    solutions: Sequence[str] = field(default_factory=list)


CheckFn = Callable[[SystemSnapshot], NamedCheck]
ProgressCallback = Callable[[int, int], None]


def run_diagnostics(
    snapshot: SystemSnapshot, on_progress: Optional[ProgressCallback] = None
) -> List[NamedCheck]:
    """Run every registered check in order.

    ``on_progress`` is called with ``(completed, total)`` after each check so a
    progress widget can follow along.
    """
    results: List[NamedCheck] = []
    total = len(CHECKS)
    for index, (name, check) in enumerate(CHECKS, start=1):
        result = check(snapshot)
        logger.debug("check %s passed=%s", name, result.passed)
        results.append(result)
        if on_progress is not None:
            on_progress(index, total)
    return results


def check_cpu(snapshot: SystemSnapshot) -> NamedCheck:
    load_1m = snapshot.load_avg[0]
    cores = max(snapshot.cpu_count, 1)
    evidence = f"{snapshot.cpu_percent:.0f}% busy, 1m load {load_1m:.2f} on {snapshot.cpu_count} cores."
    if snapshot.cpu_percent >= 85 or load_1m >= cores * 1.5:
        return NamedCheck(
            name="cpu",
            title="CPU load",
            passed=False,
            detail=f"{evidence} {_top_process_summary(snapshot.top_cpu_processes)}",
            solutions=[
                "Stop or pause heavy builds, transcodes and virtual machines.",
                "Terminate runaway processes with `kill <pid>`.",
            ],
        )
    if load_1m > cores:
        return NamedCheck(
            name="cpu",
            title="CPU load",
            passed=False,
            detail=f"Load exceeds available cores. {evidence}",
            solutions=["Look for background jobs that were left running."],
        )
    return NamedCheck(name="cpu", title="CPU load", passed=True, detail=evidence)


def check_memory(snapshot: SystemSnapshot) -> NamedCheck:
    evidence = f"{snapshot.memory_percent:.0f}% used ({snapshot.memory_used / (1024**3):.1f} GiB)."
    if snapshot.memory_percent >= 85:
        return NamedCheck(
            name="memory",
            title="Memory pressure",
            passed=False,
            detail=f"{evidence} {_top_process_summary(snapshot.top_memory_processes)}",
            solutions=[
                "Close memory hungry applications and browser tabs.",
                "Reduce the number of running containers or emulators.",
            ],
        )
    return NamedCheck(name="memory", title="Memory pressure", passed=True, detail=evidence)


def check_disks(snapshot: SystemSnapshot) -> NamedCheck:
    full = _full_disks(snapshot.disk_usages)
    if full:
        mounts = ", ".join(f"{disk.mount_point} {disk.percent:.0f}%" for disk in full)
        return NamedCheck(
            name="disk",
            title="Disk space",
            passed=False,
            detail=f"Nearly full: {mounts}.",
            solutions=[
                "Remove build caches, container images and old downloads.",
                "Run `nix-collect-garbage -d` if the Nix store is large.",
            ],
        )
    return NamedCheck(
        name="disk", title="Disk space", passed=True, detail=f"{len(snapshot.disk_usages)} writable mounts checked."
    )


def check_swap(snapshot: SystemSnapshot) -> NamedCheck:
    if snapshot.swap_percent < 15:
        return NamedCheck(name="swap", title="Swap activity", passed=True)
    severity = "heavy" if snapshot.swap_percent >= 40 else "noticeable"
    return NamedCheck(
        name="swap",
        title="Swap activity",
        passed=False,
        detail=f"{severity} swapping, {snapshot.swap_percent:.0f}% of swap in use.",
        solutions=["Free physical memory by closing long running background applications."],
    )


def check_battery(snapshot: SystemSnapshot) -> NamedCheck:
    if snapshot.battery_percent is None:
        return NamedCheck(name="battery", title="Battery", passed=True, detail="No battery detected.")
    if not snapshot.power_plugged and snapshot.battery_percent < 20:
        return NamedCheck(
            name="battery",
            title="Battery",
            passed=False,
            detail=f"{snapshot.battery_percent:.0f}% remaining on battery power; the CPU may be throttled.",
            solutions=["Connect the power adapter."],
        )
    return NamedCheck(name="battery", title="Battery", passed=True, detail=f"{snapshot.battery_percent:.0f}%.")


def check_nix(snapshot: SystemSnapshot) -> NamedCheck:
    if snapshot.host.nix_version is None:
        return NamedCheck(
            name="nix",
            title="Nix installation",
            passed=False,
            detail="`nix` was not found on PATH.",
            solutions=["Install Nix from https://nixos.org/download"],
        )
    return NamedCheck(name="nix", title="Nix installation", passed=True, detail=f"Nix {snapshot.host.nix_version}")


CHECKS: List[Tuple[str, CheckFn]] = [
    ("cpu", check_cpu),
    ("memory", check_memory),
    ("disk", check_disks),
    ("swap", check_swap),
    ("battery", check_battery),
    ("nix", check_nix),
]


def _full_disks(disks: Sequence[DiskUsage]) -> List[DiskUsage]:
    return [disk for disk in disks if disk.percent >= 85]


def _top_process_summary(processes: Sequence[ProcessUsage]) -> str:
    if not processes:
        return "No heavy processes identified."
    offenders = ", ".join(
        f"{proc.name} (pid {proc.pid}, {proc.cpu_percent:.0f}% CPU, {proc.memory_percent:.0f}% mem)"
        for proc in processes[:3]
    )
    return f"Top consumers: {offenders}."
