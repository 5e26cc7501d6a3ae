"""Collect the host snapshot shown on the info screen and fed to the diagnostics."""

from __future__ import annotations

import getpass
import logging
import os
import platform
import shutil
import socket
import subprocess
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Iterable, List, Optional, Tuple

import psutil

if TYPE_CHECKING:
    from .config import DashboardConfig

logger = logging.getLogger(__name__)


class CollectionError(Exception):
    """Raised when the system snapshot cannot be collected."""


@dataclass
class ProcessUsage:
    pid: int
    name: str
    cpu_percent: float
    memory_percent: float
    rss_bytes: int


@dataclass
class DiskUsage:
    mount_point: str
    total_gb: float
    used_gb: float
    percent: float


@dataclass
class HostInfo:
    hostname: str
    os_name: str
    os_release: str
    machine: str
    user: str
    python_version: str
    nix_version: Optional[str] = None
    groups: List[str] = field(default_factory=list)


@dataclass
class SystemSnapshot:
    timestamp: datetime
    host: HostInfo
    cpu_percent: float
    load_avg: Tuple[float, float, float]
    cpu_count: int
    memory_total: int
    memory_used: int
    memory_percent: float
    swap_total: int
    swap_used: int
    swap_percent: float
    boot_time: Optional[datetime]
    battery_percent: Optional[float]
    power_plugged: Optional[bool]
    top_cpu_processes: List[ProcessUsage] = field(default_factory=list)
    top_memory_processes: List[ProcessUsage] = field(default_factory=list)
    disk_usages: List[DiskUsage] = field(default_factory=list)


def fetch_info(config: "DashboardConfig") -> SystemSnapshot:
    """Snapshot entry point used by the dashboard's load commands."""
    return gather_snapshot(top_n=config.top_n, nix_timeout=config.nix_timeout)


def gather_snapshot(top_n: int = 5, nix_timeout: float = 10.0) -> SystemSnapshot:
    """Collect a snapshot of the current system state."""
    try:
        cpu_count = psutil.cpu_count() or 0
        load_avg = os.getloadavg() if hasattr(os, "getloadavg") else (0.0, 0.0, 0.0)
        cpu_percent = psutil.cpu_percent(interval=0.3)
        memory = psutil.virtual_memory()
        swap = psutil.swap_memory()
        battery = _battery()
        boot_time = datetime.fromtimestamp(psutil.boot_time())

        processes = list(psutil.process_iter())
        _prime_cpu_percent(processes)
        process_usages = _process_usage(processes)
    except (psutil.Error, OSError) as exc:
        raise CollectionError(f"unable to read system counters: {exc}") from exc

    snapshot = SystemSnapshot(
        timestamp=datetime.now(),
        host=gather_host_info(nix_timeout=nix_timeout),
        cpu_percent=cpu_percent,
        load_avg=tuple(load_avg),
        cpu_count=cpu_count,
        memory_total=memory.total,
        memory_used=memory.used,
        memory_percent=memory.percent,
        swap_total=swap.total,
        swap_used=swap.used,
        swap_percent=swap.percent,
        boot_time=boot_time,
        battery_percent=battery.percent if battery else None,
        power_plugged=battery.power_plugged if battery else None,
        top_cpu_processes=sorted(process_usages, key=lambda p: p.cpu_percent, reverse=True)[:top_n],
        top_memory_processes=sorted(
            process_usages, key=lambda p: p.memory_percent, reverse=True
        )[:top_n],
        disk_usages=_disk_usage_summary(),
    )
    logger.debug("collected snapshot with %d processes", len(process_usages))
    return snapshot


def gather_host_info(nix_timeout: float = 10.0) -> HostInfo:
    uname = platform.uname()
    return HostInfo(
        hostname=socket.gethostname(),
        os_name=uname.system,
        os_release=uname.release,
        machine=uname.machine,
        user=_current_user(),
        python_version=platform.python_version(),
        nix_version=nix_version(timeout=nix_timeout),
        groups=_user_groups(),
    )


def nix_version(timeout: float = 10.0) -> Optional[str]:
    """Return the installed Nix version string, or ``None`` when Nix is unavailable."""
    executable = shutil.which("nix")
    if executable is None:
        return None
    try:
        completed = subprocess.run(
            [executable, "--version"], capture_output=True, text=True, timeout=timeout, check=False
        )
    except (OSError, subprocess.TimeoutExpired) as exc:
        logger.warning("nix --version failed: %s", exc)
        return None
    if completed.returncode != 0:
        return None
    # "nix (Nix) 2.18.1"
    return completed.stdout.strip().split()[-1] if completed.stdout.strip() else None


def _current_user() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return ""


def _user_groups() -> List[str]:
    if not hasattr(os, "getgroups"):
        return []
    try:
        import grp
    except ImportError:
        return []
    names: List[str] = []
    for gid in os.getgroups():
        try:
            names.append(grp.getgrgid(gid).gr_name)
        except KeyError:
            names.append(str(gid))
    return sorted(set(names))


def _battery():
    sensors_battery = getattr(psutil, "sensors_battery", None)
    if sensors_battery is None:
        return None
    try:
        return sensors_battery()
    except (OSError, RuntimeError):
        return None


def _prime_cpu_percent(processes: Iterable[psutil.Process]) -> None:
    for proc in processes:
        try:
            proc.cpu_percent(None)
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            continue
    time.sleep(0.1)


def _process_usage(processes: Iterable[psutil.Process]) -> List[ProcessUsage]:
    usage: List[ProcessUsage] = []
    for proc in processes:
        try:
            with proc.oneshot():
                usage.append(
                    ProcessUsage(
                        pid=proc.pid,
                        name=proc.name(),
                        cpu_percent=proc.cpu_percent(None),
                        memory_percent=proc.memory_percent(),
                        rss_bytes=proc.memory_info().rss,
                    )
                )
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
            continue
    return usage


def _disk_usage_summary() -> List[DiskUsage]:
    disk_usages: List[DiskUsage] = []
    for partition in psutil.disk_partitions(all=False):
        if "rw" not in partition.opts.split(","):
            continue
        try:
            usage = psutil.disk_usage(partition.mountpoint)
        except (PermissionError, OSError):
            continue
        disk_usages.append(
            DiskUsage(
                mount_point=partition.mountpoint,
                total_gb=round(usage.total / (1024**3), 2),
                used_gb=round(usage.used / (1024**3), 2),
                percent=usage.percent,
            )
        )
    return disk_usages
