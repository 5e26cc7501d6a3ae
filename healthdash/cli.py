"""Entry point for the healthdash command line tool."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict, replace
from pathlib import Path
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel

from .config import ConfigError, DashboardConfig, load_config
from .diagnostics import CHECKS, NamedCheck, run_diagnostics
from .formatting import disk_table, process_table, render_check_list, snapshot_table
from .runtime import SessionError, run_session, run_with_progress, run_with_spinner
from .system_state import CollectionError, SystemSnapshot, fetch_info

logger = logging.getLogger("healthdash")


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Browse system information and health checks in an interactive terminal dashboard.",
    )
    parser.add_argument("--top", type=int, help="number of busiest processes to show")
    parser.add_argument("--json", action="store_true", help="print the snapshot and check results as JSON")
    parser.add_argument("--once", action="store_true", help="print a one-shot report instead of the dashboard")
    parser.add_argument("--config", type=Path, help="YAML config file (default: ~/.config/healthdash/config.yaml)")
    parser.add_argument("--flake", help="flake reference listed by the flake browser")
    parser.add_argument("--log-file", help="append log records to this file")
    parser.add_argument("-v", "--verbose", action="store_true", help="log debug messages")
    args = parser.parse_args(argv)

    try:
        config = _apply_args(load_config(args.config), args)
    except ConfigError as exc:
        print(f"healthdash: {exc}", file=sys.stderr)
        return 2

    interactive = not (args.json or args.once)
    _configure_logging(config, interactive=interactive)

    if args.json:
        return _print_json(config)
    if args.once:
        return _print_report(config, Console())

    try:
        run_session(config)
    except SessionError as exc:
        logger.error("dashboard session failed: %s", exc)
        print(f"healthdash: {exc}", file=sys.stderr)
        return 1
    return 0


def _apply_args(config: DashboardConfig, args: argparse.Namespace) -> DashboardConfig:
    overrides: Dict[str, Any] = {}
    if args.top is not None:
        overrides["top_n"] = args.top
    if args.flake:
        overrides["flake_path"] = args.flake
    if args.log_file:
        overrides["log_file"] = args.log_file
    if args.verbose:
        overrides["log_level"] = "DEBUG"
    return replace(config, **overrides) if overrides else config


def _configure_logging(config: DashboardConfig, interactive: bool) -> None:
    root = logging.getLogger("healthdash")
    root.setLevel(config.log_level)
    root.handlers.clear()
    if config.log_file:
        handler: logging.Handler = logging.FileHandler(config.log_file, encoding="utf-8")
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    elif interactive:
        # the full-screen session owns the terminal
        handler = logging.NullHandler()
    else:
        handler = RichHandler(console=Console(stderr=True), show_path=False)
    root.addHandler(handler)
    root.propagate = False


def _print_json(config: DashboardConfig) -> int:
    try:
        snapshot = fetch_info(config)
    except CollectionError as exc:
        logger.error("%s", exc)
        return 1
    print(_to_json(snapshot, run_diagnostics(snapshot)))
    return 0


def _to_json(snapshot: SystemSnapshot, checks: List[NamedCheck]) -> str:
    snapshot_dict: Dict[str, Any] = asdict(snapshot)
    snapshot_dict["timestamp"] = snapshot.timestamp.isoformat()
    if snapshot.boot_time is not None:
        snapshot_dict["boot_time"] = snapshot.boot_time.isoformat()
    payload: Dict[str, Any] = {
        "snapshot": snapshot_dict,
        "checks": [dict(asdict(check), solutions=list(check.solutions)) for check in checks],
    }
    return json.dumps(payload, ensure_ascii=False, indent=2)


def _print_report(config: DashboardConfig, console: Console) -> int:
    try:
        snapshot = run_with_spinner(
            "Collecting system information", lambda: fetch_info(config), console=console, interval=config.tick_interval
        )
    except CollectionError as exc:
        logger.error("%s", exc)
        return 1
    checks = run_with_progress(
        "Running health checks",
        len(CHECKS),
        lambda report: run_diagnostics(snapshot, on_progress=report),
        console=console,
    )

    console.print(Panel(f"System snapshot - {snapshot.timestamp:%Y-%m-%d %H:%M:%S}", style="bold cyan"))
    console.print(snapshot_table(snapshot))
    console.print(disk_table(snapshot.disk_usages))
    console.print(process_table("Top CPU", snapshot.top_cpu_processes))
    console.print(process_table("Top memory", snapshot.top_memory_processes))
    console.print(render_check_list(checks))
    return 0 if all(check.passed for check in checks) else 3


if __name__ == "__main__":
    raise SystemExit(main())
