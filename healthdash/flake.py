"""Read the outputs of a Nix flake for the flake browser screen."""

from __future__ import annotations

import json
import logging
import shutil
import subprocess
from dataclasses import dataclass
from typing import Any, Dict, List

logger = logging.getLogger(__name__)


class FlakeError(Exception):
    """Raised when flake outputs cannot be listed."""


@dataclass(frozen=True)
class FlakeOutput:
    attr_path: str
    kind: str
    description: str = ""


def fetch_flake_outputs(path: str = ".", timeout: float = 30.0) -> List[FlakeOutput]:
    executable = shutil.which("nix")
    if executable is None:
        raise FlakeError("`nix` was not found on PATH")
    cmd = [
        executable,
        "--extra-experimental-features",
        "nix-command flakes",
        "flake",
        "show",
        "--json",
        "--all-systems",
        path,
    ]
    logger.debug("running %s", " ".join(cmd))
    try:
        completed = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout, check=False)
    except subprocess.TimeoutExpired as exc:
        raise FlakeError(f"`nix flake show` timed out after {timeout:g}s") from exc
    except OSError as exc:
        raise FlakeError(f"unable to run nix: {exc}") from exc
    if completed.returncode != 0:
        message = completed.stderr.strip().splitlines()[-1] if completed.stderr.strip() else "unknown error"
        raise FlakeError(f"`nix flake show {path}` failed: {message}")
    return parse_flake_show(completed.stdout)


def parse_flake_show(raw: str) -> List[FlakeOutput]:
    """Flatten ``nix flake show --json`` output into a sorted list of leaves."""
    try:
        tree = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise FlakeError(f"invalid JSON from nix flake show: {exc}") from exc
    if not isinstance(tree, dict):
        raise FlakeError("unexpected nix flake show output")
    outputs: List[FlakeOutput] = []
    _walk(tree, [], outputs)
    return sorted(outputs, key=lambda output: output.attr_path)


def _walk(node: Dict[str, Any], prefix: List[str], outputs: List[FlakeOutput]) -> None:
    kind = node.get("type")
    if isinstance(kind, str) and prefix:
        description = node.get("description") or node.get("name") or ""
        outputs.append(FlakeOutput(attr_path=".".join(prefix), kind=kind, description=str(description)))
        return
    for key, child in node.items():
        if isinstance(child, dict):
            _walk(child, prefix + [key], outputs)
