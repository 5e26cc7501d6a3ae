"""
Interactive terminal dashboard for browsing system information and health checks.
"""

__all__ = ["app", "cli", "config", "diagnostics", "flake", "messages", "runtime", "screens", "system_state", "widgets"]
__version__ = "0.1.0"
