"""Environment-driven settings and platform-aware storage locations."""

import logging
import os
import sys
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_MS = 150
THEMES = ("light", "dark")


def get_opencode_path() -> Path:
    """Return the path to OpenCode's storage directory."""
    env = os.environ.get("OPENCODE_VIEWER_OPENCODE_PATH")
    if env:
        return Path(env).expanduser()

    if sys.platform == "win32":
        return Path(os.environ.get("USERPROFILE", "")) / ".local" / "share" / "opencode" / "storage"
    return Path.home() / ".local" / "share" / "opencode" / "storage"


def get_claude_code_path() -> Path:
    """Return the Claude Code data directory (the parent of ``projects/``)."""
    env = os.environ.get("OPENCODE_VIEWER_CLAUDE_PATH")
    if env:
        return Path(env).expanduser()

    return Path.home() / ".claude"


def get_debounce_ms() -> int:
    """Search input debounce delay in milliseconds."""
    raw = os.environ.get("OPENCODE_VIEWER_DEBOUNCE_MS")
    if not raw:
        return DEFAULT_DEBOUNCE_MS
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring invalid OPENCODE_VIEWER_DEBOUNCE_MS=%r", raw)
        return DEFAULT_DEBOUNCE_MS
    return max(value, 0)


def get_default_theme() -> str:
    """Theme used by exports when none is requested explicitly."""
    theme = os.environ.get("OPENCODE_VIEWER_THEME", "light").strip().lower()
    if theme not in THEMES:
        logger.warning("Unknown theme %r, using light", theme)
        return "light"
    return theme
