import os
import sys
from datetime import datetime, timezone
from typing import Any

from fx_platform.services.logger.interface import LoggingInterface

_COLORS = {
    "INFO": "\033[32m",
    "WARN": "\033[33m",
    "ERROR": "\033[31m",
    "DEBUG": "\033[36m",
}
_RESET = "\033[0m"
_LEVELS = {"DEBUG": 10, "INFO": 20, "WARN": 30, "ERROR": 40}


class PrettyLogger(LoggingInterface):
    """Colorized human-readable logger for local runs.

    ``LOG_LEVEL`` (DEBUG/INFO/WARN/ERROR, default INFO) drops anything below it.
    Provider calls and tier fall-throughs log at DEBUG, so they stay quiet
    unless asked for.
    """

    def __init__(self) -> None:
        level = os.environ.get("LOG_LEVEL", "INFO").upper()
        self._threshold = _LEVELS.get(level, _LEVELS["INFO"])

    def info(self, msg: str, **ctx: Any) -> None:
        self._log("INFO", msg, ctx)

    def warn(self, msg: str, **ctx: Any) -> None:
        self._log("WARN", msg, ctx)

    def error(self, msg: str, **ctx: Any) -> None:
        self._log("ERROR", msg, ctx)

    def debug(self, msg: str, **ctx: Any) -> None:
        self._log("DEBUG", msg, ctx)

    def _log(self, level: str, msg: str, ctx: dict[str, Any]) -> None:
        if _LEVELS[level] < self._threshold:
            return
        ts = datetime.now(timezone.utc).strftime("%H:%M:%S")
        color = _COLORS.get(level, "")
        extra = f"  {ctx}" if ctx else ""
        print(f"{color}{ts} [{level}]{_RESET} {msg}{extra}", file=sys.stderr)
