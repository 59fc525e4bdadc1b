from __future__ import annotations

import logging
import math
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Iterable, Mapping, NamedTuple, Optional

from env_namespace import Binding, Namespace, Var


_RESET = "\033[0m"
_COLORS = {
    "DEBUG": "\033[36m",     # Cyan
    "INFO": "\033[32m",      # Green
    "WARNING": "\033[33m",   # Yellow
    "ERROR": "\033[31m",     # Red
    "CRITICAL": "\033[35m",  # Magenta
}


class ColorFormatter(logging.Formatter):
    def __init__(self, fmt: str, datefmt: str | None = None, use_color: bool = True):
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        formatted = super().format(record)
        if not self.use_color:
            return formatted

        color = _COLORS.get(record.levelname)
        if not color:
            return formatted
        return f"{color}{formatted}{_RESET}"


class LogSettings(NamedTuple):
    level: int
    max_bytes: int
    backup_count: int
    use_color: bool
    bindings: list[Binding]


def _supports_color(no_color: bool) -> bool:
    if no_color:
        return False
    if not hasattr(sys.stdout, "isatty") or not sys.stdout.isatty():
        return False
    return True


def _parse_log_level(level_name: str | None) -> int:
    candidate = (level_name or "INFO").upper().strip()
    level = getattr(logging, candidate, logging.INFO)
    return level if isinstance(level, int) else logging.INFO


def load_log_settings(
    level_name: str | None = None,
    environ: Optional[Mapping[str, str]] = None,
) -> LogSettings:
    """Read LOG_LEVEL, LOG_FILE_MAX_MB, LOG_FILE_BACKUP_COUNT and NO_COLOR."""
    ns = Namespace("log", environ=environ)
    level = Var("INFO")
    max_mb = Var(5.0)
    backup_count = Var(5)
    bindings = [
        ns.bind_string("level", level, default="INFO"),
        ns.bind_float("file max mb", max_mb, default=5.0),
        ns.bind_int("file backup count", backup_count, default=5),
    ]

    no_color = Var(False)

    def _no_color(raw: str, present: bool) -> str:
        no_color.set(bool(raw))
        return raw

    bindings.append(Namespace("no", environ=environ).bind_with_func("color", _no_color))

    mb = max_mb.value if math.isfinite(max_mb.value) and max_mb.value > 0 else 5.0
    return LogSettings(
        level=_parse_log_level(level_name or level.value),
        max_bytes=int(mb * 1024 * 1024),
        backup_count=max(0, backup_count.value),
        use_color=_supports_color(no_color.value),
        bindings=bindings,
    )


def log_bindings(bindings: Iterable[Binding], logger: logging.Logger | None = None) -> None:
    log = logger or logging.getLogger("envbind")
    for binding in bindings:
        log.info("%s", binding)


def setup_logging(
    app_name: str = "envbind",
    log_dir: str | None = None,
    level_name: str | None = None,
    environ: Optional[Mapping[str, str]] = None,
) -> None:
    root_logger = logging.getLogger()
    if getattr(root_logger, "_envbind_logging_configured", False):
        return

    settings = load_log_settings(level_name, environ=environ)
    root_logger.setLevel(settings.level)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(settings.level)
    console_handler.setFormatter(
        ColorFormatter(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%H:%M:%S",
            use_color=settings.use_color,
        )
    )
    root_logger.addHandler(console_handler)

    log_file_path = None
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        log_file_path = os.path.join(log_dir, f"{app_name}.log")
        file_handler = RotatingFileHandler(
            log_file_path,
            maxBytes=settings.max_bytes,
            backupCount=settings.backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(settings.level)
        file_handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(threadName)s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        root_logger.addHandler(file_handler)

    logging.captureWarnings(True)

    setattr(root_logger, "_envbind_logging_configured", True)
    app_logger = logging.getLogger(app_name)
    app_logger.info(
        "Logging initialized (level=%s, file=%s)",
        logging.getLevelName(settings.level),
        log_file_path,
    )
    log_bindings(settings.bindings, app_logger)
