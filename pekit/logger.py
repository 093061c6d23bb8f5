"""
PETable Logging
================

One :class:`PETableLogger` per component (``decoder``, ``engine``,
``cli``), each backed by the stdlib logger ``petable.<component>``.

Every record is stamped with the component and with the decode step that
is running (``export_table``, ``import_table``; ``-`` outside any step).
Records go to stderr through Rich and, when ``[global] log_file`` is set,
to a rotating file as plain text or JSON lines (``log_json``).

References:
    - Python logging HOWTO. https://docs.python.org/3/howto/logging.html
    - Rich library. https://github.com/Textualize/rich
"""

from __future__ import annotations

import json
import logging
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Iterator

from rich.console import Console
from rich.logging import RichHandler

LOGGER_PREFIX: str = "petable"
NO_OPERATION: str = "-"

LOG_FILE_MAX_BYTES: int = 5 * 1024 * 1024
LOG_FILE_BACKUPS: int = 3

_CONSOLE_FORMAT = "[%(component)s:%(operation)s] %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)-8s %(component)s:%(operation)s %(message)s"


class _JSONLinesFormatter(logging.Formatter):
    """Render a record as one JSON object per line.

    ``operation`` is only present for records emitted inside a decode step.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "component": getattr(record, "component", record.name),
            "message": record.getMessage(),
        }
        operation = getattr(record, "operation", NO_OPERATION)
        if operation != NO_OPERATION:
            entry["operation"] = operation
        return json.dumps(entry, ensure_ascii=False)


def _console_handler() -> logging.Handler:
    # stdout is reserved for listings
    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        markup=False,
        rich_tracebacks=False,
    )
    handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    return handler


def _file_handler(path: Path, json_lines: bool) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        path,
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUPS,
        encoding="utf-8",
    )
    handler.setFormatter(
        _JSONLinesFormatter() if json_lines else logging.Formatter(_FILE_FORMAT)
    )
    return handler


class PETableLogger:
    """Component logger used by the decoder, the engine and the CLI.

    Creating a logger for a component replaces the handlers of any earlier
    logger for the same component.

    Usage::

        log = PETableLogger("decoder", log_level="DEBUG")
        with log.operation("import_table"):
            log.debug("%s: %d named import(s)", library, count)
    """

    def __init__(
        self,
        component: str,
        *,
        log_level: str = "INFO",
        log_file: str | Path | None = None,
        json_logs: bool = False,
        console_output: bool = True,
    ) -> None:
        """
        Args:
            component: Suffix of the stdlib logger name.
            log_level: Minimum level name (DEBUG, INFO, WARNING, ...).
            log_file: Rotating log file; ``None`` or ``""`` disables it.
            json_logs: Write JSON lines instead of plain text to *log_file*.
            console_output: Attach the Rich stderr handler.
        """
        self._component = component
        self._operation = NO_OPERATION
        self._logger = logging.getLogger(f"{LOGGER_PREFIX}.{component}")
        self._logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
        self._logger.propagate = False

        for handler in list(self._logger.handlers):
            self._logger.removeHandler(handler)
            handler.close()

        if console_output:
            self._logger.addHandler(_console_handler())
        if log_file:
            self._logger.addHandler(_file_handler(Path(log_file), json_logs))

    @contextmanager
    def operation(self, name: str) -> Iterator[None]:
        """Stamp records logged inside the block with *name*."""
        previous = self._operation
        self._operation = name
        try:
            yield
        finally:
            self._operation = previous

    @contextmanager
    def timed(self, label: str) -> Iterator[None]:
        """Log the wall time of the block at DEBUG when it exits."""
        start = time.perf_counter()
        try:
            yield
        finally:
            self.debug("%s took %.3f ms", label, (time.perf_counter() - start) * 1000)

    def debug(self, msg: str, *args: Any) -> None:
        self._log(logging.DEBUG, msg, args)

    def info(self, msg: str, *args: Any) -> None:
        self._log(logging.INFO, msg, args)

    def _log(self, level: int, msg: str, args: tuple[Any, ...]) -> None:
        self._logger.log(
            level, msg, *args,
            extra={"component": self._component, "operation": self._operation},
        )
