"""Session log: one append-only, timestamped file per health check run."""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional, Union

from .models import SummaryRecord

RULE = "=" * 60
LINE_FORMAT = '%(asctime)s [%(levelname)s] %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class SessionFormatter(logging.Formatter):
    """Timestamped lines, except separator records which are written verbatim."""

    def __init__(self):
        super().__init__(LINE_FORMAT, DATE_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        if getattr(record, 'plain', False):
            return record.getMessage()
        return super().format(record)


def log_file_name(run_time: Optional[datetime] = None, sequence: int = 0) -> str:
    """Name of the session log for a run started at ``run_time``.

    ``sequence`` distinguishes runs started within the same second.
    """
    run_time = run_time or datetime.now()
    suffix = f"_{sequence}" if sequence else ""
    return f"SQLHealthCheck_{run_time.strftime('%Y%m%d_%H%M%S')}{suffix}.log"


def reserve_log_file(directory: Path, run_time: Optional[datetime] = None) -> Path:
    """Atomically create a log file no other run is using and return its path."""
    run_time = run_time or datetime.now()
    sequence = 0
    while True:
        candidate = directory / log_file_name(run_time, sequence)
        try:
            with open(candidate, 'x', encoding='utf-8'):
                return candidate
        except FileExistsError:
            sequence += 1


class SessionLog:
    """Writes the leveled lines and separator blocks of one run.

    Every record goes straight to a FileHandler, which flushes after each
    line; nothing is buffered in memory.
    """

    def __init__(self, log_file: Union[str, Path], echo_console: bool = False,
                 level: Union[int, str] = logging.INFO):
        self.log_file = Path(log_file)
        self._logger = logging.Logger(f"{__name__}.{self.log_file.stem}", level)
        self._logger.propagate = False

        formatter = SessionFormatter()
        file_handler = logging.FileHandler(self.log_file, mode='a', encoding='utf-8')
        file_handler.setFormatter(formatter)
        self._logger.addHandler(file_handler)

        if echo_console:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setFormatter(formatter)
            self._logger.addHandler(console_handler)

    @classmethod
    def create(cls, directory: Union[str, Path], run_time: Optional[datetime] = None,
               echo_console: bool = False, level: Union[int, str] = logging.INFO) -> 'SessionLog':
        """Create the log directory if needed and open a new, unique session log in it."""
        log_dir = Path(directory)
        log_dir.mkdir(parents=True, exist_ok=True)
        return cls(reserve_log_file(log_dir, run_time), echo_console=echo_console, level=level)

    def info(self, message: str) -> None:
        self._logger.info(message)

    def warning(self, message: str) -> None:
        self._logger.warning(message)

    def error(self, message: str) -> None:
        self._logger.error(message)

    def separator(self, message: str) -> None:
        """Write a rule line, the message, and the rule line again."""
        for line in (RULE, message, RULE):
            record = self._logger.makeRecord(
                self._logger.name, logging.INFO, __file__, 0, line, None, None,
                extra={'plain': True}
            )
            self._logger.handle(record)

    def write_summary(self, summary: Iterable[SummaryRecord]) -> None:
        """Emit the SUMMARY block followed by the END OF LOG marker."""
        self.separator("SUMMARY")
        for record in summary:
            self.info(record.format_line())
        self.separator("END OF LOG")

    def close(self) -> None:
        for handler in list(self._logger.handlers):
            handler.flush()
            if isinstance(handler, logging.FileHandler):
                handler.close()
            self._logger.removeHandler(handler)

    def __enter__(self) -> 'SessionLog':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
