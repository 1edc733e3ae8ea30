"""
Telemetry Logging System

Console and optional file output for telemetry resolution and state
monitoring. Recent messages are also kept in memory, bounded so that a
monitor polled indefinitely does not grow without limit.

Usage:
    from gpupower.logging import TelemetryLogger, LogConfig, get_logger

    # Console plus monitors/gpu0.log; becomes the logger every module uses
    TelemetryLogger(Path("monitors/"), "gpu0")

    log = get_logger()
    log.info("Polling GPU 0...")
    monitor.log_status()  # section + key/value summary of the monitor

    with TelemetryLogger(output_dir, "rtx4090", LogConfig(history_lines=200)) as log:
        log.debug("refresh: thermal sensors unavailable")
"""

import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Deque, Optional, TextIO


_telemetry_logger: Optional['TelemetryLogger'] = None


def get_logger() -> 'TelemetryLogger':
    """Active telemetry logger; a console-only one is created on first use."""
    global _telemetry_logger
    if _telemetry_logger is None:
        _telemetry_logger = TelemetryLogger()
    return _telemetry_logger


def set_logger(logger: Optional['TelemetryLogger']):
    """Install a telemetry logger (None: fall back to a fresh default)."""
    global _telemetry_logger
    _telemetry_logger = logger


@dataclass
class LogConfig:
    """Telemetry logging options."""
    output_dir: Optional[Path] = None
    filename_prefix: Optional[str] = None       # file is "{prefix}.log"
    console_level: int = logging.INFO
    file_level: int = logging.DEBUG
    file_timestamps: bool = True
    history_lines: int = 1000                   # messages kept for get_content()
    section_width: int = 80


class TelemetryLogger:
    """
    Leveled logger for GPU power telemetry.

    Console and file each have their own threshold; with the defaults,
    debug output (such as categories a GPU does not support) reaches the
    file but not the console. Every message, whatever its level, enters
    the in-memory history, which keeps only the newest
    ``config.history_lines`` entries.

    Constructing a logger installs it as the module-level logger.
    """

    def __init__(
        self,
        output_dir: Optional[Path] = None,
        filename_prefix: Optional[str] = None,
        config: Optional[LogConfig] = None,
    ):
        self.config = config or LogConfig()
        self.output_dir = output_dir or self.config.output_dir
        self.filename_prefix = filename_prefix or self.config.filename_prefix

        self._history: Deque[str] = deque(maxlen=self.config.history_lines)
        self._log_file: Optional[TextIO] = None
        self._log_path: Optional[Path] = None

        if self.output_dir and self.filename_prefix:
            self._open_log_file()

        set_logger(self)

    def _open_log_file(self):
        directory = Path(self.output_dir)
        directory.mkdir(parents=True, exist_ok=True)
        self._log_path = directory / f"{self.filename_prefix}.log"
        self._log_file = open(self._log_path, 'w')

    @property
    def log_path(self) -> Optional[Path]:
        return self._log_path

    def _emit(self, message: str, level: int):
        self._history.append(message)

        if level >= self.config.console_level:
            print(message)

        if self._log_file is not None and level >= self.config.file_level:
            stamp = ""
            if self.config.file_timestamps:
                stamp = f"[{datetime.now().strftime('%H:%M:%S.%f')[:-3]}] "
            self._log_file.write(f"{stamp}{message}\n")
            self._log_file.flush()

    def debug(self, message: str):
        self._emit(message, logging.DEBUG)

    def info(self, message: str):
        self._emit(message, logging.INFO)

    def warning(self, message: str):
        self._emit(f"WARNING: {message}", logging.WARNING)

    def error(self, message: str):
        self._emit(f"ERROR: {message}", logging.ERROR)

    def section(self, title: str, level: int = logging.INFO):
        """Framed section header, emitted at the given level."""
        rule = "=" * self.config.section_width
        for line in ("", rule, title, rule):
            self._emit(line, level)

    def summary(self, title: str, level: int = logging.INFO, **metrics):
        """
        Key/value block: keys are title-cased, floats shown to one
        decimal place, None shown as "N/A".
        """
        self._emit(f"{title}:", level)
        for key, value in metrics.items():
            if value is None:
                value = "N/A"
            elif isinstance(value, float):
                value = f"{value:.1f}"
            self._emit(f"  {key.replace('_', ' ').title()}: {value}", level)

    def get_content(self) -> str:
        """Retained message history, oldest first."""
        return "\n".join(self._history)

    def close(self):
        if self._log_file is not None:
            self._log_file.close()
            self._log_file = None

    def __enter__(self) -> 'TelemetryLogger':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
