#!/usr/bin/env python3
"""
Result Sink
Serializes open-port records to the console and to the results file
"""

import logging
import sys
import threading
from typing import List, Optional, TextIO

from .models import ProbeOutcome

logger = logging.getLogger(__name__)

COLOR_GREEN = "\x1b[32m"
COLOR_RESET = "\x1b[0m"


def escape_banner(data: bytes) -> str:
    """Render raw banner bytes as printable ASCII.

    Surrounding whitespace is stripped; control bytes, bytes >= 0x7f and
    backslashes are escaped (``\\n``, ``\\xff``, ``\\\\``).
    """
    return "".join(_BYTE_ESCAPES[b] for b in bytes(data).strip())


def _escape_byte(b: int) -> str:
    if b == 0x5c:
        return "\\\\"
    if b in _NAMED_ESCAPES:
        return _NAMED_ESCAPES[b]
    if 0x20 <= b < 0x7f:
        return chr(b)
    return f"\\x{b:02x}"


_NAMED_ESCAPES = {0x09: "\\t", 0x0a: "\\n", 0x0d: "\\r"}
_BYTE_ESCAPES = [_escape_byte(b) for b in range(256)]


def format_record(outcome: ProbeOutcome, worker_id: int, color: bool = False) -> str:
    """Format one open-port record, without trailing newline"""
    head = f"[Worker {worker_id}] Port {outcome.port} OPEN"
    if color:
        head = f"{COLOR_GREEN}{head}{COLOR_RESET}"

    parts = [head]
    banner = escape_banner(outcome.banner)
    if banner:
        parts.append(f" - banner: {banner}")
    if outcome.service:
        parts.append(f" ({outcome.service})")
    return "".join(parts)


class ResultSink:
    """Thread-safe writer for open-port records.

    One lock covers the console write, the log write and the log flush, so
    records from different workers never interleave on either channel.
    """

    def __init__(self, log: Optional[TextIO] = None, console: Optional[TextIO] = None,
                 color: bool = False, owns_log: bool = False):
        self._log = log
        self._console = console
        self._color = color
        self._owns_log = owns_log
        self._lock = threading.Lock()
        self._records = 0
        self._open_ports: List[int] = []
        self._closed = False

    def record(self, outcome: ProbeOutcome, worker_id: int) -> bool:
        """Write one record for an open port; closed outcomes are ignored"""
        if not outcome.is_open:
            return False

        console_line = format_record(outcome, worker_id, color=self._color) + "\n"
        log_line = format_record(outcome, worker_id) + "\n"

        with self._lock:
            if self._closed:
                raise ValueError("record() on a closed ResultSink")
            if self._log is not None:
                self._log.write(log_line)
                self._log.flush()
            self._records += 1
            self._open_ports.append(outcome.port)
            if self._console is not None:
                try:
                    self._console.write(console_line)
                    self._console.flush()
                except (OSError, ValueError) as e:
                    logger.warning(f"Console write failed for port {outcome.port}: {e}")
        return True

    @property
    def records(self) -> int:
        with self._lock:
            return self._records

    @property
    def open_ports(self) -> List[int]:
        """Ports recorded so far, ascending"""
        with self._lock:
            return sorted(self._open_ports)

    def open_ports_since(self, mark: int) -> List[int]:
        """Ports recorded after the first ``mark`` records, ascending"""
        with self._lock:
            return sorted(self._open_ports[mark:])

    def close(self):
        with self._lock:
            if self._closed:
                return
            self._closed = True
            if self._log is not None:
                self._log.flush()
                if self._owns_log:
                    self._log.close()

    def __enter__(self) -> "ResultSink":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


def open_result_sink(path: Optional[str], append: bool = False, console: Optional[TextIO] = None,
                     color: Optional[bool] = None) -> ResultSink:
    """Open the results file and build a sink writing to it and the console.

    ``color=None`` enables ANSI color only when the console is a terminal.
    """
    if console is None:
        console = sys.stdout
    if color is None:
        color = bool(getattr(console, "isatty", lambda: False)())

    log = None
    if path:
        log = open(path, "a" if append else "w", encoding="utf-8")
        logger.info(f"Writing results to {path}")
    return ResultSink(log=log, console=console, color=color, owns_log=log is not None)
