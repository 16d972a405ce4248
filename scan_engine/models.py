#!/usr/bin/env python3
"""
Data model for the scanning engine
Configuration, probe outcomes, scan reports and the error hierarchy
"""

import ipaddress
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Union

MIN_PORT = 1
MAX_PORT = 65535
MIN_THREADS = 1
MAX_THREADS = 5000
MIN_TIMEOUT_MS = 1

# Maximum number of banner bytes captured by a single read
DEFAULT_BANNER_MAX_BYTES = 512
MAX_BANNER_MAX_BYTES = 65536


class ScanError(Exception):
    """Base class for scanner errors"""


class ConfigurationError(ScanError, ValueError):
    """Invalid target, port range or scan setting"""


class WorkerPoolError(ScanError):
    """The worker pool could not be started"""


class ScanMode(str, Enum):
    """Scan mode: connect only, or connect plus banner read"""
    FAST = "fast"
    FULL = "full"

    @classmethod
    def parse(cls, value: Union[str, "ScanMode"]) -> "ScanMode":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ConfigurationError(f"Invalid scan mode: {value!r} (expected 'fast' or 'full')") from None


class OutcomeStatus(str, Enum):
    CLOSED = "CLOSED"
    OPEN_NO_DATA = "OPEN_NO_DATA"
    OPEN_WITH_BANNER = "OPEN_WITH_BANNER"


@dataclass(frozen=True)
class ScanConfig:
    """Immutable scan settings shared read-only by every worker.

    ``banner_max_bytes`` is the fixed maximum banner length: a full-mode probe
    reads at most this many bytes and anything beyond is silently dropped.
    """
    address: ipaddress.IPv4Address
    start_port: int
    end_port: int
    threads: int = 50
    mode: ScanMode = ScanMode.FULL
    timeout_ms: int = 200
    banner_max_bytes: int = DEFAULT_BANNER_MAX_BYTES

    def __post_init__(self):
        if not isinstance(self.address, ipaddress.IPv4Address):
            try:
                object.__setattr__(self, "address", ipaddress.IPv4Address(str(self.address)))
            except ValueError:
                raise ConfigurationError(f"Invalid IPv4 address: {self.address}") from None
        object.__setattr__(self, "mode", ScanMode.parse(self.mode))

        for name in ("start_port", "end_port", "threads", "timeout_ms", "banner_max_bytes"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigurationError(f"{name} must be an integer, got {value!r}")

        validate_port_range(self.start_port, self.end_port)
        if not MIN_THREADS <= self.threads <= MAX_THREADS:
            raise ConfigurationError(f"threads must be in [{MIN_THREADS}, {MAX_THREADS}], got {self.threads}")
        if self.timeout_ms < MIN_TIMEOUT_MS:
            raise ConfigurationError(f"timeout_ms must be >= {MIN_TIMEOUT_MS}, got {self.timeout_ms}")
        if not 1 <= self.banner_max_bytes <= MAX_BANNER_MAX_BYTES:
            raise ConfigurationError(
                f"banner_max_bytes must be in [1, {MAX_BANNER_MAX_BYTES}], got {self.banner_max_bytes}"
            )

    @property
    def timeout_s(self) -> float:
        return self.timeout_ms / 1000.0

    @property
    def port_count(self) -> int:
        return self.end_port - self.start_port + 1


def validate_port_range(start: int, end: int) -> None:
    """Raise ConfigurationError unless 1 <= start <= end <= 65535"""
    if not MIN_PORT <= start <= MAX_PORT:
        raise ConfigurationError(f"Start port out of range: {start}")
    if not MIN_PORT <= end <= MAX_PORT:
        raise ConfigurationError(f"End port out of range: {end}")
    if start > end:
        raise ConfigurationError(f"Invalid port range: {start}-{end} (start > end)")


@dataclass(frozen=True)
class ProbeOutcome:
    """Result of probing one port"""
    port: int
    status: OutcomeStatus
    banner: bytes = b""
    service: str = ""

    @property
    def is_open(self) -> bool:
        return self.status is not OutcomeStatus.CLOSED

    @classmethod
    def closed(cls, port: int) -> "ProbeOutcome":
        return cls(port, OutcomeStatus.CLOSED)

    @classmethod
    def open_no_data(cls, port: int, service: str = "") -> "ProbeOutcome":
        return cls(port, OutcomeStatus.OPEN_NO_DATA, b"", service)

    @classmethod
    def open_with_banner(cls, port: int, banner: bytes, service: str = "") -> "ProbeOutcome":
        return cls(port, OutcomeStatus.OPEN_WITH_BANNER, bytes(banner), service)


@dataclass
class ScanReport:
    """Aggregate figures for a finished scan"""
    target: str
    mode: ScanMode
    threads: int
    ports_scanned: int
    elapsed_s: float
    open_ports: List[int] = field(default_factory=list)
    records_written: int = 0

    @property
    def ports_per_second(self) -> float:
        if self.elapsed_s <= 0:
            return 0.0
        return self.ports_scanned / self.elapsed_s
