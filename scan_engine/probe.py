#!/usr/bin/env python3
"""
Probe
Single TCP connect attempt with an optional bounded banner read
"""

import ipaddress
import logging
import socket
from typing import Callable, Union

from .models import DEFAULT_BANNER_MAX_BYTES, ProbeOutcome, ScanMode
from .services import service_name

logger = logging.getLogger(__name__)

ServiceLookup = Callable[[int], str]


def probe(address: Union[str, ipaddress.IPv4Address], port: int, mode: ScanMode, timeout_ms: int,
          banner_max_bytes: int = DEFAULT_BANNER_MAX_BYTES,
          service_lookup: ServiceLookup = service_name) -> ProbeOutcome:
    """Probe one TCP port.

    Exactly one connection attempt is made; a refused, unreachable or
    timed-out connect is reported as CLOSED. The timeout applies to the
    connect and to the banner read separately, so a full-mode probe can
    take up to roughly twice ``timeout_ms``.

    In full mode a single ``recv`` of at most ``banner_max_bytes`` is
    attempted after a successful connect. The returned banner is raw bytes.
    """
    host = str(address)
    timeout_s = timeout_ms / 1000.0

    try:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    except OSError as e:
        logger.warning(f"Could not create socket for port {port}, skipping: {e}")
        return ProbeOutcome.closed(port)

    with sock:
        try:
            sock.settimeout(timeout_s)
            result = sock.connect_ex((host, port))
        except OSError as e:
            logger.debug(f"Connect to {host}:{port} failed - {e}")
            return ProbeOutcome.closed(port)

        if result != 0:
            return ProbeOutcome.closed(port)

        service = service_lookup(port) or ""
        if ScanMode.parse(mode) is ScanMode.FAST:
            return ProbeOutcome.open_no_data(port, service)

        banner = read_banner(sock, banner_max_bytes)
        if banner:
            return ProbeOutcome.open_with_banner(port, banner, service)
        return ProbeOutcome.open_no_data(port, service)


def read_banner(sock: socket.socket, max_bytes: int) -> bytes:
    """Read once from a connected socket; empty bytes on timeout or error"""
    try:
        data = sock.recv(max_bytes)
    except socket.timeout:
        return b""
    except OSError as e:
        logger.debug(f"Banner read failed: {e}")
        return b""
    return data[:max_bytes]
