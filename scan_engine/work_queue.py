#!/usr/bin/env python3
"""
Work Queue
Thread-safe cursor handing out the ports of a scan, one at a time
"""

import threading
from typing import Optional, Tuple

from .models import validate_port_range


def build_port_set(start: int, end: int) -> Tuple[int, ...]:
    """Build the ascending, duplicate-free sequence of ports start..end inclusive"""
    validate_port_range(start, end)
    return tuple(range(start, end + 1))


class PortQueue:
    """Dispenses each port of a port set to exactly one caller.

    Only the cursor is mutable. ``next()`` holds the lock for a single
    read-and-increment and never performs I/O while holding it.
    """

    def __init__(self, ports: Tuple[int, ...]):
        self._ports = tuple(ports)
        self._index = 0
        self._lock = threading.Lock()

    @classmethod
    def from_range(cls, start: int, end: int) -> "PortQueue":
        return cls(build_port_set(start, end))

    def next(self) -> Optional[int]:
        """Return the next port, or None once the queue is exhausted"""
        with self._lock:
            if self._index >= len(self._ports):
                return None
            port = self._ports[self._index]
            self._index += 1
        return port

    @property
    def ports(self) -> Tuple[int, ...]:
        return self._ports

    @property
    def size(self) -> int:
        return len(self._ports)

    @property
    def dispensed(self) -> int:
        with self._lock:
            return self._index

    @property
    def exhausted(self) -> bool:
        return self.dispensed >= len(self._ports)

    def __len__(self) -> int:
        return len(self._ports)

    def __repr__(self) -> str:
        return f"PortQueue(size={self.size}, dispensed={self.dispensed})"
