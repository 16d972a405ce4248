#!/usr/bin/env python3
"""
Scan Engine
Concurrent TCP connect scanning: work queue, probe, worker pool and result sink
"""

from .models import (
    ConfigurationError, OutcomeStatus, ProbeOutcome, ScanConfig, ScanError,
    ScanMode, ScanReport, WorkerPoolError,
)
from .probe import probe
from .result_sink import ResultSink, escape_banner, format_record, open_result_sink
from .scanner import run_scan
from .services import service_name
from .work_queue import PortQueue, build_port_set
from .worker_pool import WorkerPool

__all__ = [
    'ConfigurationError', 'OutcomeStatus', 'ProbeOutcome', 'ScanConfig', 'ScanError',
    'ScanMode', 'ScanReport', 'WorkerPoolError',
    'probe', 'ResultSink', 'escape_banner', 'format_record', 'open_result_sink',
    'run_scan', 'service_name', 'PortQueue', 'build_port_set', 'WorkerPool',
]
