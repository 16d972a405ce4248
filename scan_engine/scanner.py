#!/usr/bin/env python3
"""
Scan orchestration: queue, worker pool and timing around one scan
"""

import logging
import time
from typing import Optional

from .models import ScanConfig, ScanReport
from .probe import probe
from .result_sink import ResultSink
from .work_queue import PortQueue
from .worker_pool import ProbeFunc, WorkerPool

logger = logging.getLogger(__name__)


def run_scan(config: ScanConfig, sink: Optional[ResultSink] = None,
             probe_func: ProbeFunc = probe) -> ScanReport:
    """Scan every port of ``config`` and block until all workers are done"""
    if sink is None:
        sink = ResultSink()

    queue = PortQueue.from_range(config.start_port, config.end_port)
    logger.info(
        f"Starting scan of {config.address} ports {config.start_port}-{config.end_port} "
        f"({queue.size} ports, {config.threads} workers, mode={config.mode.value}, timeout={config.timeout_ms} ms)"
    )

    mark = sink.records
    start_time = time.perf_counter()
    WorkerPool(config, queue, sink, probe_func=probe_func).run()
    elapsed = time.perf_counter() - start_time

    ports_scanned = queue.dispensed
    del queue

    open_ports = sink.open_ports_since(mark)
    logger.info(f"Scan of {config.address} finished in {elapsed:.2f}s: {len(open_ports)} open ports")
    return ScanReport(
        target=str(config.address),
        mode=config.mode,
        threads=config.threads,
        ports_scanned=ports_scanned,
        elapsed_s=elapsed,
        open_ports=open_ports,
        records_written=len(open_ports),
    )
