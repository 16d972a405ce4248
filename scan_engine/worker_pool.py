#!/usr/bin/env python3
"""
Worker Pool
Fixed set of threads draining a PortQueue through the probe into a ResultSink
"""

import logging
import threading
from typing import Callable, List, Optional

from .models import ProbeOutcome, ScanConfig, WorkerPoolError
from .probe import probe
from .result_sink import ResultSink
from .work_queue import PortQueue

logger = logging.getLogger(__name__)

ProbeFunc = Callable[..., ProbeOutcome]


class WorkerPool:
    """Runs ``config.threads`` symmetric workers until the queue is exhausted.

    Startup is two-phase: every thread is created and started before the
    start gate opens, so no worker can see an empty queue while others are
    still being spawned. If a thread fails to start, the workers already
    running are released through the gate without taking any work, joined,
    and WorkerPoolError is raised. If waiting for the workers is interrupted
    (Ctrl-C), the pool is marked stopped so no worker records anything
    further, and the interrupt propagates.
    """

    def __init__(self, config: ScanConfig, queue: PortQueue, sink: ResultSink,
                 probe_func: ProbeFunc = probe):
        self.config = config
        self.queue = queue
        self.sink = sink
        self.probe_func = probe_func
        self._gate = threading.Event()
        self._aborted = False
        self._stopped = threading.Event()
        self._handled: List[int] = [0] * config.threads

    def _worker(self, worker_id: int):
        """Worker loop: next port -> probe -> record open results"""
        self._gate.wait()
        if self._aborted:
            return

        config = self.config
        while not self._stopped.is_set():
            port = self.queue.next()
            if port is None:
                break
            try:
                outcome = self.probe_func(
                    config.address, port, config.mode, config.timeout_ms,
                    banner_max_bytes=config.banner_max_bytes,
                )
                if outcome.is_open and not self._stopped.is_set():
                    self.sink.record(outcome, worker_id)
            except Exception:
                if self._stopped.is_set():
                    break
                logger.exception(f"Worker {worker_id} failed on port {port}, skipping")
            self._handled[worker_id] += 1

        logger.debug(f"Worker {worker_id} finished after {self._handled[worker_id]} ports")

    def _provision(self) -> List[threading.Thread]:
        return [
            threading.Thread(target=self._worker, args=(worker_id,),
                             name=f"scan-worker-{worker_id}", daemon=True)
            for worker_id in range(self.config.threads)
        ]

    def run(self) -> List[int]:
        """Start all workers, wait for every one of them, return ports handled per worker"""
        threads = self._provision()
        started: List[threading.Thread] = []
        error: Optional[BaseException] = None

        try:
            for thread in threads:
                thread.start()
                started.append(thread)
        except RuntimeError as e:
            error = e
            self._aborted = True
            logger.error(f"Could only start {len(started)} of {len(threads)} workers: {e}")
        finally:
            self._gate.set()
            try:
                for thread in started:
                    thread.join()
            except BaseException:
                # Interrupted while waiting: workers stop recording before the caller tears down the sink
                self._stopped.set()
                raise

        if error is not None:
            raise WorkerPoolError(
                f"Failed to start worker pool ({len(started)}/{len(threads)} workers started): {error}"
            ) from error

        logger.debug(f"All {len(threads)} workers joined")
        return list(self._handled)
