"""
Metrics Collector

Accumulates per-iteration latencies, periodic process samples and an error
histogram during a measurement phase, then condenses them into a
``BenchmarkMetrics`` bundle.
"""
from __future__ import annotations

import math
import time
from typing import Callable, List, Optional, Sequence

import psutil

from ormbench.core.models import (
    BenchmarkMetrics,
    CpuStats,
    ErrorStats,
    LatencyStats,
    MemoryStats,
    ThroughputStats,
)


def percentile(sorted_values: Sequence[float], p: float) -> float:
    """Linear-interpolated percentile of an ascending sequence (0 when empty)."""
    if not sorted_values:
        return 0.0
    index = (p / 100) * (len(sorted_values) - 1)
    lower = math.floor(index)
    upper = math.ceil(index)
    weight = index - lower
    return sorted_values[lower] * (1 - weight) + sorted_values[upper] * weight


def population_stddev(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    avg = sum(values) / len(values)
    return math.sqrt(sum((v - avg) ** 2 for v in values) / len(values))


class MetricsCollector:
    """
    Collects raw observations for one scenario against one library.

    Memory samples come from ``psutil.Process.memory_info()``: ``heap_used``
    is the data segment where the platform reports one (rss otherwise),
    ``heap_total`` the virtual size and ``external`` the shared pages. CPU
    samples are cumulative user+system seconds of the process.
    """

    def __init__(
        self,
        process: Optional[psutil.Process] = None,
        timer: Callable[[], float] = time.perf_counter,
    ):
        self.process = process or psutil.Process()
        self.timer = timer
        self.reset()

    def reset(self) -> None:
        self.latencies: List[float] = []
        self.memory = MemoryStats()
        self.cpu_usage: List[float] = []
        self.errors = ErrorStats()
        self.start_time = 0.0
        self.end_time = 0.0

    def start(self) -> None:
        self.start_time = self.timer()

    def end(self) -> None:
        self.end_time = self.timer()

    @property
    def elapsed_ms(self) -> float:
        return max(self.end_time - self.start_time, 0.0) * 1000

    def record_latency(self, latency_ms: float) -> None:
        self.latencies.append(latency_ms)

    def record_error(self, kind: str) -> None:
        self.errors.record(kind)

    def record_memory(self) -> None:
        info = self.process.memory_info()
        self.memory.heap_used.append(float(getattr(info, "data", info.rss)))
        self.memory.heap_total.append(float(info.vms))
        self.memory.rss.append(float(info.rss))
        self.memory.external.append(float(getattr(info, "shared", 0)))

    def record_cpu(self) -> None:
        times = self.process.cpu_times()
        self.cpu_usage.append(times.user + times.system)

    def sample(self) -> None:
        self.record_memory()
        self.record_cpu()

    def get_metrics(self) -> BenchmarkMetrics:
        ordered = sorted(self.latencies)
        count = len(ordered)
        elapsed_s = self.elapsed_ms / 1000

        latency = LatencyStats()
        if count:
            latency = LatencyStats(
                mean=sum(ordered) / count,
                p50=percentile(ordered, 50),
                p95=percentile(ordered, 95),
                p99=percentile(ordered, 99),
                p999=percentile(ordered, 99.9),
                min=ordered[0],
                max=ordered[-1],
                stddev=population_stddev(ordered),
            )

        return BenchmarkMetrics(
            latency=latency,
            throughput=ThroughputStats(
                rps=count / elapsed_s if elapsed_s > 0 else 0.0,
                total_requests=count,
            ),
            memory=MemoryStats(
                heap_used=list(self.memory.heap_used),
                heap_total=list(self.memory.heap_total),
                rss=list(self.memory.rss),
                external=list(self.memory.external),
            ),
            cpu=CpuStats(usage=list(self.cpu_usage)),
            errors=ErrorStats(count=self.errors.count, types=dict(self.errors.types)),
        )
