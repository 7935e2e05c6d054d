from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from ormbench.benchmark import MetricsCollector, percentile, population_stddev


@pytest.fixture
def process():
    mock = MagicMock()
    mock.memory_info.return_value = SimpleNamespace(rss=2048, vms=8192, data=1024, shared=512)
    mock.cpu_times.return_value = SimpleNamespace(user=1.5, system=0.5)
    return mock


class FakeTimer:
    def __init__(self, *ticks):
        self.ticks = list(ticks)

    def __call__(self):
        return self.ticks.pop(0)


class TestStatistics:
    def test_percentile_interpolates(self):
        values = [1.0, 2.0, 3.0, 4.0]
        assert percentile(values, 50) == pytest.approx(2.5)
        assert percentile(values, 0) == 1.0
        assert percentile(values, 100) == 4.0
        assert percentile([7.0], 99) == 7.0

    def test_percentile_empty(self):
        assert percentile([], 50) == 0.0

    def test_population_stddev(self):
        assert population_stddev([2.0, 4.0, 4.0, 4.0, 5.0, 5.0, 7.0, 9.0]) == pytest.approx(2.0)
        assert population_stddev([]) == 0.0


class TestMetricsCollector:
    def test_latency_and_throughput(self, process):
        collector = MetricsCollector(process=process, timer=FakeTimer(10.0, 12.0))
        collector.start()
        for latency in (4.0, 1.0, 3.0, 2.0):
            collector.record_latency(latency)
        collector.end()

        metrics = collector.get_metrics()
        assert collector.elapsed_ms == 2000.0
        assert metrics.latency.p50 == pytest.approx(2.5)
        assert metrics.latency.min == 1.0
        assert metrics.latency.max == 4.0
        assert metrics.latency.mean == 2.5
        assert metrics.throughput.total_requests == 4
        assert metrics.throughput.rps == pytest.approx(2.0)
        assert metrics.succeeded

    def test_errors_are_histogrammed(self, process):
        collector = MetricsCollector(process=process)
        collector.record_error("Timeout")
        collector.record_error("Timeout")
        collector.record_error("IntegrityError")

        metrics = collector.get_metrics()
        assert metrics.errors.count == 3
        assert metrics.errors.types == {"Timeout": 2, "IntegrityError": 1}
        assert not metrics.succeeded

    def test_empty_collector(self, process):
        metrics = MetricsCollector(process=process).get_metrics()
        assert metrics.latency.p50 == 0.0
        assert metrics.throughput.rps == 0.0
        assert metrics.memory.rss == []

    def test_samples_memory_and_cpu(self, process):
        collector = MetricsCollector(process=process)
        collector.sample()
        collector.sample()

        metrics = collector.get_metrics()
        assert metrics.memory.heap_used == [1024.0, 1024.0]
        assert metrics.memory.heap_total == [8192.0, 8192.0]
        assert metrics.memory.rss == [2048.0, 2048.0]
        assert metrics.memory.external == [512.0, 512.0]
        assert metrics.cpu.usage == [2.0, 2.0]

    def test_memory_without_platform_fields(self, process):
        process.memory_info.return_value = SimpleNamespace(rss=2048, vms=8192)
        collector = MetricsCollector(process=process)
        collector.record_memory()
        assert collector.memory.heap_used == [2048.0]
        assert collector.memory.external == [0.0]

    def test_reset(self, process):
        collector = MetricsCollector(process=process)
        collector.record_latency(1.0)
        collector.record_error("Timeout")
        collector.reset()
        assert collector.latencies == []
        assert collector.errors.count == 0
