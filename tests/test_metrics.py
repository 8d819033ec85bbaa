import pytest

from parquetgw.metrics import (
    Counter,
    Histogram,
    Registry,
    exponential_buckets_range,
    register_grpc_metrics,
    register_http_metrics,
)


def test_exponential_buckets_range_endpoints():
    buckets = exponential_buckets_range(0.1, 30, 20)
    assert len(buckets) == 20
    assert buckets[0] == pytest.approx(0.1)
    assert buckets[-1] == pytest.approx(30)
    assert all(lo < hi for lo, hi in zip(buckets, buckets[1:]))


def test_exponential_buckets_range_single():
    assert exponential_buckets_range(0.5, 9, 1) == [0.5]


@pytest.mark.parametrize("args", [(0.1, 30, 0), (0, 30, 5), (-1, 30, 5)])
def test_exponential_buckets_range_errors(args):
    with pytest.raises(ValueError):
        exponential_buckets_range(*args)


def test_counter_inc():
    counter = Counter("hits", "hits", ("path",))
    counter.inc({"path": "/query"})
    counter.inc({"path": "/query"}, 2.5)
    assert counter.values[("/query",)] == 3.5


def test_counter_rejects_negative_and_bad_labels():
    counter = Counter("hits", "hits", ("path",))
    with pytest.raises(ValueError):
        counter.inc({"path": "/"}, -1)
    with pytest.raises(ValueError):
        counter.inc({"code": "200"})
    assert counter.values == {}


def test_histogram_observe():
    histogram = Histogram("latency", "latency", ("path",), (0.1, 1.0))
    histogram.observe({"path": "/"}, 0.05)
    histogram.observe({"path": "/"}, 100.0)
    series = histogram.series[("/",)]
    assert series.count == 2
    assert series.sum == pytest.approx(100.05)
    assert series.bucket_counts[0] == 1
    assert series.bucket_counts == sorted(series.bucket_counts)
    assert max(series.bucket_counts) <= series.count


def test_histogram_buckets_must_increase():
    with pytest.raises(ValueError):
        Histogram("latency", "latency", (), (1.0, 0.5))


def test_registry_prefix_and_duplicates():
    registry = Registry(prefix="cf_metrics_http_")
    counter = Counter("requests_total", "help")
    assert registry.register(counter) == "cf_metrics_http_requests_total"
    with pytest.raises(ValueError):
        registry.register(counter)
    assert list(registry.collectors) == ["cf_metrics_http_requests_total"]


def test_register_http_metrics():
    registry = Registry(prefix="http_")
    register_http_metrics(registry)
    assert set(registry.collectors) == {"http_requests_total", "http_requests_seconds"}
    with pytest.raises(ValueError):
        register_http_metrics(registry)


def test_register_grpc_metrics():
    registry = Registry(prefix="grpc_")
    register_grpc_metrics(registry)
    assert "grpc_grpc_server_handling_seconds" in registry.collectors
    histogram = registry.collectors["grpc_grpc_server_handling_seconds"]
    assert histogram.buckets[0] == pytest.approx(0.1)
    assert histogram.buckets[-1] == pytest.approx(30)