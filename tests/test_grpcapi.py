import pytest

from parquetgw.grpcapi import BlockInfo, INT64_MAX, INT64_MIN, QueryServer, TSDBInfo
from parquetgw.grpcconv import ZLabel
from parquetgw.labels import labels_from_map


class MockParquetDB:
    def __init__(self, blocks=(), override=()):
        self.blocks = list(blocks)
        self.override = tuple(override)

    def timerange(self):
        mint, maxt = INT64_MAX, INT64_MIN
        for b in self.blocks:
            mint = min(mint, b.min_t)
            maxt = max(maxt, b.max_t)
        return mint, maxt

    def block_streams(self):
        keys = {}
        streams = {}
        for b in self.blocks:
            ident = frozenset(b.labels.items())
            key = keys.setdefault(ident, len(keys))
            if key in streams:
                st = streams[key]
                streams[key] = BlockInfo(min(st.min_t, b.min_t), max(st.max_t, b.max_t), st.labels)
            else:
                streams[key] = b
        return streams

    def override_ext_labels(self):
        return self.override


class DictDB:
    def __init__(self, streams):
        self.streams = streams

    def timerange(self):
        raise AssertionError("not used")

    def block_streams(self):
        return self.streams

    def override_ext_labels(self):
        return ()


def test_info_overridden_ext_labels():
    db = MockParquetDB(
        blocks=[
            BlockInfo(100, 200, {"not": "visible"}),
            BlockInfo(50, 250),
        ],
        override=labels_from_map({"cluster": "us-central1", "replica": "01"}),
    )
    resp = QueryServer(db).info()
    assert resp.store.min_time == 50
    assert resp.store.max_time == 250
    assert resp.label_sets == [
        [ZLabel("cluster", "us-central1"), ZLabel("replica", "01")],
    ]
    assert resp.store.supports_without_replica_labels is True
    assert resp.store.tsdb_infos == (
        TSDBInfo(50, 250, (ZLabel("cluster", "us-central1"), ZLabel("replica", "01"))),
    )


def test_info_blocks_based():
    db = MockParquetDB(
        blocks=[
            BlockInfo(100, 200, {"iam": "visible"}),
            BlockInfo(50, 250, {"me": "too"}),
        ],
    )
    resp = QueryServer(db).info()
    assert resp.store.min_time == 50
    assert resp.store.max_time == 250
    assert resp.label_sets == [
        [ZLabel("iam", "visible")],
        [ZLabel("me", "too")],
    ]
    assert resp.store.supports_without_replica_labels is False
    assert [info.min_time for info in resp.store.tsdb_infos] == [100, 50]


def test_info_merges_blocks_of_same_stream():
    db = MockParquetDB(
        blocks=[
            BlockInfo(100, 200, {"a": "b"}),
            BlockInfo(10, 150, {"a": "b"}),
        ],
    )
    resp = QueryServer(db).info()
    assert resp.label_sets == [[ZLabel("a", "b")]]
    assert resp.store.tsdb_infos == (TSDBInfo(10, 200, (ZLabel("a", "b"),)),)


def test_info_orders_streams_by_hash():
    db = DictDB({
        7: BlockInfo(1, 2, {"zone": "second"}),
        3: BlockInfo(5, 9, {"zone": "first"}),
    })
    resp = QueryServer(db).info()
    assert resp.label_sets == [[ZLabel("zone", "first")], [ZLabel("zone", "second")]]
    assert resp.store.min_time == 1
    assert resp.store.max_time == 9


def test_info_sorts_labels_of_stream():
    db = DictDB({1: BlockInfo(0, 1, {"b": "2", "a": "1"})})
    resp = QueryServer(db).info()
    assert resp.label_sets == [[ZLabel("a", "1"), ZLabel("b", "2")]]


def test_info_without_streams_keeps_extreme_range():
    resp = QueryServer(DictDB({})).info()
    assert resp.label_sets == []
    assert resp.store.min_time == INT64_MAX
    assert resp.store.max_time == INT64_MIN
    assert resp.component_type == "query"


@pytest.mark.parametrize("override", [(), labels_from_map({"x": "y"})])
def test_info_component_type(override):
    db = MockParquetDB(blocks=[BlockInfo(1, 2, {"k": "v"})], override=override)
    assert QueryServer(db).info().component_type == "query"