import pytest

from parquetgw.grpcconv import (
    ChunkEncoding,
    Sample,
    StoreChunkEncoding,
    ZLabel,
    chunk_encoding_to_store,
    samples_from_points,
    warnings_as_strings,
    z_label_sets,
    z_labels_from_labels,
)
from parquetgw.labels import labels_from_map


def test_z_labels_keep_order_of_label_set():
    labels = labels_from_map({"replica": "01", "cluster": "us-central1"})
    result = z_labels_from_labels(labels)
    assert result == [ZLabel("cluster", "us-central1"), ZLabel("replica", "01")]


def test_z_labels_from_mapping_are_sorted():
    result = z_labels_from_labels({"b": "2", "a": "1"})
    assert [label.name for label in result] == ["a", "b"]


def test_z_labels_empty():
    assert z_labels_from_labels({}) == []


def test_z_label_sets():
    sets = z_label_sets({"iam": "visible"}, {"me": "too"})
    assert sets == [[ZLabel("iam", "visible")], [ZLabel("me", "too")]]


def test_z_label_sets_none():
    assert z_label_sets() == []


@pytest.mark.parametrize(
    "encoding, expected",
    [
        (ChunkEncoding.XOR, StoreChunkEncoding.XOR),
        (ChunkEncoding.HISTOGRAM, StoreChunkEncoding.HISTOGRAM),
        (ChunkEncoding.FLOAT_HISTOGRAM, StoreChunkEncoding.FLOAT_HISTOGRAM),
    ],
)
def test_chunk_encoding_to_store(encoding, expected):
    assert chunk_encoding_to_store(encoding) is expected


def test_chunk_encoding_accepts_int():
    assert chunk_encoding_to_store(int(ChunkEncoding.XOR)) is StoreChunkEncoding.XOR


@pytest.mark.parametrize("encoding", [ChunkEncoding.NONE, 99])
def test_unknown_chunk_encoding(encoding):
    with pytest.raises(ValueError):
        chunk_encoding_to_store(encoding)


def test_samples_from_points_keeps_order():
    points = [(1000, 1.5), (2000, 2.5), (3000, 3)]
    samples = samples_from_points(points)
    assert samples == [Sample(1.5, 1000), Sample(2.5, 2000), Sample(3.0, 3000)]
    assert all(isinstance(s.value, float) for s in samples)


def test_samples_from_points_empty():
    assert samples_from_points([]) == []


def test_warnings_as_strings():
    warnings = [ValueError("first problem"), "second problem"]
    assert warnings_as_strings(warnings) == ["first problem", "second problem"]