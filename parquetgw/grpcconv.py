"""Conversions between query results and the store API message shapes."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Iterable, Mapping, Union

from parquetgw.labels import Label, labels_from_map

LabelsLike = Union[Mapping[str, str], Iterable[Label]]


@dataclass(frozen=True, order=True)
class ZLabel:
    """A label as carried in store API messages."""

    name: str
    value: str


class ChunkEncoding(enum.IntEnum):
    """Encoding of a chunk as stored in a TSDB block."""

    NONE = 0
    XOR = 1
    HISTOGRAM = 2
    FLOAT_HISTOGRAM = 3


class StoreChunkEncoding(enum.IntEnum):
    """Encoding of a chunk as announced on the store API."""

    XOR = 0
    HISTOGRAM = 1
    FLOAT_HISTOGRAM = 2


@dataclass(frozen=True)
class Sample:
    """One float sample of a time series."""

    value: float
    timestamp: int


_STORE_ENCODINGS = {
    ChunkEncoding.XOR: StoreChunkEncoding.XOR,
    ChunkEncoding.HISTOGRAM: StoreChunkEncoding.HISTOGRAM,
    ChunkEncoding.FLOAT_HISTOGRAM: StoreChunkEncoding.FLOAT_HISTOGRAM,
}


def _label_pairs(labels: LabelsLike) -> Iterable[Label]:
    if isinstance(labels, Mapping):
        return labels_from_map(labels)
    return labels


def z_labels_from_labels(labels: LabelsLike) -> list[ZLabel]:
    """Convert a label set, in its order, to store API labels; mappings are sorted by name."""
    return [ZLabel(label.name, label.value) for label in _label_pairs(labels)]


def z_label_sets(*args: LabelsLike) -> list[list[ZLabel]]:
    """Convert several label sets, one store API label list each."""
    return [z_labels_from_labels(labels) for labels in args]


def chunk_encoding_to_store(encoding: ChunkEncoding | int) -> StoreChunkEncoding:
    """Map a block chunk encoding to the store API encoding."""
    try:
        return _STORE_ENCODINGS[ChunkEncoding(encoding)]
    except (KeyError, ValueError):
        raise ValueError(f"unknown chunk encoding: {encoding!r}") from None


def samples_from_points(points: Iterable[tuple[int, float]]) -> list[Sample]:
    """Convert (timestamp, value) points to samples, keeping their order."""
    return [Sample(value=float(value), timestamp=int(timestamp)) for timestamp, value in points]


def warnings_as_strings(warnings: Iterable[BaseException | str]) -> list[str]:
    """Render warnings as their messages."""
    return [str(warning) for warning in warnings]