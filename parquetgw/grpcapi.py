"""Store API info for the parquet database."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Protocol, Sequence

from parquetgw.grpcconv import ZLabel, z_label_sets, z_labels_from_labels
from parquetgw.labels import Label, labels_from_map

INT64_MAX = (1 << 63) - 1
INT64_MIN = -(1 << 63)

COMPONENT_QUERY = "query"


@dataclass
class BlockInfo:
    """The time range and external labels of a stream of blocks."""

    min_t: int
    max_t: int
    labels: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class TSDBInfo:
    """The time range and labels of one TSDB announced to clients."""

    min_time: int
    max_time: int
    labels: tuple[ZLabel, ...] = ()


@dataclass(frozen=True)
class StoreInfo:
    """What the store API serves."""

    min_time: int
    max_time: int
    supports_without_replica_labels: bool = False
    tsdb_infos: tuple[TSDBInfo, ...] = ()


@dataclass(frozen=True)
class InfoResponse:
    """The answer to an info request."""

    component_type: str
    label_sets: list[list[ZLabel]]
    store: StoreInfo
    supports_query: bool = True


class ParquetDatabase(Protocol):
    """The part of the database the query server reads for info requests."""

    def timerange(self) -> tuple[int, int]:
        """Return the overall minimum and maximum time."""

    def block_streams(self) -> Mapping[int, BlockInfo]:
        """Return the block streams by their external labels hash."""

    def override_ext_labels(self) -> Sequence[Label]:
        """Return the external labels that replace those of the blocks, if any."""


@dataclass
class QueryServerOptions:
    """Limits of the query server; a quota of 0 means unlimited."""

    concurrent_query_quota: int | None = None
    select_chunk_bytes_quota: int = 0
    select_row_count_quota: int = 0
    select_chunk_partition_max_range: int = 0
    select_chunk_partition_max_gap: int = 0
    select_chunk_partition_max_concurrency: int = 0
    label_values_row_count_quota: int = 0
    label_names_row_count_quota: int = 0
    shard_count_quota: int = 0


class QueryServer:
    """Answers store API requests from a parquet database."""

    def __init__(
        self,
        db: ParquetDatabase,
        engine: object | None = None,
        options: QueryServerOptions | None = None,
    ) -> None:
        self.db = db
        self.engine = engine
        self.options = options if options is not None else QueryServerOptions()

    def info(self) -> InfoResponse:
        """Describe the labels and time ranges this server serves."""
        override = tuple(self.db.override_ext_labels())
        if override:
            mint, maxt = self.db.timerange()
            zlabels = tuple(z_labels_from_labels(override))
            return InfoResponse(
                component_type=COMPONENT_QUERY,
                label_sets=z_label_sets(override),
                store=StoreInfo(
                    min_time=mint,
                    max_time=maxt,
                    supports_without_replica_labels=True,
                    tsdb_infos=(TSDBInfo(mint, maxt, zlabels),),
                ),
            )

        streams = self.db.block_streams()
        mint, maxt = INT64_MAX, INT64_MIN
        label_sets: list[tuple[Label, ...]] = []
        tsdb_infos: list[TSDBInfo] = []
        for key in sorted(streams):
            stream = streams[key]
            mint = min(mint, stream.min_t)
            maxt = max(maxt, stream.max_t)
            labels = labels_from_map(stream.labels)
            label_sets.append(labels)
            tsdb_infos.append(
                TSDBInfo(stream.min_t, stream.max_t, tuple(z_labels_from_labels(labels)))
            )
        return InfoResponse(
            component_type=COMPONENT_QUERY,
            label_sets=z_label_sets(*label_sets),
            store=StoreInfo(min_time=mint, max_time=maxt, tsdb_infos=tuple(tsdb_infos)),
        )