"""Command-line options of the convert command."""

from __future__ import annotations

import argparse
import re
import tempfile
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Sequence

from parquetgw.config import BucketOptions
from parquetgw.labels import MatcherList

_NANOS = {
    "ns": 1,
    "us": 1_000,
    "\u00b5s": 1_000,
    "\u03bcs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 60 * 60 * 1_000_000_000,
}
_DURATION_PART_RE = re.compile(r"([0-9]*)(?:\.([0-9]*))?([^0-9.]*)")
_INT64_LIMIT = 1 << 63

DEFAULT_SORT_LABELS = ("__name__",)


def parse_go_duration(text: str) -> timedelta:
    """Parse a duration such as ``1h30m``, ``1.5s`` or ``-300ms``."""
    original = text
    negative = False
    if text[:1] in ("-", "+"):
        negative = text[0] == "-"
        text = text[1:]
    if text == "0":
        return timedelta(0)
    if text == "":
        raise ValueError(f"invalid duration {original!r}")
    total = 0
    rest = text
    while rest:
        match = _DURATION_PART_RE.match(rest)
        whole, fraction, unit_text = match.group(1), match.group(2), match.group(3)
        if not whole and not fraction:
            raise ValueError(f"invalid duration {original!r}")
        if not unit_text:
            raise ValueError(f"missing unit in duration {original!r}")
        unit = _NANOS.get(unit_text)
        if unit is None:
            raise ValueError(f"unknown unit {unit_text!r} in duration {original!r}")
        nanos = int(whole or "0") * unit
        if fraction:
            nanos += int(fraction) * unit // 10 ** len(fraction)
        total += nanos
        if total > _INT64_LIMIT or (total == _INT64_LIMIT and not negative):
            raise ValueError(f"invalid duration {original!r}")
        rest = rest[match.end():]
    result = timedelta(microseconds=total // 1000)
    return -result if negative else result


def _parse_int(text: str) -> int:
    """Parse an integer with base prefixes and underscores; a leading 0 means octal."""
    body = text.lstrip("+-")
    sign = -1 if text.startswith("-") else 1
    if len(body) > 1 and body[0] == "0" and (body[1].isdigit() or body[1] == "_"):
        return sign * int(body[1:].lstrip("_"), 8)
    return int(text, 0)


@dataclass
class ConversionOptions:
    """How conversion runs are scheduled and performed."""

    run_interval: timedelta = timedelta(hours=1)
    run_timeout: timedelta = timedelta(hours=24)
    retry_interval: timedelta = timedelta(minutes=1)
    grace_period: timedelta = timedelta(hours=48)
    max_days: int = 2
    recompress: bool = True
    sort_labels: list[str] = field(default_factory=lambda: list(DEFAULT_SORT_LABELS))
    row_group_size: int = 1_000_000
    row_group_count: int = 6
    download_concurrency: int = 4
    block_download_concurrency: int = 1
    encoding_concurrency: int = 4
    write_concurrency: int = 4
    temp_dir: str = field(default_factory=tempfile.gettempdir)


@dataclass
class ConvertOptions:
    """All settings of the convert command."""

    parquet_bucket: BucketOptions = field(default_factory=BucketOptions)
    tsdb_bucket: BucketOptions = field(default_factory=BucketOptions)
    parquet_discovery_interval: timedelta = timedelta(minutes=30)
    parquet_discovery_concurrency: int = 1
    tsdb_discovery_interval: timedelta = timedelta(minutes=30)
    tsdb_discovery_concurrency: int = 1
    tsdb_discovery_min_block_age: timedelta = timedelta(0)
    tsdb_external_label_matchers: MatcherList = field(default_factory=MatcherList)
    conversion: ConversionOptions = field(default_factory=ConversionOptions)
    internal_port: int = 6060
    internal_shutdown_timeout: timedelta = timedelta(seconds=10)


class _MatchersAction(argparse.Action):
    def __call__(self, parser, namespace, values, option_string=None):
        matchers = getattr(namespace, self.dest, None)
        if matchers is None:
            matchers = MatcherList()
        try:
            matchers.add(values)
        except ValueError as exc:
            raise argparse.ArgumentError(self, str(exc)) from exc
        setattr(namespace, self.dest, matchers)


def _duration(text: str) -> timedelta:
    return parse_go_duration(text)


_duration.__name__ = "duration"
_parse_int.__name__ = "integer"


def build_convert_parser() -> argparse.ArgumentParser:
    """Build the argument parser of the convert command."""
    parser = argparse.ArgumentParser(prog="convert", description="convert TSDB Block to parquet file")
    add = parser.add_argument

    add("--convert.run-interval", dest="run_interval", type=_duration, default="1h",
        help="interval to run conversion on")
    add("--convert.run-timeout", dest="run_timeout", type=_duration, default="24h",
        help="timeout for a single conversion step")
    add("--convert.retry-interval", dest="retry_interval", type=_duration, default="1m",
        help="interval to retry a single conversion after an error")
    add("--convert.tempdir", dest="temp_dir", default=tempfile.gettempdir(),
        help="directory for temporary state")
    add("--convert.recompress", dest="recompress", action=argparse.BooleanOptionalAction,
        default=True, help="recompress chunks")
    add("--convert.grace-period", dest="grace_period", type=_duration, default="48h",
        help="dont convert for dates younger than this")
    add("--convert.max-plan-days", dest="max_days", type=_parse_int, default="2",
        help="soft limit for the number of days to plan conversions for")
    add("--convert.rowgroup.size", dest="row_group_size", type=_parse_int, default="1_000_000",
        help="size of rowgroups")
    add("--convert.rowgroup.count", dest="row_group_count", type=_parse_int, default="6",
        help="rowgroups per shard")
    add("--convert.sorting.label", dest="sort_labels", action="append", default=None,
        help="label to sort by")
    add("--convert.download.concurrency", dest="download_concurrency", type=_parse_int,
        default="4", help="concurrency for downloading files in parallel per tsdb block")
    add("--convert.download.block-concurrency", dest="block_download_concurrency",
        type=_parse_int, default="1",
        help="concurrency for downloading & opening multiple blocks in parallel")
    add("--convert.encoding.concurrency", dest="encoding_concurrency", type=_parse_int,
        default="4", help="concurrency for encoding chunks")
    add("--convert.write.concurrency", dest="write_concurrency", type=_parse_int,
        default="4", help="concurrency for writer")

    add("--parquet.objstore-config-file", dest="parquet_config_file", default="",
        help="YAML file that contains object store configuration for parquet storage")
    add("--parquet.objstore-config", dest="parquet_config", default="",
        help="Alternative to 'parquet.objstore-config-file'. YAML content for parquet storage configuration.")
    add("--tsdb.objstore-config-file", dest="tsdb_config_file", default="",
        help="YAML file that contains object store configuration for TSDB storage")
    add("--tsdb.objstore-config", dest="tsdb_config", default="",
        help="Alternative to 'tsdb.objstore-config-file'. YAML content for TSDB storage configuration.")

    add("--parquet.discovery.interval", dest="parquet_discovery_interval", type=_duration,
        default="30m", help="interval to discover blocks")
    add("--parquet.discovery.concurrency", dest="parquet_discovery_concurrency",
        type=_parse_int, default="1", help="concurrency for loading metadata")
    add("--tsdb.discovery.interval", dest="tsdb_discovery_interval", type=_duration,
        default="30m", help="interval to discover blocks")
    add("--tsdb.discovery.concurrency", dest="tsdb_discovery_concurrency", type=_parse_int,
        default="1", help="concurrency for loading metadata")
    add("--tsdb.discovery.min-block-age", dest="tsdb_discovery_min_block_age", type=_duration,
        default="0s", help="blocks that have metrics that are younger than this won't be loaded")
    add("--tsdb.discovery.select-external-labels", dest="tsdb_external_label_matchers",
        action=_MatchersAction, default=None, metavar="SELECTOR",
        help="only external labels matching this selector will be discovered")

    add("--http.internal.port", dest="internal_port", type=_parse_int, default="6060",
        help="port to host query api")
    add("--http.internal.shutdown-timeout", dest="internal_shutdown_timeout", type=_duration,
        default="10s", help="timeout on shutdown")
    return parser


def parse_convert_options(argv: Sequence[str] | None = None) -> ConvertOptions:
    """Parse the convert command's arguments into options."""
    ns = build_convert_parser().parse_args(argv)
    conversion = ConversionOptions(
        run_interval=ns.run_interval,
        run_timeout=ns.run_timeout,
        retry_interval=ns.retry_interval,
        grace_period=ns.grace_period,
        max_days=ns.max_days,
        recompress=ns.recompress,
        sort_labels=list(ns.sort_labels) if ns.sort_labels else list(DEFAULT_SORT_LABELS),
        row_group_size=ns.row_group_size,
        row_group_count=ns.row_group_count,
        download_concurrency=ns.download_concurrency,
        block_download_concurrency=ns.block_download_concurrency,
        encoding_concurrency=ns.encoding_concurrency,
        write_concurrency=ns.write_concurrency,
        temp_dir=ns.temp_dir,
    )
    return ConvertOptions(
        parquet_bucket=BucketOptions(config_file=ns.parquet_config_file, config=ns.parquet_config),
        tsdb_bucket=BucketOptions(config_file=ns.tsdb_config_file, config=ns.tsdb_config),
        parquet_discovery_interval=ns.parquet_discovery_interval,
        parquet_discovery_concurrency=ns.parquet_discovery_concurrency,
        tsdb_discovery_interval=ns.tsdb_discovery_interval,
        tsdb_discovery_concurrency=ns.tsdb_discovery_concurrency,
        tsdb_discovery_min_block_age=ns.tsdb_discovery_min_block_age,
        tsdb_external_label_matchers=ns.tsdb_external_label_matchers or MatcherList(),
        conversion=conversion,
        internal_port=ns.internal_port,
        internal_shutdown_timeout=ns.internal_shutdown_timeout,
    )