# parquetgw

Building blocks for a gateway that answers Prometheus HTTP and Thanos
store API requests from metric blocks kept as parquet files in object
storage: selector parsing, configuration, metrics, request parameter
parsing, response encoding, store API conversions and the options of a
block conversion command.

## Modules

- **`parquetgw.labels`**: `Label`, `labels_from_map` (a label set sorted by
  name), `MatchType`, `Matcher` with `matches(value)`, and
  `parse_metric_selector` / `parse_metric_selectors` for selectors such as
  `up{job="api", instance=~"10\\..*"}`. A selector whose matchers all match
  the empty string is rejected with `ValueError`. `MatcherList` is a list
  that grows through `add(selector)`.
- **`parquetgw.config`**: `expand_env_parens` replaces each `$(NAME)` in
  bytes or text with the environment variable `NAME` (empty when unset).
  `setup_bucket(BucketOptions(...))` reads YAML bucket configuration from
  `config_file` or from inline `config`, expands environment references and
  returns a `FilesystemBucket` for `type: FILESYSTEM` (with
  `config.directory` and an optional `prefix`). `FilesystemBucket` offers
  `iter(prefix, recursive)`, `get(name)`, `exists(name)` and
  `upload(name, data)`. `setup_tracing(TracingOptions(...))` checks the
  exporter type (`JAEGER`, `STDOUT` or empty) and sampling type
  (`PROBABILISTIC`, `ALWAYS`, `NEVER`) and returns a `TracingSetup`
  describing the choice. Problems are raised as `ConfigError`.
- **`parquetgw.metrics`**: `Counter`, `Histogram`, a `Registry` that rejects
  duplicate names, `exponential_buckets_range`, and `register_http_metrics`
  / `register_grpc_metrics` for the request metrics.
- **`parquetgw.params`**: `parse_time` (Unix seconds with millisecond
  precision, or RFC 3339), `parse_duration` (float seconds or `1h30m`
  style), `parse_time_param`, `parse_duration_param`, `parse_limit_param`,
  `parse_matchers_for_series` (requires `match[]`) and
  `parse_matchers_for_labels`. Bad input raises `ParamError`.
- **`parquetgw.httpapi`**: `ErrorType`, `ApiError`, `error_status` (the
  HTTP status for each error type), `error_response`, `success_response`
  (JSON bodies leaving out empty fields), `finalize_names` (sort,
  de-duplicate and cut to a limit, reporting truncation) and
  `QueryAPIOptions` with the API defaults.
- **`parquetgw.grpcconv`**: `ZLabel`, `z_labels_from_labels`,
  `z_label_sets`, `ChunkEncoding` / `StoreChunkEncoding` and
  `chunk_encoding_to_store`, `Sample` and `samples_from_points`, and
  `warnings_as_strings`.
- **`parquetgw.grpcapi`**: `QueryServer.info()` reports the overall time
  range and external label sets of a `ParquetDatabase` (an object with
  `timerange()`, `block_streams()` and `override_ext_labels()`); when
  override labels are set they replace the per-stream label sets.
- **`parquetgw.convertopts`**: `ConversionOptions` and `ConvertOptions`
  with their defaults, `parse_go_duration`, `build_convert_parser` and
  `parse_convert_options(argv)`.

## Examples

```python
import os
from parquetgw.config import expand_env_parens

os.environ["BUCKET_DIR"] = "/var/lib/metrics"
expand_env_parens(b"directory: $(BUCKET_DIR)\nmissing: $(NOT_SET)\n")
# b"directory: /var/lib/metrics\nmissing: \n"
```

```python
from parquetgw.labels import parse_metric_selector

for matcher in parse_metric_selector('{job="api", env!="dev"}'):
    print(matcher, matcher.matches("api"))
```

```python
from parquetgw.params import parse_duration
from parquetgw.httpapi import finalize_names

parse_duration("1.5")   # timedelta(seconds=1.5)
parse_duration("5m")    # timedelta(minutes=5)
finalize_names(["b", "a", "b", "c"], 2)   # (["a", "b"], True)
```

```python
from parquetgw.convertopts import parse_convert_options

opts = parse_convert_options(["--convert.max-plan-days", "3"])
opts.conversion.max_days   # 3
```

## What this package does not do

It provides no command to run and no running server: there is no HTTP or
gRPC listener, and no PromQL engine to evaluate queries. It does not read
parquet or TSDB blocks, plan or perform conversions, or download blocks;
`parse_convert_options` only parses the options such a command would take.
Only filesystem buckets are supported, and `setup_tracing` describes the
tracing setup without exporting any traces.

## Installation and tests

Requires Python 3.10 or later and PyYAML. The tests use pytest (the `test`
extra) and live in `tests/`.