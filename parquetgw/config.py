"""Object store and tracing configuration."""

from __future__ import annotations

import os
import re
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Iterator

import yaml

_ENV_PATTERN = r"\$\(([A-Za-z_][A-Za-z0-9_]*)\)"
_ENV_RE_STR = re.compile(_ENV_PATTERN)
_ENV_RE_BYTES = re.compile(_ENV_PATTERN.encode())

_BUCKET_KEYS = frozenset({"type", "config", "prefix"})
_FILESYSTEM_KEYS = frozenset({"directory"})

_EXPORTER_TYPES = ("JAEGER", "STDOUT", "")
_SAMPLING_TYPES = ("PROBABILISTIC", "ALWAYS", "NEVER")

SERVICE_NAME = "parquet-gateway"
SERVICE_VERSION = "v0.0.0"


class ConfigError(Exception):
    """Raised when a configuration cannot be loaded or is invalid."""


def expand_env_parens(data: bytes | str) -> bytes | str:
    """Replace every ``$(NAME)`` with the environment variable NAME, or nothing."""
    if isinstance(data, bytes):
        return _ENV_RE_BYTES.sub(lambda m: os.environ.get(m.group(1).decode(), "").encode(), data)
    return _ENV_RE_STR.sub(lambda m: os.environ.get(m.group(1), ""), data)


@dataclass
class BucketOptions:
    """Where the object store configuration comes from."""

    config_file: str = ""
    config: str = ""


class FilesystemBucket:
    """An object store kept in a local directory, with '/' as delimiter."""

    def __init__(self, directory: str | os.PathLike) -> None:
        self.directory = Path(directory).resolve()

    def _path(self, name: str) -> Path:
        return self.directory / name.strip("/")

    def iter(self, prefix: str = "", recursive: bool = False) -> Iterator[str]:
        """Yield object names under prefix; directories end with '/' unless recursive."""
        prefix = prefix.strip("/")
        base = self._path(prefix) if prefix else self.directory
        if not base.is_dir():
            return
        head = f"{prefix}/" if prefix else ""
        for entry in sorted(base.iterdir(), key=lambda p: p.name):
            name = head + entry.name
            if entry.is_dir():
                if recursive:
                    yield from self.iter(name, True)
                else:
                    yield name + "/"
            else:
                yield name

    def get(self, name: str) -> BinaryIO:
        """Open an object for reading."""
        path = self._path(name)
        if not path.is_file():
            raise FileNotFoundError(f"object {name!r} does not exist")
        return path.open("rb")

    def exists(self, name: str) -> bool:
        """Return whether the object exists."""
        return self._path(name).exists()

    def upload(self, name: str, data: bytes | BinaryIO) -> None:
        """Store an object from bytes or a binary stream."""
        path = self._path(name)
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("wb") as out:
            if isinstance(data, (bytes, bytearray, memoryview)):
                out.write(data)
            else:
                shutil.copyfileobj(data, out)


def _load_bucket_config(content: bytes) -> dict:
    try:
        conf = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        raise ConfigError(f"unable to create bucket client: {exc}") from exc
    if not isinstance(conf, dict):
        raise ConfigError("unable to create bucket client: config must be a mapping")
    unknown = set(conf) - _BUCKET_KEYS
    if unknown:
        raise ConfigError(f"unable to create bucket client: unknown fields {sorted(unknown)}")
    return conf


def setup_bucket(options: BucketOptions) -> FilesystemBucket:
    """Create a bucket client from a config file or inline YAML."""
    if options.config_file:
        try:
            content = Path(options.config_file).read_bytes()
        except OSError as exc:
            raise ConfigError(f"unable to read objstore config file: {exc}") from exc
    elif options.config:
        content = options.config.encode()
    else:
        raise ConfigError(
            "objstore config is required "
            "(use --parquet.objstore-config or --parquet.objstore-config-file)"
        )
    if not content:
        raise ConfigError("objstore config is required")

    conf = _load_bucket_config(expand_env_parens(content))
    bucket_type = str(conf.get("type") or "").upper()
    if bucket_type != "FILESYSTEM":
        raise ConfigError(
            f"unable to create bucket client: bucket with type {bucket_type!r} is not supported"
        )
    fs_conf = conf.get("config") or {}
    if not isinstance(fs_conf, dict):
        raise ConfigError("unable to create bucket client: filesystem config must be a mapping")
    unknown = set(fs_conf) - _FILESYSTEM_KEYS
    if unknown:
        raise ConfigError(f"unable to create bucket client: unknown fields {sorted(unknown)}")
    directory = fs_conf.get("directory")
    if not directory:
        raise ConfigError("unable to create bucket client: missing directory for filesystem bucket")
    root = Path(str(directory))
    prefix = str(conf.get("prefix") or "").strip("/")
    return FilesystemBucket(root / prefix if prefix else root)


@dataclass
class TracingOptions:
    """Tracing exporter and sampling settings."""

    exporter_type: str = ""
    jaeger_endpoint: str = ""
    sampling_param: float = 0.1
    sampling_type: str = "PROBABILISTIC"


@dataclass(frozen=True)
class TracingSetup:
    """The tracing pipeline chosen from the options; no exporter means tracing is off."""

    exporter: str | None = None
    endpoint: str = ""
    sampler: str | None = None
    ratio: float = 0.0
    service_name: str = SERVICE_NAME
    service_version: str = SERVICE_VERSION


def setup_tracing(options: TracingOptions) -> TracingSetup:
    """Validate tracing options and describe the resulting pipeline."""
    if options.exporter_type not in _EXPORTER_TYPES:
        raise ConfigError(f"invalid exporter type {options.exporter_type}")
    if options.exporter_type == "":
        return TracingSetup()
    if options.sampling_type not in _SAMPLING_TYPES:
        raise ConfigError(f"invalid sampling type {options.sampling_type}")
    ratio = {
        "PROBABILISTIC": options.sampling_param,
        "ALWAYS": 1.0,
        "NEVER": 0.0,
    }[options.sampling_type]
    return TracingSetup(
        exporter=options.exporter_type,
        endpoint=options.jaeger_endpoint if options.exporter_type == "JAEGER" else "",
        sampler=options.sampling_type,
        ratio=ratio,
    )