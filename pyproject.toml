[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "parquetgw"
version = "0.1.0"
description = "Building blocks for a gateway that serves Prometheus and Thanos style queries from metric blocks stored as parquet files in object storage"
requires-python = ">=3.10"
keywords = [
    "prometheus",
    "thanos",
    "parquet",
    "promql",
    "object-storage",
    "metrics",
    "label-matchers",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database :: Front-Ends",
    "Topic :: System :: Monitoring",
]
dependencies = [
    "pyyaml",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["parquetgw"]

[tool.hatch.build.targets.sdist]
include = [
    "parquetgw",
    "tests",
]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
