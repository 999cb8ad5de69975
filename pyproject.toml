[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "lsmkv"
version = "0.1.0"
description = "Storage building blocks for a log-structured merge-tree key-value store: write-ahead log, LRU cache and content-addressed level and revision files"
requires-python = ">=3.10"
dependencies = []
keywords = ["lsm-tree", "key-value", "storage", "write-ahead-log", "lru-cache", "crc32c"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database :: Database Engines/Servers",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["lsmkv"]

[tool.pytest.ini_options]
addopts = "-ra"
