"""Tunable settings for a database instance."""

from __future__ import annotations

import logging
from dataclasses import dataclass


@dataclass
class DBOptions:
    """Options controlling how a database is opened and operated."""

    # database operation
    create_if_not_exists: bool = False

    # sstable bloom filter
    bits_per_key: int = 10

    # memtable: freeze once it grows past this many bytes (4 MiB)
    mem_table_max_size: int = 1 << 22

    # number of data blocks kept in the block cache
    block_cache_size: int = 1 << 11

    # background work
    background_workers_number: int = 1

    # logging
    log_pattern: str = "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"
    log_level: int = logging.ERROR
    logger_name: str = "monitor_logger"
    log_file_name: str = "monitor.log"

    # fsync after each write
    sync: bool = False

    # major compaction: a level with more files than this is compacted
    level_files_limit: int = 4