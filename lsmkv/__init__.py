"""Storage building blocks for an LSM-tree key-value store: errors, options, LRU cache, write-ahead log and content-addressed revisions."""

__version__ = "0.1.0"
__all__ = ["errors", "options", "cache", "wal", "revision"]