# lsmkv

Storage building blocks for a log-structured merge-tree key-value store. These are a write-ahead log, a least-recently-used cache, and the content-addressed files that record which sorted tables make up each level. The package uses only the standard library.

## Modules

### `lsmkv.errors`

- `ErrorCode` is an enum of every failure the store can report. Each member's value is its short description, and `ErrorCode.describe()` returns it.
- `DBError(code, detail="")` is the exception raised on failure.
  - It keeps `code` and `detail` as attributes.
  - Its message is the description, followed by `": detail"` when a detail is given.

### `lsmkv.options`

`DBOptions` is a dataclass of settings. Its fields and defaults are:

| Field | Default |
| --- | --- |
| `create_if_not_exists` | `False` |
| `bits_per_key` | `10` |
| `mem_table_max_size` | 4 MiB |
| `block_cache_size` | `2048` |
| `background_workers_number` | `1` |
| `log_pattern` | logging format string |
| `log_level` | `logging.ERROR` |
| `logger_name` | logger name |
| `log_file_name` | log file name |
| `sync` | `False` |
| `level_files_limit` | `4` |

No module in the package reads these values. `Revision` takes its own `level_files_limit`.

### `lsmkv.cache`

`LRUCache(max_size=64, thread_safe=False)` is a bounded map that evicts the least recently used entry.

- `put(key, value)` stores a value and marks it most recently used.
- `get(key, default=None)` returns the value and marks it used, or returns `default` when the key is absent.
- `remove(key)` returns whether the key was present.
- `clear()` drops every entry.
- `len()` and `in` also work.

When `thread_safe` is true, every operation holds an internal lock.

### `lsmkv.wal`

This module is a write-ahead log. Each record has a 12-byte little-endian header followed by the payload. The header holds the CRC-32C of the payload, the record type and the payload length.

- `crc32c(data)` returns the CRC-32C (Castagnoli) checksum of `data`.
- `WALWriter(path)` opens the file for appending.
  - `add_record(data)` accepts `bytes` or `str`.
  - `sync()` flushes and calls fsync.
  - `close()` may be called twice safely.
  - `drop()` closes the file and deletes it.
- `WALReader(path)` reads records back in order.
  - `read_record()` returns the next record as `bytes`, or `None` at the end of the log.
  - Iterating over the reader yields every remaining record.
  - It also provides `close()` and `drop()`.

Both classes are context managers.

When reading, a header or payload cut short by the end of the file counts as the end of the log. So does a negative length. A record with an unknown type raises `DBError` with `ErrorCode.BAD_RECORD`. A checksum mismatch raises `DBError` with `ErrorCode.CHECK_SUM_ERROR`. Using a closed writer or reader raises `DBError` with `ErrorCode.IO_ERROR`.

### `lsmkv.revision`

This module holds the content-addressed metadata. Every file it writes is written atomically, through a temporary file and a rename, and is named by the hex SHA-256 of its own content.

#### `FileMeta`

A dataclass describing one sorted table. Its fields are:

- `sha256`
- `belong_to_level`
- `num_keys`
- `max_seq`
- `min_key`
- `max_key`
- `file_size`

`oid()` returns the hex digest.

#### `Level(level=-1)`

The set of tables in one level.

- Iteration yields the tables ordered by minimum key, then max sequence, then digest.
- `insert()` and `erase()` add and remove tables. An insert that equals an existing entry in that order is ignored.
- `len()` and truth testing also work.
- `clear()` removes every table and the checksum.
- `oid()` returns the level's object id. `has_checksum()` says whether it has one yet.
- `total_file_size()` and `max_seq()` summarise the tables.
- `build_file(directory)` writes the binary level file and returns its path.
- `load_from_file(directory, oid, sstable_dir=None)` reads a level file back.
  - A short or malformed file raises `ErrorCode.BAD_LEVEL`.
  - A missing file raises `ErrorCode.OPEN_FILE_ERROR`.
  - When `sstable_dir` is given, each table's size is read from `<sstable_dir>/<oid>.sst`. A missing table file raises `ErrorCode.STAT_FILE_ERROR`.

#### `Revision(levels=None, log_numbers=None, level_files_limit=4)`

A snapshot of all levels (five by default) plus the live log numbers.

- `level(index)` returns one level.
- `build_file(directory, level_directory=None)` writes one `"<level> <level-oid>"` line for each non-empty level. Levels that have no checksum yet are built first, when `level_directory` is given.
- `load_from_file(directory, oid, level_directory, sstable_dir=None)` loads a revision and every level it lists.
  - A missing revision file raises `ErrorCode.NOT_FOUND`.
  - A malformed line raises `ErrorCode.BAD_REVISION`.
- `pick_best_compaction_level()` returns the first level, excluding the last, that holds more than `level_files_limit` files. It returns `-1` when there is none.
- `push_log_number()` and `pop_log_number()` manage the queue of live logs, oldest first.
- `max_seq()` returns the highest sequence number over all levels.

## Installing

```
pip install .
```

To also install the test dependencies:

```
pip install ".[test]"
```

## Example

```python
import hashlib
import tempfile

from lsmkv.cache import LRUCache
from lsmkv.revision import FileMeta, Level, Revision
from lsmkv.wal import WALReader, WALWriter

cache = LRUCache(max_size=2)
cache.put("a", 1)
cache.put("b", 2)
assert cache.get("a") == 1

with WALWriter("000000.log") as wal:
    for record in (b"adl", b"is", b"god"):
        wal.add_record(record)
    wal.sync()

with WALReader("000000.log") as reader:
    assert list(reader) == [b"adl", b"is", b"god"]

root = tempfile.mkdtemp()
level0 = Level(0)
level0.insert(FileMeta(sha256=hashlib.sha256(b"table").digest(),
                       num_keys=2, max_seq=7, min_key=b"a", max_key=b"z"))
revision = Revision(levels=[level0] + [Level(i) for i in range(1, 5)])
revision.build_file(root, level_directory=root)

loaded = Revision()
loaded.load_from_file(root, revision.oid(), root)
assert loaded.max_seq() == 7
```

## What this package does not do

There is no database here. The package has no memtable, no sorted-table writer or reader, no bloom filter, and no compaction. It also has no `open`/`put`/`get`/`delete` interface and no command-line tool. `Level` and `Revision` record which tables exist, but they never open or read the tables themselves.

## Running the tests

```
pytest
```