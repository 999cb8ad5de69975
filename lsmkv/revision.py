"""Levels and revisions: content-addressed snapshots of the on-disk table layout.

A level file is little-endian binary::

    int32 level | int32 file count
    then for each sstable:
    int32 num_keys | int64 max_seq | int32 len | min key | int32 len | max key
    | 64 ASCII hex digits of the sstable's SHA-256

A revision file is text, one ``"<level> <level-oid>\\n"`` line per non-empty
level. Every file is named by the hex SHA-256 of its own content.
"""

from __future__ import annotations

import hashlib
import logging
import os
import struct
import tempfile
from collections import deque
from dataclasses import dataclass
from typing import Iterable, Iterator

from .errors import DBError, ErrorCode

log = logging.getLogger(__name__)

DIGEST_SIZE = 32
NUM_LEVELS = 5
MAX_LEVEL = 5

_INT32 = struct.Struct("<i")
_INT64 = struct.Struct("<q")
_LEVEL_HEADER = struct.Struct("<ii")
_HEX_OID_LEN = DIGEST_SIZE * 2
_EMPTY_DIGEST = bytes(DIGEST_SIZE)


def _digest_from_hex(oid: str) -> bytes:
    try:
        digest = bytes.fromhex(oid)
    except ValueError as exc:
        raise DBError(ErrorCode.BAD_FILE_META, f"bad object id {oid!r}") from exc
    if len(digest) != DIGEST_SIZE:
        raise DBError(ErrorCode.BAD_FILE_META, f"bad object id {oid!r}")
    return digest


def _sstable_path(sstable_dir: str | os.PathLike[str], oid: str) -> str:
    return os.path.join(os.fspath(sstable_dir), f"{oid}.sst")


def _write_object(directory: str | os.PathLike[str], prefix: str, content: bytes) -> tuple[str, bytes]:
    """Write ``content`` atomically under the hex of its SHA-256; return path and digest."""
    directory = os.fspath(directory)
    digest = hashlib.sha256(content).digest()
    final_path = os.path.join(directory, digest.hex())
    try:
        fd, temp_path = tempfile.mkstemp(prefix=prefix, dir=directory)
    except OSError as exc:
        raise DBError(ErrorCode.MAKESTEMP_ERROR, str(exc)) from exc
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(content)
    except OSError as exc:
        os.unlink(temp_path)
        raise DBError(ErrorCode.IO_ERROR, str(exc)) from exc
    try:
        os.replace(temp_path, final_path)
    except OSError as exc:
        os.unlink(temp_path)
        raise DBError(ErrorCode.RENAME_FILE_ERROR, str(exc)) from exc
    return final_path, digest


@dataclass
class FileMeta:
    """Description of one sstable: its key range, size and content hash."""

    sha256: bytes = _EMPTY_DIGEST
    belong_to_level: int = -1
    num_keys: int = 0
    max_seq: int = 0
    min_key: bytes = b""
    max_key: bytes = b""
    file_size: int = 0

    def oid(self) -> str:
        """Return the sstable's object id: the hex of its SHA-256."""
        return self.sha256.hex()

    @property
    def sort_key(self) -> tuple[bytes, int, bytes]:
        return (self.min_key, self.max_seq, self.sha256)


class _Reader:
    """Cursor over a level file's bytes that fails with BAD_LEVEL when short."""

    def __init__(self, data: bytes, pos: int) -> None:
        self._data = data
        self._pos = pos

    def take(self, size: int) -> bytes:
        if size < 0 or self._pos + size > len(self._data):
            raise DBError(ErrorCode.BAD_LEVEL, "truncated level file")
        chunk = self._data[self._pos : self._pos + size]
        self._pos += size
        return chunk

    def int32(self) -> int:
        return _INT32.unpack(self.take(_INT32.size))[0]

    def int64(self) -> int:
        return _INT64.unpack(self.take(_INT64.size))[0]


class Level:
    """The set of sstables making up one level, kept in key order."""

    def __init__(self, level: int = -1) -> None:
        self.level = level
        self._files: dict[tuple[bytes, int, bytes], FileMeta] = {}
        self._digest = _EMPTY_DIGEST

    def __len__(self) -> int:
        return len(self._files)

    def __bool__(self) -> bool:
        return bool(self._files)

    def __iter__(self) -> Iterator[FileMeta]:
        return iter([self._files[key] for key in sorted(self._files)])

    def __str__(self) -> str:
        files = "".join(f"{meta}\n" for meta in self)
        return f"@Level[ files_meta_: {files} ]"

    def insert(self, file_meta: FileMeta) -> None:
        """Add an sstable; one equal in order to an existing entry is ignored."""
        self._files.setdefault(file_meta.sort_key, file_meta)

    def erase(self, file_meta: FileMeta) -> None:
        """Remove an sstable if present."""
        self._files.pop(file_meta.sort_key, None)

    def clear(self) -> None:
        """Forget every sstable and the checksum."""
        self._files.clear()
        self._digest = _EMPTY_DIGEST

    def oid(self) -> str:
        """Return the level's object id; all zeros until built or loaded."""
        return self._digest.hex()

    def has_checksum(self) -> bool:
        return self._digest != _EMPTY_DIGEST

    def total_file_size(self) -> int:
        return sum(meta.file_size for meta in self._files.values())

    def max_seq(self) -> int:
        return max((meta.max_seq for meta in self._files.values()), default=0)

    def _encode(self) -> bytes:
        parts = [_LEVEL_HEADER.pack(self.level, len(self._files))]
        for meta in self:
            log.debug("num_keys: %d max_seq: %d", meta.num_keys, meta.max_seq)
            parts += [
                _INT32.pack(meta.num_keys),
                _INT64.pack(meta.max_seq),
                _INT32.pack(len(meta.min_key)),
                meta.min_key,
                _INT32.pack(len(meta.max_key)),
                meta.max_key,
                meta.oid().encode("ascii"),
            ]
        return b"".join(parts)

    def build_file(self, directory: str | os.PathLike[str]) -> str:
        """Write the level file into ``directory``; return its path."""
        path, self._digest = _write_object(directory, "tmp_lvl", self._encode())
        log.info("level file %s created", path)
        return path

    def load_from_file(
        self,
        directory: str | os.PathLike[str],
        oid: str,
        sstable_dir: str | os.PathLike[str] | None = None,
    ) -> None:
        """Read the level file named ``oid`` and add its sstables.

        With ``sstable_dir`` given, each sstable's size is taken from its file.
        """
        self._digest = _digest_from_hex(oid)
        path = os.path.join(os.fspath(directory), oid)
        try:
            with open(path, "rb") as handle:
                data = handle.read()
        except OSError as exc:
            log.error("open level file %s failed", path)
            raise DBError(ErrorCode.OPEN_FILE_ERROR, path) from exc

        if len(data) <= _LEVEL_HEADER.size:
            raise DBError(ErrorCode.BAD_LEVEL, f"{path} is too short")
        level, file_num = _LEVEL_HEADER.unpack_from(data)
        if not 0 <= level <= MAX_LEVEL or file_num <= 0:
            raise DBError(ErrorCode.BAD_LEVEL, f"{path}: level {level}, {file_num} files")
        log.info("level file %s is loading, size %d", path, len(data))

        reader = _Reader(data, _LEVEL_HEADER.size)
        for _ in range(file_num):
            num_keys = reader.int32()
            max_seq = reader.int64()
            min_key = reader.take(reader.int32())
            max_key = reader.take(reader.int32())
            try:
                sha_hex = reader.take(_HEX_OID_LEN).decode("ascii")
            except UnicodeDecodeError as exc:
                raise DBError(ErrorCode.BAD_LEVEL, "bad sstable id") from exc
            meta = FileMeta(
                sha256=_digest_from_hex(sha_hex),
                belong_to_level=self.level,
                num_keys=num_keys,
                max_seq=max_seq,
                min_key=min_key,
                max_key=max_key,
            )
            if sstable_dir is not None:
                sst_path = _sstable_path(sstable_dir, sha_hex)
                try:
                    meta.file_size = os.path.getsize(sst_path)
                except OSError as exc:
                    raise DBError(ErrorCode.STAT_FILE_ERROR, sst_path) from exc
            self.insert(meta)


class Revision:
    """A full snapshot of every level plus the write-ahead logs still live."""

    def __init__(
        self,
        levels: Iterable[Level] | None = None,
        log_numbers: Iterable[int] | None = None,
        level_files_limit: int = 4,
    ) -> None:
        self.levels: list[Level] = (
            list(levels) if levels is not None else [Level(i) for i in range(NUM_LEVELS)]
        )
        self.log_numbers: deque[int] = deque(log_numbers or ())
        self.level_files_limit = level_files_limit
        self._digest = _EMPTY_DIGEST

    def __str__(self) -> str:
        logs = "".join(f"{num} " for num in self.log_numbers)
        body = "".join(f"level[{i}]:{level}\n" for i, level in enumerate(self.levels))
        return f"@Revision[log_nums_:{logs}\n{body} ]"

    def level(self, index: int) -> Level:
        return self.levels[index]

    def oid(self) -> str:
        """Return the revision's object id; all zeros until built or loaded."""
        return self._digest.hex()

    def build_file(
        self,
        directory: str | os.PathLike[str],
        level_directory: str | os.PathLike[str] | None = None,
    ) -> str:
        """Write the revision file into ``directory``; return its path.

        Non-empty levels without a checksum are first built into
        ``level_directory`` when one is given.
        """
        lines = []
        for level in self.levels:
            if not level:
                continue
            if not level.has_checksum() and level_directory is not None:
                level.build_file(level_directory)
            lines.append(f"{level.level} {level.oid()}\n")
        path, self._digest = _write_object(directory, "tmp_rev", "".join(lines).encode("ascii"))
        log.info("rev file %s created", path)
        return path

    def load_from_file(
        self,
        directory: str | os.PathLike[str],
        oid: str,
        level_directory: str | os.PathLike[str],
        sstable_dir: str | os.PathLike[str] | None = None,
    ) -> None:
        """Read the revision named ``oid`` and load every level it lists."""
        self._digest = _digest_from_hex(oid)
        path = os.path.join(os.fspath(directory), oid)
        log.info("load rev file %s", path)
        try:
            with open(path, encoding="ascii") as handle:
                lines = handle.read().splitlines()
        except OSError as exc:
            log.error("open rev file %s failed", path)
            raise DBError(ErrorCode.NOT_FOUND, path) from exc

        for line in lines:
            if not line:
                continue
            fields = line.split()
            try:
                number, level_oid = int(fields[0]), fields[1]
            except (IndexError, ValueError) as exc:
                raise DBError(ErrorCode.BAD_REVISION, f"bad line {line!r}") from exc
            if not 0 <= number < len(self.levels):
                raise DBError(ErrorCode.BAD_REVISION, f"bad level {number}")
            level = self.levels[number]
            level.level = number
            try:
                level.load_from_file(level_directory, level_oid, sstable_dir)
            except DBError:
                log.error("load level %d %s from file %s failed", number, level_oid, path)
                raise

    def pick_best_compaction_level(self) -> int:
        """Return the first level (not the last) over the file limit, or -1."""
        for index, level in enumerate(self.levels[:-1]):
            if len(level) > self.level_files_limit:
                return index
        return -1

    def push_log_number(self, number: int) -> None:
        self.log_numbers.append(number)

    def pop_log_number(self) -> int:
        """Remove and return the oldest log number."""
        return self.log_numbers.popleft()

    def max_seq(self) -> int:
        return max((level.max_seq() for level in self.levels), default=0)