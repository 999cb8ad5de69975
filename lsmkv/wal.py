"""Write-ahead log: checksummed, length-prefixed records in an append-only file.

Each record is a 12-byte little-endian header (CRC-32C of the payload,
record type, payload length) followed by the payload.
"""

from __future__ import annotations

import logging
import os
import struct
from enum import IntEnum
from typing import BinaryIO, Iterator

from .errors import DBError, ErrorCode

log = logging.getLogger(__name__)

_HEADER = struct.Struct("<Iii")


def _make_crc32c_table() -> list[int]:
    table = []
    for n in range(256):
        c = n
        for _ in range(8):
            c = (c >> 1) ^ 0x82F63B78 if c & 1 else c >> 1
        table.append(c)
    return table


_CRC32C_TABLE = _make_crc32c_table()


def crc32c(data: bytes) -> int:
    """Return the CRC-32C (Castagnoli) checksum of ``data``."""
    crc = 0xFFFFFFFF
    for byte in data:
        crc = _CRC32C_TABLE[(crc ^ byte) & 0xFF] ^ (crc >> 8)
    return crc ^ 0xFFFFFFFF


class RecordType(IntEnum):
    """Kinds of WAL record."""

    KV = 0


def _as_bytes(data: bytes | str) -> bytes:
    return data.encode() if isinstance(data, str) else bytes(data)


class WALWriter:
    """Appends records to a write-ahead log file."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = os.fspath(path)
        self._file: BinaryIO | None = open(self.path, "ab")

    def _handle(self) -> BinaryIO:
        if self._file is None:
            raise DBError(ErrorCode.IO_ERROR, f"WAL {self.path} is closed")
        return self._file

    def add_record(self, data: bytes | str) -> None:
        """Append one record holding ``data``."""
        payload = _as_bytes(data)
        handle = self._handle()
        handle.write(_HEADER.pack(crc32c(payload), RecordType.KV, len(payload)))
        handle.write(payload)

    def sync(self) -> None:
        """Flush buffered records and force them to disk."""
        handle = self._handle()
        handle.flush()
        os.fsync(handle.fileno())

    def close(self) -> None:
        """Close the log file; closing twice is harmless."""
        if self._file is not None:
            self._file.close()
            self._file = None

    def drop(self) -> None:
        """Close and delete the log file."""
        log.info("Drop WAL file %s", self.path)
        self.close()
        os.remove(self.path)

    def __enter__(self) -> WALWriter:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


class WALReader:
    """Reads records back from a write-ahead log file in order."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = os.fspath(path)
        self._file: BinaryIO | None = open(self.path, "rb")

    def read_record(self) -> bytes | None:
        """Return the next record, or None at the end of the log.

        A record cut short by the end of the file counts as the end of
        the log. Raises DBError for a bad record type or checksum.
        """
        if self._file is None:
            raise DBError(ErrorCode.IO_ERROR, f"WAL {self.path} is closed")
        header = self._file.read(_HEADER.size)
        if len(header) != _HEADER.size:
            return None
        checksum, record_type, length = _HEADER.unpack(header)
        if record_type != RecordType.KV:
            log.error("read WAL type error")
            raise DBError(ErrorCode.BAD_RECORD, f"record type {record_type}")
        if length < 0:
            return None
        payload = self._file.read(length)
        if len(payload) != length:
            return None
        if checksum != crc32c(payload):
            log.error("check sum error")
            raise DBError(ErrorCode.CHECK_SUM_ERROR, self.path)
        return payload

    def __iter__(self) -> Iterator[bytes]:
        while (record := self.read_record()) is not None:
            yield record

    def drop(self) -> None:
        """Close and delete the log file."""
        log.info("Drop WAL file %s", self.path)
        self.close()
        os.remove(self.path)

    def close(self) -> None:
        """Close the log file; closing twice is harmless."""
        if self._file is not None:
            self._file.close()
            self._file = None

    def __enter__(self) -> WALReader:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()