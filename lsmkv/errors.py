"""Error codes and the exception raised by the storage engine."""

from __future__ import annotations

from enum import Enum


class ErrorCode(Enum):
    """Reasons a storage operation can fail; each value is its description."""

    NOT_FOUND = "not found"
    IS_NOT_DIRECTORY = "is not directory"
    CREATE_DIRECTORY_FAILED = "create directory failed"
    DESTROY_DIRECTORY_FAILED = "destroy directory failed"
    DESTROY_FILE_FAILED = "destroy file failed"
    UN_IMPLEMENTED = "un implemented"
    EXISTED = "existed"
    OPEN_FILE_ERROR = "open file error"
    IO_ERROR = "io error"
    CLOSE_FILE_ERROR = "close file error"
    RENAME_FILE_ERROR = "rename file error"
    MAKESTEMP_ERROR = "make temp error"
    FILTER_BLOCK_ERROR = "filter block error"
    FOOTER_BLOCK_ERROR = "footer block error"
    UN_SUPPORTED_FORMAT = "unsupported format"
    DB_CLOSED = "db closed"
    STAT_FILE_ERROR = "stat file error"
    MMAP_ERROR = "mmap error"
    OUT_OF_RANGE = "out of range"
    BAD_LEVEL = "bad level"
    BAD_REVISION = "bad revision"
    BAD_FILE_META = "bad file meta"
    BAD_RECORD = "bad record"
    FILE_EOF = "file eof"
    CHECK_SUM_ERROR = "check sum error"
    NOEXCEPT_SIZE = "noexcept size"
    BAD_FILE_PATH = "bad file path"
    BAD_CURRENT_FILE = "bad current file"
    NEW_SSTABLE_ERROR = "new sstable error"

    def describe(self) -> str:
        """Return the human-readable description of this code."""
        return self.value


class DBError(Exception):
    """Raised when a storage operation fails."""

    def __init__(self, code: ErrorCode, detail: str = "") -> None:
        self.code = code
        self.detail = detail
        message = code.describe()
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)