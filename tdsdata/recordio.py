"""Fixed-size binary record files."""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from typing import BinaryIO, Iterable

from .models import Record

_CHUNK = 100


class FileDamagedError(IOError):
    """The file size is not a multiple of the record size."""

    def __init__(self, message: str = "file damaged"):
        super().__init__(message)


class RecordMarshaller(ABC):
    """Converts records to and from their fixed-size byte form."""

    @abstractmethod
    def to_bytes(self, record: Record) -> bytes:
        """Encode a record."""

    @abstractmethod
    def from_bytes(self, data: bytes) -> Record:
        """Decode a record."""


class RecordReader:
    """Reads records from a binary file."""

    def __init__(self, file: BinaryIO, record_size: int, marshaller: RecordMarshaller):
        self.file = file
        self.record_size = record_size
        self.marshaller = marshaller

    def count(self) -> int:
        """Number of records in the file."""
        self.file.flush()
        size = os.fstat(self.file.fileno()).st_size
        if size % self.record_size:
            raise FileDamagedError()
        return size // self.record_size

    def read(self, start: int, end: int = -1) -> list[Record]:
        """Read records ``start`` up to ``end`` exclusive; -1 means to the end."""
        if end == -1:
            end = self.count()
        size = self.record_size
        self.file.seek(start * size)
        result: list[Record] = []
        current = start
        while current < end:
            n = min(end - current, _CHUNK)
            buf = self.file.read(n * size)
            if len(buf) < n * size:
                raise IOError("read less data")
            result.extend(self.marshaller.from_bytes(buf[i:i + size]) for i in range(0, n * size, size))
            current += n
        return result


class RecordWriter:
    """Writes records to a binary file."""

    def __init__(self, file: BinaryIO, record_size: int, marshaller: RecordMarshaller):
        self.file = file
        self.record_size = record_size
        self.marshaller = marshaller

    def write(self, start: int, data: Iterable[Record]) -> None:
        """Truncate the file at record ``start`` and write ``data`` there."""
        offset = start * self.record_size
        self.file.truncate(offset)
        self.file.seek(offset)
        self.file.write(b"".join(self.marshaller.to_bytes(r) for r in data))
        self.file.flush()

    def write_raw(self, start: int, data: bytes) -> None:
        """Write raw bytes at record ``start``."""
        self.file.seek(start * self.record_size)
        self.file.write(data)
        self.file.flush()