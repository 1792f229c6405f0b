"""Fixed-size binary record layouts stored in database files."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import ClassVar

from ksearch.errors import BadArgumentError

_ENCODING = "utf-8"
_ERRORS = "surrogateescape"


def _encode(text: str, capacity: int, field: str) -> bytes:
    raw = text.encode(_ENCODING, _ERRORS)
    if len(raw) >= capacity:
        raise BadArgumentError(
            f"{field} of {len(raw)} bytes does not fit in {capacity} bytes: {text!r}"
        )
    return raw


def _decode(raw: bytes) -> str:
    return raw.split(b"\0", 1)[0].decode(_ENCODING, _ERRORS)


def _check_size(data: bytes, size: int, name: str) -> None:
    if len(data) != size:
        raise BadArgumentError(f"{name} needs {size} bytes, got {len(data)}")


@dataclass
class DBHeader:
    """Header at the start of every database file; read it before the records."""

    object_name: str = ""
    num_records: int = 0
    last_written: int = 0
    size: int = 0

    LOCK_SIZE: ClassVar[int] = 56
    NAME_SIZE: ClassVar[int] = 24
    STRUCT: ClassVar[struct.Struct] = struct.Struct("<56s24sQQQ")
    SIZE: ClassVar[int] = STRUCT.size

    def pack(self) -> bytes:
        name = _encode(self.object_name, self.NAME_SIZE, "object name")
        return self.STRUCT.pack(
            bytes(self.LOCK_SIZE), name, self.num_records, self.last_written, self.size
        )

    @classmethod
    def unpack(cls, data: bytes) -> DBHeader:
        _check_size(data, cls.SIZE, cls.__name__)
        _lock, name, num_records, last_written, size = cls.STRUCT.unpack(data)
        return cls(_decode(name), num_records, last_written, size)


@dataclass
class DirectoryPath:
    """A directory's full path."""

    path: str = ""

    PATH_SIZE: ClassVar[int] = 4096
    STRUCT: ClassVar[struct.Struct] = struct.Struct("<4096s")
    SIZE: ClassVar[int] = STRUCT.size

    def pack(self) -> bytes:
        return self.STRUCT.pack(_encode(self.path, self.PATH_SIZE, "path"))

    @classmethod
    def unpack(cls, data: bytes) -> DirectoryPath:
        _check_size(data, cls.SIZE, cls.__name__)
        (path,) = cls.STRUCT.unpack(data)
        return cls(_decode(path))


@dataclass
class FileName:
    """A file's name and the record number of its directory."""

    path: str = ""
    directory_record: int = 0

    PATH_SIZE: ClassVar[int] = 260
    STRUCT: ClassVar[struct.Struct] = struct.Struct("<260sI")
    SIZE: ClassVar[int] = STRUCT.size

    def pack(self) -> bytes:
        if not 0 <= self.directory_record <= 0xFFFFFFFF:
            raise BadArgumentError(f"directory record out of range: {self.directory_record}")
        return self.STRUCT.pack(
            _encode(self.path, self.PATH_SIZE, "file name"), self.directory_record
        )

    @classmethod
    def unpack(cls, data: bytes) -> FileName:
        _check_size(data, cls.SIZE, cls.__name__)
        path, directory_record = cls.STRUCT.unpack(data)
        return cls(_decode(path), directory_record)