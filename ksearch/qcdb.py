"""A file-backed database of fixed-size records, mapped into memory."""

from __future__ import annotations

import mmap
import os
import struct
import threading
from collections.abc import Callable, Iterable, Iterator
from typing import Any, Generic, Protocol, TypeVar

from ksearch.errors import (
    BadArgumentError,
    DatabaseUnavailableError,
    EndOfFileError,
    NotFoundError,
    NullObjectError,
)
from ksearch.records import DBHeader


class Record(Protocol):
    SIZE: int

    def pack(self) -> bytes: ...

    @classmethod
    def unpack(cls, data: bytes) -> Any: ...


T = TypeVar("T", bound=Record)

# num_records, last_written and size follow the lock and the object name.
_FIELDS = struct.Struct("<QQQ")
_FIELDS_OFFSET = DBHeader.LOCK_SIZE + DBHeader.NAME_SIZE


class Database(Generic[T]):
    """Records of one type stored after a :class:`DBHeader`.

    The header's ``size`` holds the highest record number in use; scans cover
    records ``0..size`` and skip empty (all zero) slots.
    """

    def __init__(self, path: str | os.PathLike[str], record_type: type[T]) -> None:
        self.path = os.fspath(path)
        self.record_type = record_type
        self._lock = threading.RLock()
        self._mm: mmap.mmap | None = None
        try:
            self._file = open(self.path, "r+b")
        except OSError as exc:
            raise DatabaseUnavailableError(f"cannot open database {self.path}: {exc}") from exc
        try:
            self._file_size = os.fstat(self._file.fileno()).st_size
            if self._file_size < DBHeader.SIZE:
                raise DatabaseUnavailableError(
                    f"database {self.path} is smaller than its header"
                )
            self._mm = mmap.mmap(self._file.fileno(), 0)
        except (OSError, ValueError) as exc:
            self._file.close()
            raise DatabaseUnavailableError(f"cannot map database {self.path}: {exc}") from exc
        except DatabaseUnavailableError:
            self._file.close()
            raise
        header = DBHeader.unpack(bytes(self._mm[: DBHeader.SIZE]))
        self.object_name = header.object_name
        self._num_records = header.num_records
        self._empty = bytes(record_type.SIZE)

    @classmethod
    def create(
        cls,
        path: str | os.PathLike[str],
        record_type: type[T],
        num_records: int,
        object_name: str | None = None,
    ) -> Database[T]:
        """Write a new, empty database file with room for ``num_records`` and open it."""
        if num_records < 1:
            raise BadArgumentError(f"a database needs at least one record, got {num_records}")
        name = record_type.__name__.upper() if object_name is None else object_name
        header = DBHeader(object_name=name, num_records=num_records).pack()
        with open(path, "wb") as file:
            file.write(header)
            file.truncate(DBHeader.SIZE + num_records * record_type.SIZE)
        return cls(path, record_type)

    # -- header access -------------------------------------------------

    @property
    def is_open(self) -> bool:
        return self._mm is not None

    def _map(self) -> mmap.mmap:
        if self._mm is None:
            raise DatabaseUnavailableError(f"database {self.path} is not open")
        return self._mm

    def _fields(self) -> tuple[int, int]:
        _num, last_written, size = _FIELDS.unpack_from(self._map(), _FIELDS_OFFSET)
        return last_written, size

    def _set_fields(self, last_written: int, size: int) -> None:
        _FIELDS.pack_into(self._map(), _FIELDS_OFFSET, self._num_records, last_written, size)

    @property
    def num_records(self) -> int:
        """Number of record slots; 0 when the database is closed."""
        return self._num_records if self.is_open else 0

    @property
    def last_written(self) -> int:
        """Record number of the last write; 0 when the database is closed."""
        if not self.is_open:
            return 0
        with self._lock:
            return self._fields()[0]

    @property
    def size(self) -> int:
        """Highest record number in use; 0 when the database is closed."""
        if not self.is_open:
            return 0
        with self._lock:
            return self._fields()[1]

    # -- slots -----------------------------------------------------------

    @property
    def _capacity(self) -> int:
        in_file = (self._file_size - DBHeader.SIZE) // self.record_type.SIZE
        return min(self._num_records, in_file)

    def _offset(self, record: int) -> int:
        self._map()
        if not isinstance(record, int) or not 0 <= record < self._capacity:
            raise NullObjectError(f"no record {record!r} in {self.path}")
        return DBHeader.SIZE + record * self.record_type.SIZE

    def _raw(self, record: int) -> bytes:
        offset = DBHeader.SIZE + record * self.record_type.SIZE
        return bytes(self._map()[offset : offset + self.record_type.SIZE])

    def _put(self, record: int, data: bytes) -> None:
        offset = DBHeader.SIZE + record * self.record_type.SIZE
        self._map()[offset : offset + self.record_type.SIZE] = data

    def _pack(self, obj: T) -> bytes:
        data = obj.pack()
        if len(data) != self.record_type.SIZE:
            raise BadArgumentError(
                f"object packs to {len(data)} bytes, expected {self.record_type.SIZE}"
            )
        return data

    def _iter_used(self) -> Iterator[tuple[int, T]]:
        _last, size = self._fields()
        for record in range(min(size, self._capacity - 1) + 1):
            raw = self._raw(record)
            if raw != self._empty:
                yield record, self.record_type.unpack(raw)

    # -- reading ---------------------------------------------------------

    def read(self, record: int) -> T:
        """Return the object stored at ``record``."""
        offset = self._offset(record)
        with self._lock:
            return self.record_type.unpack(
                bytes(self._map()[offset : offset + self.record_type.SIZE])
            )

    def read_many(self, records: Iterable[int]) -> list[tuple[int, T]]:
        """Return ``(record, object)`` pairs ordered by record number."""
        ordered = sorted(records)
        for record in ordered:
            self._offset(record)
        with self._lock:
            return [(record, self.record_type.unpack(self._raw(record))) for record in ordered]

    # -- writing ---------------------------------------------------------

    def write(self, record: int, obj: T) -> None:
        """Store ``obj`` at ``record``, overwriting what was there."""
        self._offset(record)
        data = self._pack(obj)
        with self._lock:
            _last, size = self._fields()
            self._put(record, data)
            self._set_fields(record, max(size, record))

    def append(self, obj: T) -> int:
        """Store ``obj`` in the first free slot from the last written one on.

        Returns the record number used; raises NotFoundError when no slot is free.
        """
        data = self._pack(obj)
        with self._lock:
            last_written, size = self._fields()
            for record in range(last_written, self._capacity):
                if self._raw(record) == self._empty:
                    self._put(record, data)
                    self._set_fields(record, max(size, record))
                    return record
        raise NotFoundError(f"no free record left in {self.path}")

    def write_many(self, items: Iterable[tuple[int, T]]) -> None:
        """Store each ``(record, object)`` pair; nothing is written if any record is invalid."""
        ordered = sorted(items, key=lambda item: item[0])
        if not ordered:
            return
        prepared = []
        for record, obj in ordered:
            self._offset(record)
            prepared.append((record, self._pack(obj)))
        with self._lock:
            _last, size = self._fields()
            for record, data in prepared:
                self._put(record, data)
            highest = prepared[-1][0]
            self._set_fields(highest, max(size, highest))

    def append_many(self, objs: Iterable[T]) -> list[int]:
        """Fill free slots from the last written one on, in order.

        Afterwards ``last_written`` points at the next free slot. Returns the
        record numbers used; raises EndOfFileError if not all objects fit, after
        writing those that did.
        """
        packed = [self._pack(obj) for obj in objs]
        written: list[int] = []
        with self._lock:
            last_written, size = self._fields()
            capacity = self._capacity
            stop = max(last_written, capacity)
            for record in range(last_written, capacity):
                if self._raw(record) != self._empty:
                    continue
                if len(written) == len(packed):
                    last_written = record
                    stop = record
                    break
                self._put(record, packed[len(written)])
                written.append(record)
            self._set_fields(last_written, max(size, min(stop, capacity - 1)))
        if len(written) < len(packed):
            raise EndOfFileError(
                f"only {len(written)} of {len(packed)} objects fit in {self.path}"
            )
        return written

    def delete(self, record: int) -> None:
        """Empty the slot at ``record``; the size shrinks if it was the highest."""
        self._offset(record)
        with self._lock:
            last_written, size = self._fields()
            self._put(record, self._empty)
            if size == record:
                size = next(
                    (r for r in range(record - 1, -1, -1) if self._raw(r) != self._empty),
                    0,
                )
                self._set_fields(last_written, size)

    def clear(self) -> None:
        """Empty every slot and reset the header counters."""
        with self._lock:
            mm = self._map()
            start = DBHeader.SIZE
            end = start + self._capacity * self.record_type.SIZE
            mm[start:end] = bytes(end - start)
            self._set_fields(0, 0)

    # -- searching -------------------------------------------------------

    def find_first(self, predicate: Callable[[T], bool]) -> int:
        """Return the number of the first used record matching ``predicate``."""
        with self._lock:
            for record, obj in self._iter_used():
                if predicate(obj):
                    return record
        raise NotFoundError(f"no matching record in {self.path}")

    def find_all(self, predicate: Callable[[T], bool]) -> list[T]:
        """Return every used object matching ``predicate``, in record order."""
        with self._lock:
            return [obj for _record, obj in self._iter_used() if predicate(obj)]

    # -- lifetime --------------------------------------------------------

    def close(self) -> None:
        with self._lock:
            if self._mm is not None:
                self._mm.flush()
                self._mm.close()
                self._mm = None
            self._file.close()

    def __enter__(self) -> Database[T]:
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()