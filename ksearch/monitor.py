"""Keep the directory and file name databases in step with a directory tree."""

from __future__ import annotations

import contextlib
import os
import sys
import threading
from collections.abc import Sequence

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ksearch.cli import IntArgument, Parser, StringArgument
from ksearch.errors import (
    BadArgumentError,
    KSearchError,
    NotFoundError,
    NullObjectError,
    Retcode,
    UsageError,
)
from ksearch.logger import error_string, is_directory, log_fatal, log_info, log_warn
from ksearch.qcdb import Database
from ksearch.records import DirectoryPath, FileName

_DEFAULT_POLL_SECONDS = 0.5


def split_file_path(path: str) -> tuple[str, str]:
    """Split ``path`` at its last separator into ``(directory, file name)``."""
    separators = {os.sep, os.altsep} - {None}
    index = max(path.rfind(sep) for sep in separators)
    if index < 0:
        raise NotFoundError(f"no directory separator in path: {path!r}")
    return path[:index], path[index + 1 :]


def _split(path: str) -> tuple[str, str]:
    try:
        return split_file_path(path)
    except NotFoundError:
        log_warn("Could not get path components for path: ", path)
        raise


def _find_directory(dir_db: Database[DirectoryPath], directory: str) -> int:
    return dir_db.find_first(lambda entry: entry.path == directory)


def _find_file(file_db: Database[FileName], name: str, dir_record: int) -> int:
    return file_db.find_first(
        lambda entry: entry.path == name and entry.directory_record == dir_record
    )


def _append_directory(dir_db: Database[DirectoryPath], directory: str) -> int:
    try:
        directory_object = DirectoryPath(directory)
        directory_object.pack()
    except BadArgumentError as exc:
        log_warn("Could not copy: ", directory, " to directory object due to error: ", exc)
        raise
    try:
        record = dir_db.append(directory_object)
    except KSearchError as exc:
        log_warn("Could not write: ", directory, " to directory database due to error: ",
                 int(exc.retcode))
        raise
    log_info("Added directory: ", directory)
    return record


def add_path(
    path: str,
    dir_db: Database[DirectoryPath],
    file_db: Database[FileName],
) -> int:
    """Record a new file or directory; return the record number written.

    A file is stored in ``file_db`` under the record of its directory, which is
    added to ``dir_db`` first when it is not there yet.
    """
    if is_directory(path):
        return _append_directory(dir_db, path)

    file_directory, file_name = _split(path)
    try:
        dir_record = _find_directory(dir_db, file_directory)
    except NotFoundError:
        dir_record = _append_directory(dir_db, file_directory)

    file_object = FileName(file_name, dir_record)
    try:
        file_object.pack()
    except BadArgumentError:
        log_warn("Could not write: ", file_name, " to file name database")
        raise
    try:
        record = file_db.append(file_object)
    except KSearchError as exc:
        log_warn("Could not write: ", path, " to file name database due to error: ",
                 int(exc.retcode))
        raise
    log_info("Added file: ", file_object.path, " with directory record: ", dir_record)
    return record


def remove_path(
    path: str,
    dir_db: Database[DirectoryPath],
    file_db: Database[FileName],
) -> None:
    """Delete the record of a file or directory; raise NotFoundError if it is unknown."""
    if is_directory(path):
        try:
            dir_record = _find_directory(dir_db, path)
        except KSearchError as exc:
            log_warn("Directory: ", path, " not found for deletion due to error: ",
                     int(exc.retcode))
            raise
        try:
            dir_db.delete(dir_record)
        except KSearchError as exc:
            log_warn("File: ", path, " could not be deleted due to error: ", int(exc.retcode))
            raise
        log_info("Deleted directory: ", path)
        return

    file_directory, file_name = _split(path)
    try:
        dir_record = _find_directory(dir_db, file_directory)
    except KSearchError as exc:
        log_warn("Directory: ", file_directory, " not found for deletion due to error: ",
                 int(exc.retcode))
        raise
    try:
        file_record = _find_file(file_db, file_name, dir_record)
    except KSearchError as exc:
        log_warn("File: ", file_name, " with directory record: ", dir_record,
                 " not found for deletion due to error: ", int(exc.retcode))
        raise
    try:
        file_db.delete(file_record)
    except KSearchError as exc:
        log_warn("File: ", path, " could not be deleted due to error: ", int(exc.retcode))
        raise
    log_info("Deleted file: ", path)


def get_rename_record(
    path: str,
    dir_db: Database[DirectoryPath],
    file_db: Database[FileName],
) -> int:
    """Return the file record of ``path``, the file about to be renamed."""
    file_directory, file_name = _split(path)
    try:
        dir_record = _find_directory(dir_db, file_directory)
    except KSearchError as exc:
        log_warn("Directory: ", file_directory, " not found for rename due to error: ",
                 int(exc.retcode))
        raise
    try:
        return _find_file(file_db, file_name, dir_record)
    except KSearchError as exc:
        log_warn("File: ", path, " with directory record: ", dir_record,
                 " not found for rename due to error: ", int(exc.retcode))
        raise


def rename_record(path: str, file_db: Database[FileName], record: int) -> None:
    """Give file ``record`` the file name of ``path``, keeping its directory record."""
    _file_directory, file_name = _split(path)
    try:
        file_object = file_db.read(record)
    except KSearchError as exc:
        log_warn("Could not read file record: ", record, " for rename: ", path,
                 " due to error: ", int(exc.retcode))
        raise
    file_object.path = file_name
    try:
        file_object.pack()
    except BadArgumentError as exc:
        log_warn("Could not write new file name: ", path, " to file record: ", record,
                 " due to error: ", exc)
        raise
    try:
        file_db.write(record, file_object)
    except KSearchError as exc:
        log_warn("Could not write file record: ", record, " for rename: ", path,
                 " due to error: ", int(exc.retcode))
        raise


class _IndexUpdater(FileSystemEventHandler):
    def __init__(self, dir_db: Database[DirectoryPath], file_db: Database[FileName]) -> None:
        super().__init__()
        self._dir_db = dir_db
        self._file_db = file_db
        self._lock = threading.Lock()

    def _add(self, path: str) -> None:
        with self._lock, contextlib.suppress(KSearchError):
            add_path(path, self._dir_db, self._file_db)

    def _remove(self, path: str) -> None:
        with self._lock, contextlib.suppress(KSearchError):
            remove_path(path, self._dir_db, self._file_db)

    def on_created(self, event: FileSystemEvent) -> None:
        self._add(os.fsdecode(event.src_path))

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._remove(os.fsdecode(event.src_path))

    def on_moved(self, event: FileSystemEvent) -> None:
        old_path = os.fsdecode(event.src_path)
        new_path = os.fsdecode(event.dest_path)
        log_info("Old name: ", old_path)
        self._remove(old_path)
        log_info("New name: ", new_path)
        self._add(new_path)


def monitor_directory(
    directory: str,
    dir_db: Database[DirectoryPath],
    file_db: Database[FileName],
    wait_time: int = 0,
    stop_event: threading.Event | None = None,
) -> None:
    """Apply file and directory additions, deletions and renames below ``directory``.

    Runs until ``stop_event`` is set. ``wait_time`` is the interval in milliseconds
    between checks of the stop request; 0 uses the default.
    """
    log_info("Monitoring directory: ", directory)
    if stop_event is None:
        stop_event = threading.Event()

    if not os.path.isdir(directory):
        log_fatal("Error opening directory: ", directory, " due to error: ",
                  error_string(2))
        raise NotFoundError(f"cannot monitor {directory!r}: not a directory")

    interval = wait_time / 1000 if wait_time > 0 else _DEFAULT_POLL_SECONDS
    observer = Observer()
    try:
        observer.schedule(_IndexUpdater(dir_db, file_db), directory, recursive=True)
        observer.start()
    except OSError as exc:
        log_fatal("Error reading directory changes for: ", directory, " due to error: ", exc)
        raise NullObjectError(f"cannot watch {directory!r}: {exc}") from exc

    try:
        while not stop_event.wait(interval):
            if not observer.is_alive():
                log_fatal("Error reading directory changes for: ", directory)
                raise NullObjectError(f"stopped receiving changes for {directory!r}")
    finally:
        observer.stop()
        observer.join()


def main(argv: Sequence[str] | None = None) -> int:
    """Run the monitoring command; returns the process exit status."""
    args = sys.argv[1:] if argv is None else list(argv)

    parser = Parser("kMonitor", "Monitor for file additions and deletions")
    directory_db_arg = StringArgument(
        "-d", "The path to the DIRECTORYPATH database (DIRECTORYPATH.qcdb)", True
    )
    filename_db_arg = StringArgument(
        "-f", "The path to the FILENAME database (FILENAME.qcdb)", True
    )
    wait_time_arg = IntArgument(
        "-w", "Interval to wait for file changes in milliseconds. Use 0 for infinite.", False
    )
    parser.add_arg(directory_db_arg).add_arg(filename_db_arg).add_arg(wait_time_arg)

    try:
        parser.parse(args)
    except UsageError as exc:
        parser.usage()
        return int(exc.retcode)

    with contextlib.ExitStack() as stack:
        try:
            dir_db = stack.enter_context(Database(directory_db_arg.value(), DirectoryPath))
            root_directory = dir_db.read(0)
        except KSearchError:
            log_fatal("Error reading root monitor directory for database: ",
                      directory_db_arg.value())
            return int(Retcode.NOT_FOUND)

        try:
            file_db = stack.enter_context(Database(filename_db_arg.value(), FileName))
        except KSearchError as exc:
            log_fatal("Error opening file name database: ", filename_db_arg.value())
            return int(exc.retcode)

        wait_time = max(0, wait_time_arg.value()) if wait_time_arg.in_use else 0

        try:
            monitor_directory(root_directory.path, dir_db, file_db, wait_time)
        except KeyboardInterrupt:
            log_info("Requesting monitor stop")
        except KSearchError as exc:
            return int(exc.retcode)

    return int(Retcode.OK)