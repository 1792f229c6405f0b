"""Index a directory tree into the directory and file name databases."""

from __future__ import annotations

import os
import sys
from collections.abc import Sequence

from ksearch.cli import Parser, StringArgument
from ksearch.errors import BadArgumentError, EndOfFileError, KSearchError, Retcode, UsageError
from ksearch.logger import log_info, log_warn
from ksearch.qcdb import Database
from ksearch.records import DirectoryPath, FileName


def _entries(directory: str) -> list[os.DirEntry[str]]:
    try:
        with os.scandir(directory) as scan:
            return sorted(scan, key=lambda entry: entry.name)
    except OSError:
        return []


def _is_dir(entry: os.DirEntry[str]) -> bool:
    try:
        return entry.is_dir(follow_symlinks=False)
    except OSError:
        return False


def _index(
    directory: str,
    dir_db: Database[DirectoryPath],
    file_db: Database[FileName],
    total: int,
) -> int:
    try:
        directory_record = dir_db.append(DirectoryPath(directory))
    except BadArgumentError:
        log_warn("Error copying file path to database entry: ", directory)
        return total

    files: list[FileName] = []
    for entry in _entries(directory):
        # Skips ".", ".." and hidden entries alike.
        if entry.name.startswith("."):
            continue
        if _is_dir(entry):
            total = _index(directory + os.sep + entry.name, dir_db, file_db, total)
            continue
        files.append(FileName(entry.name, directory_record))

    if files:
        try:
            file_db.append_many(files)
        except BadArgumentError as exc:
            log_warn("Error copying file path to database entry: ", exc)
            return total
        except EndOfFileError:
            log_warn("Could not write files for directory: ", directory)
            raise
        total += len(files)
        sys.stdout.write(f"\rFiles indexed: {total}")
        sys.stdout.flush()

    return total


def index_directory(
    directory: str | os.PathLike[str],
    dir_db: Database[DirectoryPath],
    file_db: Database[FileName],
) -> int:
    """Record ``directory`` and everything below it; return the number of files indexed.

    Each directory gets a record in ``dir_db``; each file a record in ``file_db``
    naming that directory's record. Entries whose names start with a dot are skipped.
    """
    return _index(os.fspath(directory), dir_db, file_db, 0)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the indexing command; returns the process exit status."""
    args = sys.argv[1:] if argv is None else list(argv)

    directory_arg = StringArgument("--directory", "The directory to start watching", True)
    directory_db_arg = StringArgument(
        "-d", "The path to the DIRECTORYPATH database (DIRECTORYPATH.qcdb)", True
    )
    filename_db_arg = StringArgument(
        "-f", "The path to the FILENAME database (FILENAME.qcdb)", True
    )
    parser = (
        Parser("windex", "Index and watch for file changes in a given directory")
        .add_arg(directory_arg)
        .add_arg(directory_db_arg)
        .add_arg(filename_db_arg)
    )

    try:
        parser.parse(args)
    except UsageError as exc:
        parser.usage()
        return int(exc.retcode)

    directory = directory_arg.value()
    try:
        with Database(directory_db_arg.value(), DirectoryPath) as directory_db, Database(
            filename_db_arg.value(), FileName
        ) as filename_db:
            log_info("Cleaning directory database: ", directory_db_arg.value())
            directory_db.clear()
            log_info("Done clearing directory database: ", directory_db_arg.value())

            log_info("Cleaning directory database: ", filename_db_arg.value())
            filename_db.clear()
            log_info("Done clearing directory database: ", filename_db_arg.value())

            log_info("Indexing: ", directory)

            # A separator is added between directory and entry names.
            if len(directory) > 1 and directory[-1] in (os.sep, os.altsep or os.sep):
                directory = directory[:-1]

            total = index_directory(directory, directory_db, filename_db)
    except KSearchError as exc:
        sys.stdout.write("\n")
        log_warn("Indexing failed: ", exc)
        return int(exc.retcode)

    sys.stdout.write("\n")
    log_info("Completed: ", directory_arg.value(), " with ", total, " files")
    return int(Retcode.OK)