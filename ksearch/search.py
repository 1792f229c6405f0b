"""Search the file name database for names containing a pattern."""

from __future__ import annotations

import os
import re
import sys
from collections.abc import Sequence

from ksearch.cli import Parser, StringArgument
from ksearch.errors import BadArgumentError, KSearchError, Retcode, UsageError
from ksearch.logger import log_info, log_warn
from ksearch.qcdb import Database
from ksearch.records import DirectoryPath, FileName


def search_pattern(
    pattern: str,
    directory_db: Database[DirectoryPath],
    filename_db: Database[FileName],
) -> list[str]:
    """Log and return the full path of every indexed file whose name contains ``pattern``.

    The pattern must be a valid regular expression; matching itself is by substring.
    """
    try:
        re.compile(pattern)
    except re.error as exc:
        raise BadArgumentError(f"invalid pattern {pattern!r}: {exc}") from exc

    matches = filename_db.find_all(lambda entry: pattern in entry.path)

    directories: dict[int, str] = {}
    paths: list[str] = []
    for match in matches:
        record = match.directory_record
        if record not in directories:
            try:
                directories[record] = directory_db.read(record).path
            except KSearchError:
                log_warn(
                    "Failed to find directory for file: ",
                    match.path,
                    " which has directory record of: ",
                    record,
                )
                raise
        full_path = directories[record] + os.sep + match.path
        log_info(full_path)
        paths.append(full_path)

    log_info("Found: ", len(paths), " files")
    return paths


def main(argv: Sequence[str] | None = None) -> int:
    """Run the search command; returns the process exit status."""
    args = sys.argv[1:] if argv is None else list(argv)

    parser = Parser("kSearch", "Search for a file")
    pattern_arg = StringArgument("-p", "The regex pattern to search", True)
    directory_db_arg = StringArgument(
        "-d", "The path to the DIRECTORYPATH database (DIRECTORYPATH.qcdb)", True
    )
    filename_db_arg = StringArgument(
        "-f", "The path to the FILENAME database (FILENAME.qcdb)", True
    )
    parser.add_arg(pattern_arg).add_arg(directory_db_arg).add_arg(filename_db_arg)

    try:
        parser.parse(args)
    except UsageError as exc:
        parser.usage()
        return int(exc.retcode)

    try:
        with Database(directory_db_arg.value(), DirectoryPath) as directory_db, Database(
            filename_db_arg.value(), FileName
        ) as filename_db:
            search_pattern(pattern_arg.value(), directory_db, filename_db)
    except KSearchError as exc:
        log_warn("Search failed: ", exc)
        return int(exc.retcode)

    return int(Retcode.OK)