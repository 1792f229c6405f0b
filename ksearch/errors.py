"""Return codes and the exceptions that carry them."""

from __future__ import annotations

import enum


class Retcode(enum.IntFlag):
    """Status codes, usable as process exit codes and combinable as flags."""

    OK = 0x0000
    FAIL = 0x0001
    NULL_OBJ = 0x0002
    MALLOC_FAIL = 0x0004
    NOT_FOUND = 0x0008
    CONNECTION_FAIL = 0x0010
    EOF = 0x0020
    BAD_ARG = 0x0040
    TIMEOUT = 0x0080
    LOCK_ERROR = 0x0100


class KSearchError(Exception):
    """Base class for all package errors; ``retcode`` gives the exit status."""

    retcode: Retcode = Retcode.FAIL


class NullObjectError(KSearchError):
    """A record index or object does not exist."""

    retcode = Retcode.NULL_OBJ


class NotFoundError(KSearchError):
    """A search found nothing, or there is no free slot left."""

    retcode = Retcode.NOT_FOUND


class EndOfFileError(KSearchError):
    """The database ran out of space before all objects were written."""

    retcode = Retcode.EOF


class BadArgumentError(KSearchError):
    """A value could not be converted or does not fit."""

    retcode = Retcode.BAD_ARG


class LockError(KSearchError):
    """The database lock could not be taken or released."""

    retcode = Retcode.LOCK_ERROR


class DatabaseUnavailableError(KSearchError):
    """The database file is not open."""

    retcode = Retcode.MALLOC_FAIL


class UsageError(KSearchError):
    """The command line could not be parsed or is missing arguments."""

    retcode = Retcode.FAIL