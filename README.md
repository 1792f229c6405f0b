# ksearch

Quick file-name search over an index that is kept in two fixed-size,
memory-mapped record databases:

- a **DIRECTORYPATH** database, with one `DirectoryPath` record for each
  indexed directory (full path, up to 4095 bytes of UTF-8);
- a **FILENAME** database, with one `FileName` record for each file
  (name up to 259 bytes of UTF-8). Each record refers back to its
  directory by record number.

Three commands work on these databases:

| Command    | Purpose                                                         |
|------------|-----------------------------------------------------------------|
| `windex`   | Clear both databases, then index a directory tree into them.    |
| `ksearch`  | Print every indexed file whose name contains a pattern.         |
| `kmonitor` | Watch the indexed root and keep the databases up to date.       |

## Installation

```
pip install .
```

## Creating the database files

The commands open existing database files; none of them creates one.
Make empty files of the size you need from Python first:

```python
from ksearch.qcdb import Database
from ksearch.records import DirectoryPath, FileName

Database.create("DIRECTORYPATH.qcdb", DirectoryPath, 100_000).close()
Database.create("FILENAME.qcdb", FileName, 1_000_000).close()
```

`Database.create(path, record_type, num_records, object_name=None)` writes
the header and reserves room for `num_records` records. When the space runs
out, further writes fail.

## Usage

Index a directory:

```
windex --directory /home/me/Documents -d DIRECTORYPATH.qcdb -f FILENAME.qcdb
```

All three options are required. Both databases are cleared first. Every
directory gets a record; every file is stored under its directory's record.
Entries whose names start with a dot are skipped. The running file count is
printed while indexing, and the total at the end.

Search for file names:

```
ksearch -p report -d DIRECTORYPATH.qcdb -f FILENAME.qcdb
```

The pattern must be a valid regular expression, but names are matched by
plain substring. Each match is printed as a full path, followed by a count
of matches.

Keep the index current while files are added, removed or renamed:

```
kmonitor -d DIRECTORYPATH.qcdb -f FILENAME.qcdb -w 500
```

`kmonitor` watches the directory held in record 0 of the directory database
(the root that `windex` indexed first), recursively. Created entries are
added, deleted entries removed, and a move is handled as a removal of the
old path followed by an addition of the new one. `-w` is the interval in
milliseconds between checks for a stop request; 0 or leaving it out uses
half a second. Stop it with Ctrl+C.

If an option is missing or invalid, each command prints its usage text and
exits with status 1. Other failures exit with the status of the error's
`Retcode` (see `ksearch.errors`).

## Library use

```python
from ksearch.qcdb import Database
from ksearch.records import DirectoryPath, FileName
from ksearch.search import search_pattern
from ksearch.indexer import index_directory

with Database("DIRECTORYPATH.qcdb", DirectoryPath) as dirs, \
     Database("FILENAME.qcdb", FileName) as files:
    dirs.clear()
    files.clear()
    count = index_directory("/home/me/Documents", dirs, files)
    paths = search_pattern("report", dirs, files)
```

`Database` offers `read`, `read_many`, `write`, `write_many`, `append`,
`append_many`, `delete`, `clear`, `find_first` and `find_all`. Errors are
raised as subclasses of `ksearch.errors.KSearchError`, each carrying a
`retcode`.

`ksearch.monitor` exposes `add_path`, `remove_path`, `get_rename_record`,
`rename_record` and `monitor_directory` for updating the databases directly.

## What it does not do

- No command creates database files; use `Database.create`.
- `windex` makes a single full pass; it does not watch for changes itself.
- Search matches substrings of file names only; it does not search
  directory names or file contents.

## Running the tests

```
pip install .[test]
pytest
```