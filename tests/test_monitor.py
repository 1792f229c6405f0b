import os
import threading
import time

import pytest

from ksearch.errors import BadArgumentError, NotFoundError, Retcode
from ksearch.monitor import (
    add_path,
    get_rename_record,
    main,
    monitor_directory,
    remove_path,
    rename_record,
    split_file_path,
)
from ksearch.qcdb import Database
from ksearch.records import DirectoryPath, FileName


@pytest.fixture
def dbs(tmp_path):
    db_dir = tmp_path / "db"
    db_dir.mkdir()
    dir_db = Database.create(db_dir / "DIRECTORYPATH.qcdb", DirectoryPath, 8)
    file_db = Database.create(db_dir / "FILENAME.qcdb", FileName, 16)
    yield dir_db, file_db
    dir_db.close()
    file_db.close()


def _all(db):
    return db.find_all(lambda entry: True)


def test_split_file_path_uses_last_separator():
    path = os.sep.join(["top", "middle", "name.txt"])
    assert split_file_path(path) == (os.sep.join(["top", "middle"]), "name.txt")


def test_split_file_path_without_separator():
    with pytest.raises(NotFoundError):
        split_file_path("name.txt")


def test_add_file_creates_directory_record(dbs):
    dir_db, file_db = dbs
    directory = os.sep.join(["", "nowhere", "dir"])
    record = add_path(directory + os.sep + "a.txt", dir_db, file_db)
    assert _all(dir_db) == [DirectoryPath(directory)]
    dir_record = dir_db.find_first(lambda entry: entry.path == directory)
    assert file_db.read(record) == FileName("a.txt", dir_record)


def test_add_second_file_reuses_directory(dbs):
    dir_db, file_db = dbs
    directory = os.sep.join(["", "nowhere", "dir"])
    add_path(directory + os.sep + "a.txt", dir_db, file_db)
    add_path(directory + os.sep + "b.txt", dir_db, file_db)
    assert len(_all(dir_db)) == 1
    assert sorted(entry.path for entry in _all(file_db)) == ["a.txt", "b.txt"]


def test_add_real_directory(dbs, tmp_path):
    dir_db, file_db = dbs
    sub = tmp_path / "sub"
    sub.mkdir()
    add_path(str(sub), dir_db, file_db)
    assert _all(dir_db) == [DirectoryPath(str(sub))]
    assert _all(file_db) == []


def test_add_file_name_too_long(dbs):
    dir_db, file_db = dbs
    with pytest.raises(BadArgumentError):
        add_path(os.sep + "d" + os.sep + "x" * FileName.PATH_SIZE, dir_db, file_db)
    assert _all(file_db) == []


def test_remove_file(dbs):
    dir_db, file_db = dbs
    path = os.sep.join(["", "nowhere", "dir", "a.txt"])
    add_path(path, dir_db, file_db)
    remove_path(path, dir_db, file_db)
    assert _all(file_db) == []
    assert len(_all(dir_db)) == 1


def test_remove_file_in_unknown_directory(dbs):
    dir_db, file_db = dbs
    with pytest.raises(NotFoundError):
        remove_path(os.sep.join(["", "nowhere", "a.txt"]), dir_db, file_db)


def test_remove_unknown_file(dbs):
    dir_db, file_db = dbs
    directory = os.sep.join(["", "nowhere", "dir"])
    add_path(directory + os.sep + "a.txt", dir_db, file_db)
    with pytest.raises(NotFoundError):
        remove_path(directory + os.sep + "b.txt", dir_db, file_db)
    assert [entry.path for entry in _all(file_db)] == ["a.txt"]


def test_remove_real_directory(dbs, tmp_path):
    dir_db, file_db = dbs
    sub = tmp_path / "sub"
    sub.mkdir()
    add_path(str(sub), dir_db, file_db)
    remove_path(str(sub), dir_db, file_db)
    assert _all(dir_db) == []


def test_rename_keeps_directory_record(dbs):
    dir_db, file_db = dbs
    directory = os.sep.join(["", "nowhere", "dir"])
    old_path = directory + os.sep + "old.txt"
    written = add_path(old_path, dir_db, file_db)
    record = get_rename_record(old_path, dir_db, file_db)
    assert record == written
    before = file_db.read(record)
    rename_record(directory + os.sep + "new.txt", file_db, record)
    after = file_db.read(record)
    assert after.path == "new.txt"
    assert after.directory_record == before.directory_record


def test_get_rename_record_unknown_file(dbs):
    dir_db, file_db = dbs
    directory = os.sep.join(["", "nowhere", "dir"])
    add_path(directory + os.sep + "a.txt", dir_db, file_db)
    with pytest.raises(NotFoundError):
        get_rename_record(directory + os.sep + "missing.txt", dir_db, file_db)


def test_monitor_missing_directory(dbs, tmp_path):
    dir_db, file_db = dbs
    with pytest.raises(NotFoundError):
        monitor_directory(str(tmp_path / "missing"), dir_db, file_db, 0, threading.Event())


def test_monitor_records_created_file(dbs, tmp_path):
    dir_db, file_db = dbs
    watched = (tmp_path / "watched").resolve()
    watched.mkdir()
    stop = threading.Event()
    thread = threading.Thread(
        target=monitor_directory, args=(str(watched), dir_db, file_db, 50, stop)
    )
    thread.start()
    try:
        time.sleep(0.5)
        (watched / "new.txt").write_text("data")
        deadline = time.monotonic() + 5
        names = []
        while time.monotonic() < deadline:
            names = [entry.path for entry in _all(file_db)]
            if "new.txt" in names:
                break
            time.sleep(0.05)
    finally:
        stop.set()
        thread.join(timeout=5)
    assert "new.txt" in names
    assert not thread.is_alive()
    record = file_db.read(file_db.find_first(lambda entry: entry.path == "new.txt"))
    assert dir_db.read(record.directory_record).path == str(watched)


def test_main_missing_arguments():
    assert main([]) == int(Retcode.FAIL)


def test_main_missing_database(tmp_path):
    code = main(["-d", str(tmp_path / "none.qcdb"), "-f", str(tmp_path / "none2.qcdb")])
    assert code == int(Retcode.NOT_FOUND)


def test_main_empty_root_directory(dbs):
    dir_db, file_db = dbs
    code = main(["-d", dir_db.path, "-f", file_db.path, "-w", "10"])
    assert code == int(Retcode.NOT_FOUND)