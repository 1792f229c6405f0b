import io

import pytest

from ksearch.cli import FlagArgument, IntArgument, Parser, StringArgument
from ksearch.errors import BadArgumentError, UsageError


def make_parser():
    pattern = StringArgument("-p", "The regex pattern to search", True)
    directory_db = StringArgument("-d", "The path to the DIRECTORYPATH database", True)
    wait = IntArgument("-w", "Interval to wait", False)
    parser = Parser("kSearch", "Search for a file").add_arg(pattern).add_arg(directory_db).add_arg(wait)
    return parser, pattern, directory_db, wait


def test_parse_values():
    parser, pattern, directory_db, wait = make_parser()
    parser.parse(["prog", "-p", "foo", "-d", "dirs.qcdb", "-w", "250"])
    assert pattern.value() == "foo"
    assert directory_db.value() == "dirs.qcdb"
    assert wait.value() == 250
    assert wait.in_use is True
    assert parser.validate() is True


def test_missing_required_raises():
    parser, pattern, _, _ = make_parser()
    with pytest.raises(UsageError):
        parser.parse(["prog", "-p", "foo"])
    assert pattern.in_use is True


def test_option_without_value_not_in_use():
    parser, pattern, _, _ = make_parser()
    parser.parse_arg("-p")
    assert pattern.in_use is False
    assert parser.validate() is False


def test_bad_int_is_usage_error():
    parser, _, _, wait = make_parser()
    with pytest.raises(UsageError):
        parser.parse(["-p", "a", "-d", "b", "-w", "abc"])
    assert wait.in_use is False


def test_int_reads_leading_digits():
    wait = IntArgument("-w")
    wait.add_value("  -12abc")
    assert wait.value() == -12


def test_int_out_of_range():
    wait = IntArgument("-w")
    with pytest.raises(BadArgumentError):
        wait.add_value(str(2**31))
    assert wait.values == []


def test_flag_argument():
    flag = FlagArgument("-v", "verbose")
    parser = Parser("prog").add_arg(flag)
    parser.parse(["-v"])
    assert flag.in_use is True
    with pytest.raises(UsageError):
        Parser("prog").add_arg(FlagArgument("-v")).parse(["-v", "x"])


def test_second_value_exceeds_maximum():
    arg = StringArgument("-p", required=True)
    parser = Parser("prog").add_arg(arg)
    parser.parse_arg("-p")
    parser.parse_arg("one")
    parser.parse_arg("two")
    assert arg.values == ["one", "two"]
    assert arg.in_use is False
    assert parser.validate() is False


def test_leading_values_ignored():
    arg = StringArgument("-p")
    Parser("prog").add_arg(arg).parse(["stray", "-p", "x"])
    assert arg.values == ["x"]


def test_value_index_error():
    arg = StringArgument("-p")
    arg.add_value("x")
    with pytest.raises(IndexError):
        arg.value(1)


def test_duplicate_option_keeps_first():
    first = StringArgument("-p")
    second = StringArgument("-p")
    Parser("prog").add_arg(first).add_arg(second).parse(["-p", "x"])
    assert first.values == ["x"]
    assert second.values == []


def test_usage_lists_sorted_options():
    parser, _, _, _ = make_parser()
    stream = io.StringIO()
    parser.usage(stream)
    lines = stream.getvalue().splitlines()
    assert lines[0] == "kSearch: Search for a file"
    assert lines[1] == "[-d (Required)]: The path to the DIRECTORYPATH database"
    assert lines[2] == "[-p (Required)]: The regex pattern to search"
    assert lines[3] == "[-w]: Interval to wait"
    assert stream.getvalue() == str(parser)