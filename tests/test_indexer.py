import os
import sqlite3
import stat

import pytest

from specdb.database import SpecDB
from specdb.indexer import (
    enumerate_manpages,
    index_one,
    main,
    read_command_output,
    store_manpage,
)
from specdb.manpage import parse_manpage

FAKE_MAN = """#!/bin/sh
if [ "$1" = "-k" ]; then
  echo "read (2) - read from a file descriptor"
  echo "write (2) - write to a file descriptor"
  echo "printf (3) - formatted output conversion"
  echo "warning: stale index"
  echo "garbage line without parens"
  exit 0
fi
case "$2" in
  read) cat <<'EOF'
NAME
       read - read from a file descriptor

SYNOPSIS
       #include <unistd.h>

       ssize_t read(int fd, void *buf, size_t count);

RETURN VALUE
       On success, the number of bytes read is returned.
EOF
  ;;
  write) cat <<'EOF'
NAME
       write, pwrite - write to a file descriptor

SYNOPSIS
       #include <unistd.h>

       ssize_t write(int fd, const void *buf, size_t count);

DESCRIPTION
       Writes bytes.
EOF
  ;;
  printf) cat <<'EOF'
NAME
       printf, fprintf - formatted output conversion

SYNOPSIS
       #include <stdio.h>

       int printf(const char *format, ...);

NOTES
       Some variants are deprecated.
EOF
  ;;
  *) ;;
esac
"""

FAKE_COL = "#!/bin/sh\ncat\n"


def _write_script(directory, name, body):
    path = directory / name
    path.write_text(body)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


@pytest.fixture
def fake_man(tmp_path, monkeypatch):
    bindir = tmp_path / "bin"
    bindir.mkdir()
    _write_script(bindir, "man", FAKE_MAN)
    _write_script(bindir, "col", FAKE_COL)
    monkeypatch.setenv("PATH", str(bindir) + os.pathsep + os.environ.get("PATH", ""))
    return bindir


@pytest.fixture
def db(tmp_path):
    with SpecDB(tmp_path / "spec.sqlite") as database:
        yield database


def test_read_command_output_filters_warnings():
    out = read_command_output("printf 'one\\n  warning: noise\\ntwo'")
    assert out == "one\ntwo\n"


def test_read_command_output_captures_stderr():
    out = read_command_output("echo oops 1>&2")
    assert out == "oops\n"


def test_read_command_output_empty():
    assert read_command_output("true") == ""


def test_enumerate_all(fake_man):
    entries = enumerate_manpages(None)
    assert entries == [("read", "2"), ("write", "2"), ("printf", "3")]


def test_enumerate_section_filter(fake_man):
    assert enumerate_manpages("3") == [("printf", "3")]


def test_store_manpage_replaces_aliases(db):
    first = parse_manpage("NAME\n    alpha, beta - x\n")
    second = parse_manpage("NAME\n    alpha, gamma - x\n")
    store_manpage(db, "alpha", "3", first, None)
    store_manpage(db, "alpha", "3", second, None)
    assert db.lookup_function("beta", "3") is None
    assert db.lookup_function("gamma", "3").name == "alpha"


def test_index_one(fake_man, db):
    assert index_one(db, "read", "2") is True
    spec = db.lookup_function("read", "2")
    assert spec.header == "<unistd.h>"
    assert spec.man_source == "man 2 read"
    assert spec.short_desc == "read from a file descriptor"
    assert db.has_retval("read")


def test_index_one_empty_output(fake_man, db):
    assert index_one(db, "nosuchfunc", "2") is False
    assert db.lookup_function("nosuchfunc", "2") is None


def test_main_explicit_functions(fake_man, tmp_path):
    path = tmp_path / "out.sqlite"
    assert main([str(path), "2", "read", "write"]) == 0
    with SpecDB(path) as database:
        assert database.lookup_function("pwrite", "2").name == "write"
        assert database.has_retval("read")
        assert not database.has_retval("write")


def test_main_scan_section(fake_man, tmp_path):
    path = tmp_path / "out.sqlite"
    assert main([str(path), "--scan-section", "3"]) == 0
    with SpecDB(path) as database:
        assert database.has_format_string("fprintf")
        assert database.is_dangerous("printf")
        assert database.lookup_function("read", "2") is None


def test_main_scan_all(fake_man, tmp_path):
    path = tmp_path / "out.sqlite"
    assert main([str(path), "--scan-all"]) == 0
    conn = sqlite3.connect(path)
    try:
        names = sorted(r[0] for r in conn.execute("SELECT name FROM functions"))
    finally:
        conn.close()
    assert names == ["printf", "read", "write"]


@pytest.mark.parametrize(
    "args",
    [[], ["only.db"], ["x.db", "--scan-section"], ["x.db", "2"]],
)
def test_main_usage_errors(tmp_path, args, capsys):
    args = [str(tmp_path / a) if a.endswith(".db") else a for a in args]
    assert main(args) == 1
    assert "Usage:" in capsys.readouterr().err