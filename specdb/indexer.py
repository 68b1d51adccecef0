"""Build the specification database from the system's man pages."""

from __future__ import annotations

import shlex
import sqlite3
import subprocess
import sys
from typing import Optional

from specdb.database import SpecDB, SpecDBError
from specdb.manpage import (
    ParsedManpage,
    filter_warning_lines,
    parse_apropos_output,
    parse_manpage,
    split_aliases,
)

__all__ = [
    "read_command_output",
    "enumerate_manpages",
    "store_manpage",
    "index_one",
    "main",
]

_PROG = "specdb-build"
_MAN_SOURCE_MAX = 63

_UPSERT_SQL = (
    "INSERT INTO functions(name, section, short_name, short_desc, header, "
    "proto, man_source, raw) "
    "VALUES(?1, ?2, ?3, ?4, ?5, ?6, ?7, ?8) "
    "ON CONFLICT(name, section) DO UPDATE SET "
    "  short_name=excluded.short_name,"
    "  short_desc=excluded.short_desc,"
    "  header=excluded.header,"
    "  proto=excluded.proto,"
    "  man_source=excluded.man_source,"
    "  raw=excluded.raw;"
)


def read_command_output(command: str) -> str:
    """Run a shell command and return its combined stdout and stderr.

    Lines starting with "warning:" (after leading blanks) are dropped.
    """
    result = subprocess.run(
        command,
        shell=True,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        check=False,
    )
    text = result.stdout.decode("utf-8", errors="replace")
    return filter_warning_lines(text)


def enumerate_manpages(section_filter: Optional[str] = None) -> list[tuple[str, str]]:
    """List (name, section) pairs reported by ``man -k .``.

    With a section filter only entries of that section are kept.
    """
    if section_filter is not None:
        output = read_command_output(f"man -k . {shlex.quote(section_filter)}")
    else:
        output = read_command_output("man -k .")
    if not output:
        return []
    return parse_apropos_output(output, section_filter)


def store_manpage(
    db: SpecDB,
    name: str,
    section: str,
    page: ParsedManpage,
    man_source: Optional[str],
) -> int:
    """Insert or update a function with its sections and aliases.

    Returns the function's row id.
    """
    conn = db.connection
    try:
        conn.execute(
            _UPSERT_SQL,
            (
                name,
                section,
                page.short_name,
                page.short_desc,
                page.header,
                page.proto,
                man_source,
                page.raw,
            ),
        )
        row = conn.execute(
            "SELECT id FROM functions WHERE name = ?1 AND section = ?2;",
            (name, section),
        ).fetchone()
        if row is None:
            raise SpecDBError(f"cannot retrieve id for {name}({section})")
        function_id = row[0]

        conn.execute(
            "DELETE FROM function_sections WHERE function_id = ?1;",
            (function_id,),
        )
        conn.executemany(
            "INSERT INTO function_sections(function_id, section_name, content, ord) "
            "VALUES(?1, ?2, ?3, ?4);",
            [
                (function_id, s.name, s.content, s.order_index)
                for s in page.sections
            ],
        )

        conn.execute(
            "DELETE FROM function_aliases WHERE function_id = ?1;",
            (function_id,),
        )
        conn.executemany(
            "INSERT OR IGNORE INTO function_aliases(function_id, alias_name) "
            "VALUES(?1, ?2);",
            [
                (function_id, alias)
                for alias in [name, *split_aliases(page.short_name)]
            ],
        )
    except sqlite3.Error as exc:
        raise SpecDBError(f"failed to store {name}({section}): {exc}") from exc
    return function_id


def index_one(db: SpecDB, name: str, section: str) -> bool:
    """Render one man page and store it.

    Returns False (with a warning) when man produced no output.
    """
    text = read_command_output(
        f"man {shlex.quote(section)} {shlex.quote(name)} | col -b"
    )
    if not text:
        print(f"warning: empty man output for {name}({section})", file=sys.stderr)
        return False
    page = parse_manpage(text)
    man_source = f"man {section} {name}"[:_MAN_SOURCE_MAX]
    store_manpage(db, name, section, page, man_source)
    return True


def _usage_text(prog: str = _PROG) -> str:
    """Return the usage message for the given program name."""
    return (
        "Usage:\n"
        f"  {prog} <db_path> <section> <func1> [func2 ...]\n"
        "      (index explicit functions)\n"
        "\n"
        f"  {prog} <db_path> --scan-section <section>\n"
        "      (index all entries reported by 'man -k . <section>')\n"
        "\n"
        f"  {prog} <db_path> --scan-all\n"
        "      (index all entries reported by 'man -k .')"
    )


def _index_all(db: SpecDB, entries: list[tuple[str, str]]) -> bool:
    ok = True
    for name, section in entries:
        try:
            index_one(db, name, section)
        except SpecDBError as exc:
            print(f"error: failed to index {name}({section}): {exc}", file=sys.stderr)
            ok = False
    return ok


def main(argv: Optional[list[str]] = None) -> int:
    """Command-line entry point; returns the process exit status."""
    args = list(sys.argv[1:] if argv is None else argv)

    db_path = args[0] if args else ""
    mode = args[1] if len(args) > 1 else ""
    needs_more = mode != "--scan-all"
    if len(args) < 2 or (needs_more and len(args) < 3):
        print(_usage_text(), file=sys.stderr)
        return 1

    try:
        db = SpecDB(db_path)
    except SpecDBError as exc:
        print(f"error: cannot open DB {db_path}: {exc}", file=sys.stderr)
        return 1

    with db:
        if mode == "--scan-section":
            entries = enumerate_manpages(args[2])
        elif mode == "--scan-all":
            entries = enumerate_manpages(None)
        else:
            entries = [(name, mode) for name in args[2:]]
        ok = _index_all(db, entries)

    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())