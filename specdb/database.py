"""SQLite storage of man page data and the rule queries run against it."""

from __future__ import annotations

import os
import sqlite3
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any, Optional, Union

__all__ = [
    "SpecDBError",
    "Section",
    "FunctionSpec",
    "SpecDB",
    "ensure_schema",
]

SCHEMA_SQL = """
PRAGMA foreign_keys=ON;
CREATE TABLE IF NOT EXISTS functions (
  id          INTEGER PRIMARY KEY AUTOINCREMENT,
  name        TEXT NOT NULL,
  section     TEXT NOT NULL,
  short_name  TEXT,
  short_desc  TEXT,
  header      TEXT,
  proto       TEXT,
  man_source  TEXT,
  raw         TEXT
);
CREATE UNIQUE INDEX IF NOT EXISTS idx_functions_name_section
  ON functions(name, section);
CREATE TABLE IF NOT EXISTS function_sections (
  id           INTEGER PRIMARY KEY AUTOINCREMENT,
  function_id  INTEGER NOT NULL,
  section_name TEXT NOT NULL,
  content      TEXT NOT NULL,
  ord          INTEGER NOT NULL,
  FOREIGN KEY(function_id) REFERENCES functions(id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS idx_function_sections_funcid
  ON function_sections(function_id, ord);
CREATE TABLE IF NOT EXISTS function_aliases (
  id           INTEGER PRIMARY KEY AUTOINCREMENT,
  function_id  INTEGER NOT NULL,
  alias_name   TEXT NOT NULL,
  FOREIGN KEY(function_id) REFERENCES functions(id) ON DELETE CASCADE
);
CREATE UNIQUE INDEX IF NOT EXISTS idx_function_aliases_name_func
  ON function_aliases(alias_name, function_id);
"""

# Matches a function either by its canonical name or by any of its aliases.
_NAME_OR_ALIAS = (
    "(f.name = ?1 "
    " OR f.id IN (SELECT function_id FROM function_aliases "
    "             WHERE alias_name = ?1))"
)

_DANGER_KEYWORDS = (
    "deprecated",
    "obsolete",
    "should not be used",
    "do not use",
    "is dangerous",
    "security risk",
    "use of this function is discouraged",
    "is unsafe",
    "never use",
    "avoid this function",
)

_DANGER_SECTIONS = ("DESCRIPTION", "NOTES", "BUGS", "CAVEATS", "WARNINGS")


class SpecDBError(Exception):
    """Raised when the specification database cannot be opened or queried."""


@dataclass
class Section:
    """One named section of a man page."""

    name: str
    content: str
    order_index: int


@dataclass
class FunctionSpec:
    """A function's man page metadata together with its sections."""

    name: str
    section: str
    short_name: Optional[str] = None
    short_desc: Optional[str] = None
    header: Optional[str] = None
    proto: Optional[str] = None
    man_source: Optional[str] = None
    raw: Optional[str] = None
    sections: list[Section] = field(default_factory=list)


def ensure_schema(connection: sqlite3.Connection) -> None:
    """Create the tables and indexes on an open connection if missing."""
    try:
        connection.executescript(SCHEMA_SQL)
    except sqlite3.Error as exc:
        raise SpecDBError(f"schema error: {exc}") from exc


class SpecDB:
    """An open specification database."""

    def __init__(self, path: Union[str, "os.PathLike[str]"]) -> None:
        self.path = os.fspath(path)
        try:
            self.connection = sqlite3.connect(self.path, isolation_level=None)
        except sqlite3.Error as exc:
            raise SpecDBError(f"cannot open {self.path}: {exc}") from exc
        try:
            self.ensure_schema()
        except SpecDBError:
            self.connection.close()
            raise

    def ensure_schema(self) -> None:
        """Create the schema on this database if it does not exist."""
        ensure_schema(self.connection)

    def close(self) -> None:
        """Close the underlying connection."""
        self.connection.close()

    def __enter__(self) -> "SpecDB":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _rows(self, sql: str, params: tuple[Any, ...]) -> Iterator[tuple]:
        try:
            yield from self.connection.execute(sql, params)
        except sqlite3.Error as exc:
            raise SpecDBError(str(exc)) from exc

    def _first(self, sql: str, params: tuple[Any, ...]) -> Optional[tuple]:
        return next(self._rows(sql, params), None)

    def _load_function(self, function_id: int) -> Optional[FunctionSpec]:
        row = self._first(
            "SELECT name, section, short_name, short_desc, header, proto, "
            "man_source, raw FROM functions WHERE id = ?1;",
            (function_id,),
        )
        if row is None:
            return None
        sections = [
            Section(name=name, content=content, order_index=ord_)
            for name, content, ord_ in self._rows(
                "SELECT section_name, content, ord FROM function_sections "
                "WHERE function_id = ?1 ORDER BY ord ASC;",
                (function_id,),
            )
        ]
        return FunctionSpec(*row, sections=sections)

    def lookup_function(self, name: str, section: str) -> Optional[FunctionSpec]:
        """Find a function by name and man section, falling back to aliases.

        Returns None when nothing matches.
        """
        row = self._first(
            "SELECT id FROM functions WHERE name = ?1 AND section = ?2;",
            (name, section),
        )
        if row is None:
            row = self._first(
                "SELECT f.id FROM functions f "
                "JOIN function_aliases a ON a.function_id = f.id "
                "WHERE a.alias_name = ?1 AND f.section = ?2 LIMIT 1;",
                (name, section),
            )
        if row is None:
            return None
        return self._load_function(row[0])

    def has_retval(self, name: str) -> bool:
        """Whether any page for the function has a RETURN VALUE section."""
        row = self._first(
            "SELECT 1 FROM functions f "
            "JOIN function_sections fs ON fs.function_id = f.id "
            f"WHERE {_NAME_OR_ALIAS} "
            "  AND fs.section_name LIKE '%RETURN VALUE%' LIMIT 1;",
            (name,),
        )
        return row is not None

    def is_dangerous(self, name: str) -> bool:
        """Whether the function's page calls it deprecated or unsafe."""
        sections = ", ".join(f"'{s}'" for s in _DANGER_SECTIONS)
        keywords = " OR ".join(
            f"LOWER(fs.content) LIKE '%{kw}%'" for kw in _DANGER_KEYWORDS
        )
        row = self._first(
            "SELECT 1 FROM functions f "
            "JOIN function_sections fs ON fs.function_id = f.id "
            f"WHERE {_NAME_OR_ALIAS} "
            f"  AND fs.section_name IN ({sections}) "
            f"  AND ({keywords}) LIMIT 1;",
            (name,),
        )
        return row is not None

    def has_format_string(self, name: str) -> bool:
        """Whether the SYNOPSIS looks like a variadic format-string function."""
        for (synopsis,) in self._rows(
            "SELECT fs.content FROM functions f "
            "JOIN function_sections fs ON fs.function_id = f.id "
            f"WHERE {_NAME_OR_ALIAS} AND fs.section_name = 'SYNOPSIS';",
            (name,),
        ):
            if synopsis is None:
                continue
            if "..." in synopsis and ("format" in synopsis or "fmt" in synopsis):
                return True
        return False