# specdb

specdb turns the system manual pages into a SQLite database of C function
specifications. It then answers three questions about a function:

- does its page document a return value?
- is it described as deprecated or unsafe?
- does it take a printf-style format string?

## Building a database

The `specdb-build` command runs `man <section> <name> | col -b` through the
shell. It drops any output lines that start with `warning:`. It splits each
page into sections. Each function is stored under its own name, and also under
every comma-separated name from its NAME line, as aliases.

    # index explicit functions from one section
    specdb-build specs.db 2 read write open close

    # index every entry that `man -k . 3` lists in section 3
    specdb-build specs.db --scan-section 3

    # index every entry that `man -k .` lists
    specdb-build specs.db --scan-all

The same command can be run as `python -m specdb.indexer`.

Indexing a page again replaces what was stored for it before: the metadata,
the sections and the aliases.

When `man` produces no output for a page, the command prints a warning and
moves on to the next page. The command exits with status 1 in these cases:

- the arguments are missing
- the database cannot be opened
- storing any page failed

Otherwise it exits with status 0.

The same steps can be called from Python, all from `specdb.indexer`:

- `enumerate_manpages(section_filter)` lists `(name, section)` pairs.
- `index_one(db, name, section)` renders and stores one page. It returns
  `False` when `man` printed nothing.
- `store_manpage(db, name, section, page, man_source)` writes an already
  parsed page and returns its row id.

## Querying

```python
from specdb.database import SpecDB

with SpecDB("specs.db") as db:
    spec = db.lookup_function("read", "2")
    if spec is not None:
        print(spec.header, spec.proto)
        for section in spec.sections:
            print(section.order_index, section.name)

    db.has_retval("read")           # a section named like "RETURN VALUE" exists
    db.is_dangerous("gets")         # the page warns against the function
    db.has_format_string("printf")  # SYNOPSIS has "..." and "format"/"fmt"
```

Opening a `SpecDB` creates the schema if it is missing. The module function
`ensure_schema(connection)` does the same on any `sqlite3` connection.

`lookup_function` first looks for an exact match on name and section. If that
finds nothing, it looks for an alias in the same section. It returns a
`FunctionSpec` with its `Section` list in page order, or `None` when there is
no match.

The three checks match the function by its name or by any of its aliases, in
any section:

- `has_retval` looks for a section whose name contains "RETURN VALUE".
- `is_dangerous` looks in the DESCRIPTION, NOTES, BUGS, CAVEATS and WARNINGS
  sections. It matches, ignoring case, phrases such as "deprecated",
  "obsolete", "should not be used", "is unsafe" and "security risk".
- `has_format_string` checks the SYNOPSIS section.

Failures to open or query the database raise `specdb.database.SpecDBError`.

## Parsing pages yourself

`specdb.manpage` works on text alone and needs no database.

`parse_manpage(raw)` returns a `ParsedManpage`. It holds:

- the sections
- the short name and description from the NAME line
- the first header and the first prototype found in SYNOPSIS

A section heading is a line of at most 40 characters that has at least one
letter, where every letter is upper case and every other character is a
blank, punctuation or a digit.

The module has helpers for the smaller steps:

- `parse_sections`
- `extract_name_meta`
- `extract_synopsis_meta`
- `is_section_header_line`
- `parse_apropos_output`, which reads `man -k` listings
- `split_aliases`
- `filter_warning_lines`

## What it does not do

specdb only builds and queries the database. It does not read or analyse C
source code. Whether a call site checks a return value, or uses a dangerous
function, is left to the tool that consults the database.