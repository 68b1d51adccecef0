"""Parsing of rendered man page text and of apropos listings."""

from __future__ import annotations

import string
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Optional

from specdb.database import Section

__all__ = [
    "ParsedManpage",
    "is_section_header_line",
    "parse_sections",
    "extract_name_meta",
    "extract_synopsis_meta",
    "parse_manpage",
    "filter_warning_lines",
    "parse_apropos_output",
    "split_aliases",
]

_BLANKS = " \t"
_BLANKS_NL = " \t\n"
_MAX_HEADER_LEN = 40
_UPPER = frozenset(string.ascii_uppercase)
_LOWER = frozenset(string.ascii_lowercase)
_PUNCT_OR_DIGIT = frozenset(string.punctuation + string.digits)


@dataclass
class ParsedManpage:
    """A man page split into sections, with metadata drawn from them."""

    raw: str
    short_name: Optional[str] = None
    short_desc: Optional[str] = None
    header: Optional[str] = None
    proto: Optional[str] = None
    sections: list[Section] = field(default_factory=list)


def _lines_with_offsets(text: str) -> Iterator[tuple[int, str]]:
    """Yield (offset, line) for each newline-terminated or final line."""
    pos = 0
    end = len(text)
    while pos < end:
        nl = text.find("\n", pos)
        if nl == -1:
            yield pos, text[pos:]
            return
        yield pos, text[pos:nl]
        pos = nl + 1


def is_section_header_line(line: str) -> bool:
    """Whether a trimmed line looks like a man page section heading.

    A heading is short, holds at least one letter, and all its letters are
    upper case; everything else must be blanks, punctuation or digits.
    """
    if not line or len(line) > _MAX_HEADER_LEN:
        return False
    has_alpha = False
    for ch in line:
        if ch in _BLANKS:
            continue
        if ch in _UPPER:
            has_alpha = True
        elif ch in _LOWER:
            return False
        elif ch not in _PUNCT_OR_DIGIT:
            return False
    return has_alpha


def parse_sections(text: str) -> list[Section]:
    """Split man page text into sections at heading lines.

    Text before the first heading belongs to no section.
    """
    sections: list[Section] = []
    current_name: Optional[str] = None
    body: list[str] = []

    def close() -> None:
        sections.append(
            Section(
                name=current_name,
                content="\n".join(body).strip(_BLANKS_NL),
                order_index=len(sections),
            )
        )

    for _, line in _lines_with_offsets(text):
        trimmed = line.strip(_BLANKS)
        if trimmed and is_section_header_line(trimmed):
            if current_name is not None:
                close()
            current_name = trimmed.strip(_BLANKS_NL)
            body = []
        else:
            body.append(line)

    if current_name is not None:
        close()
    return sections


def extract_name_meta(
    sections: Iterable[Section],
) -> tuple[Optional[str], Optional[str]]:
    """Return (short_name, short_desc) from the first line of the NAME section."""
    for section in sections:
        if section.name != "NAME":
            continue
        for _, line in _lines_with_offsets(section.content):
            trimmed = line.strip(_BLANKS)
            if not trimmed:
                continue
            dash = trimmed.find(" - ")
            if dash == -1:
                return trimmed.strip(_BLANKS_NL), None
            return (
                trimmed[:dash].strip(_BLANKS_NL),
                trimmed[dash + 3:].strip(_BLANKS_NL),
            )
    return None, None


def extract_synopsis_meta(
    sections: Iterable[Section],
) -> tuple[Optional[str], Optional[str]]:
    """Return (header, proto) found in the first SYNOPSIS section.

    The checks for "#include", angle brackets and parentheses look from the
    start of a line to the end of the whole section, not just that line.
    """
    for section in sections:
        if section.name != "SYNOPSIS":
            continue
        header: Optional[str] = None
        proto: Optional[str] = None
        content = section.content
        for offset, line in _lines_with_offsets(content):
            trimmed = line.strip(_BLANKS)
            if not trimmed:
                continue
            start = offset + len(line) - len(line.lstrip(_BLANKS))
            rest = content[start:]

            if header is None and "#include" in rest:
                lt = rest.find("<")
                gt = rest.find(">")
                if lt != -1 and gt != -1 and gt > lt:
                    header = rest[lt:gt + 1].strip(_BLANKS_NL)
                else:
                    header = trimmed.strip(_BLANKS_NL)

            if proto is None and "(" in rest and ")" in rest:
                proto = trimmed.strip(_BLANKS_NL)
        return header, proto
    return None, None


def parse_manpage(raw: str) -> ParsedManpage:
    """Parse rendered man page text into sections and metadata."""
    sections = parse_sections(raw)
    short_name, short_desc = extract_name_meta(sections)
    header, proto = extract_synopsis_meta(sections)
    return ParsedManpage(
        raw=raw,
        short_name=short_name,
        short_desc=short_desc,
        header=header,
        proto=proto,
        sections=sections,
    )


def filter_warning_lines(text: str) -> str:
    """Drop lines that start with "warning:" after leading blanks.

    Every kept line is terminated with a newline.
    """
    lines = text.split("\n")
    if text == "" or text.endswith("\n"):
        lines.pop()
    return "".join(
        line + "\n"
        for line in lines
        if not line.lstrip(_BLANKS).startswith("warning:")
    )


def parse_apropos_output(
    output: str, section_filter: Optional[str] = None
) -> list[tuple[str, str]]:
    """Parse "name (section) - description" lines into (name, section) pairs.

    Lines that do not fit the pattern are skipped, as are entries whose
    section differs from ``section_filter`` when one is given.
    """
    entries: list[tuple[str, str]] = []
    for _, line in _lines_with_offsets(output):
        trimmed = line.strip(_BLANKS)
        if not trimmed:
            continue
        open_paren = trimmed.find("(")
        if open_paren == -1:
            continue
        close_paren = trimmed.find(")", open_paren)
        if close_paren == -1:
            continue
        name = trimmed[:open_paren].strip(_BLANKS_NL)
        if not name:
            continue
        section = trimmed[open_paren + 1:close_paren].strip(_BLANKS_NL)
        if not section:
            continue
        if section_filter is not None and section != section_filter:
            continue
        entries.append((name, section))
    return entries


def split_aliases(short_name: Optional[str]) -> list[str]:
    """Split a NAME line's comma-separated names into individual aliases."""
    if not short_name:
        return []
    return [
        alias
        for alias in (token.strip(_BLANKS_NL) for token in short_name.split(","))
        if alias
    ]