"""Manual-page derived specifications of C functions, stored in SQLite."""

__version__ = "0.1.0"
__all__ = ["database", "manpage", "indexer"]