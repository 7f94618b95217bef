"""Index and watch directory trees of XLIFF translation files."""

__version__ = "0.1.0"
