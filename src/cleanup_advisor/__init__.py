"""Advisory deletion-safety scoring for files in a directory tree."""

__version__ = "0.1.0"
