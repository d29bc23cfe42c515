"""Layout-aware document parsing and translation."""

__version__ = "0.1.0"
