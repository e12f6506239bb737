"""GHAS Toolkit - drive the CodeQL CLI for packs, databases and scans."""

__version__ = "0.1.0"
