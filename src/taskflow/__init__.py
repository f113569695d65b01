"""Client-side sync module for a collaborative, multi-user task store."""

__version__ = "0.3.0"
