"""Issue and verify signed secure-wipe certificates."""

__version__ = "0.1.0"
