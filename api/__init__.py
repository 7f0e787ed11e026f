"""HTTP interface for the vendor lead marketplace."""

__version__ = "1.0.0"
