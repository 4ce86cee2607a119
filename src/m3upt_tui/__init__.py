"""Terminal browser for the M3UPT channel playlist."""

__version__ = "0.1.0"

__all__ = ["__version__"]
