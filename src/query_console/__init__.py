"""Query Console - live-validated query editing and remote job polling."""

from query_console.__about__ import __version__

__all__ = ["__version__"]
