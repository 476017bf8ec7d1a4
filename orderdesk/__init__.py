"""Order lifecycle engine for the marketplace admin dashboard."""

__version__ = "0.1.0"
