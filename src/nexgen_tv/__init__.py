"""Terminal IPTV browser with typed channel navigation."""

__version__ = "0.1.0"

__all__ = ["__version__"]
