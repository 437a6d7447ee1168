"""Real-time analysis of Nginx access logs with a curses dashboard."""

__version__ = "0.11.1"
__all__ = ["__version__"]