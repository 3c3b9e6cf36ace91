"""Local multi-page to-do manager."""

__version__ = "0.1.0"
