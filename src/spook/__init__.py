"""Run commands and broadcast server-sent events when watched files change."""

__version__ = "0.3.0"
