"""MindWell wellness backend: HTTP API plus event-driven workflow workers."""

__version__ = "0.1.0"
