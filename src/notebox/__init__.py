"""Notebox: local-first storage core for a folder/note tree with attachments."""

__version__ = "0.1.0"
