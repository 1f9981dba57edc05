"""Orgpost: Export a single org-mode outline into a Hugo content tree."""

__version__ = "0.1.0"
