"""Recite Tutor: learn a paged text and keep it with spaced recitation."""

__version__ = "0.1.0"
