"""Local persistence, migration and navigation core of the analytics dashboard."""

__version__ = "0.2.0"
