"""DriveFinder - offline search across per-volume file indexes."""

__version__ = "0.1.0"
