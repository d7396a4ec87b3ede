"""Index scanning, scoring, ranking and recent files."""
