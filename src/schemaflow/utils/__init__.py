"""Expression and formatting helpers."""
