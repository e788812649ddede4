"""Error hierarchy and structured logging helpers."""
