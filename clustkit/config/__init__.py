"""Settings models and loader."""
