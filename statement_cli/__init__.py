"""Command-line tools: ``statement-convert`` and ``statement-compare``."""
