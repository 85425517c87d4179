"""Command-line entrypoints for facegate."""
