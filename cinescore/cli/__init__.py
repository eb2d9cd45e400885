"""Command-line interface for cinescore."""
