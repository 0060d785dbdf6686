"""Command-line interface for ccStream."""
