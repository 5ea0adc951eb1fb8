"""Command-line interface for Dotstow."""
