"""Command-line interface for clipnote."""
