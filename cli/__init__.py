"""Command line interface for termlink."""
