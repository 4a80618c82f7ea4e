"""Command line interface for SQLHelper."""
