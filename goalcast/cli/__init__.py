"""Command-line entry points for goalcast."""
