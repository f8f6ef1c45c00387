"""Command-line tools for the comprehension gate."""
