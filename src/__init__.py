"""Comprehension gate application packages."""
