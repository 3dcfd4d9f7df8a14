"""Pluggable components for dohgate."""
