"""Bundled lesson module JSON files."""
