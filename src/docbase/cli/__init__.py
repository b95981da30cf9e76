"""Docbase command-line interface."""
