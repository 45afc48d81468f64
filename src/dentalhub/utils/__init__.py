"""Shared utilities: logging, exceptions, identifiers and time."""
