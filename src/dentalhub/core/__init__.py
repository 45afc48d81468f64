"""Core infrastructure: database engine and shared constants."""
