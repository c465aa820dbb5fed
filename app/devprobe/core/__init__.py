"""Core infrastructure: configuration, paths and errors."""
