"""Core infrastructure: configuration, database, identity and errors."""
