"""Database infrastructure: engine, sessions and repositories."""
