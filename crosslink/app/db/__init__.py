"""Database access for crosslink (read-only)."""
