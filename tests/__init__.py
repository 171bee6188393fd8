"""
ResourceDB Test Suite.

This package contains:
- unit/: Unit tests (no I/O)
- integration/: Integration tests (SQLite, HTTP app, client, store contract)
"""
