"""
API module for ResourceDB server.

This module provides the external interface:
- HTTP server (JSON REST over /resources)

Invariants:
    - Handlers never catch store errors themselves
    - Every request runs under a deadline

How to change safely:
    - HTTP endpoints must keep the store's error semantics
    - Version the API if breaking changes are needed
"""

from .http_server import create_http_app

__all__ = [
    "create_http_app",
]
