"""
Foliora Test Suite

Tests are organized into:
- unit/: Query building, aggregates and repositories against SQLite
- integration/: HTTP API through the ASGI transport
"""
