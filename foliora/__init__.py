"""
Foliora - book catalogue backend.

REST API for cataloguing books with reviews, upvotes, per-user reading
status, reading goals and bookmarks.
"""

__version__ = "1.0.0"
