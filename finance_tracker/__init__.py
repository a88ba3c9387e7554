"""
Finance Tracker - Source Package

Personal income/expense tracker with a dual-mode transaction store:
a remote, account-scoped backend when a session exists, and an
on-device cache that is always kept in sync.

DESIGN PRINCIPLES:
1. The in-memory list is the single source of truth for the UI
2. Remote failures degrade to local storage, never crash
3. Every mutation is mirrored into the local cache
4. Storage backends are swappable behind interfaces
"""

__version__ = "1.0.0"
__author__ = "Finance Tracker Team"
