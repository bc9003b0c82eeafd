"""
Test support utilities for tablespine tests.

Entity models shared across test modules live in :mod:`tests._support.models`
so they are registered exactly once per session.
"""
