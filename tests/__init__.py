"""
Test suite for dsync.

This package contains tests for all dsync components:
- Unit tests for individual components, run against an in-memory fake pool
"""
