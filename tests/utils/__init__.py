"""
Test Utilities
==============

Shared assertions and data generators for the test suite.
"""
