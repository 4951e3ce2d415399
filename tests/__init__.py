"""
Test Suite
==========

Test suite matching the openimage/ package structure.

Test Categories:
- unit: Unit tests for individual components
- integration: FastAPI endpoint and contract testing
"""
