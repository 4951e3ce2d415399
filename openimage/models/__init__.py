"""
Data Models
===========

Pydantic models for scene elements, rendering results and API responses.
"""
