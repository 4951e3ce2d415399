"""
Core Business Logic
===================

Scene model, editor interaction and the two rasterization paths.
"""
