"""
API Routes
==========

Routers for the image endpoint, the editor API and health checks.
"""
