"""
FastAPI REST Endpoints
======================

REST API endpoints for HTTP access to scene rendering and the editor.

Endpoints:
- GET /api/image: Render a serialized scene to PNG
- /api/editor/*: Editor scene mutations, export and generate actions
- GET /health: Health check endpoint
"""
