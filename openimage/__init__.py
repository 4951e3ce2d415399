"""
Open Image
==========

Compose a fixed-size canvas out of text, box and image elements and rasterize
it through two independent paths.

This package provides:
- Element and scene models with a JSON/URL transport form
- An interaction controller for the editor (drag, select, style edits)
- A client rasterizer that captures the live browser layout with Playwright
- A remote rasterizer that re-renders a serialized scene to PNG with Pillow
- FastAPI REST endpoints for both paths
"""

__version__ = "1.0.0"
__author__ = "Open Image Team"
