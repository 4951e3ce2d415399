"""
Rendering Module
===============

Paint plan shared by both rasterizers, plus the rasterizers themselves.

Components:
- paint: Per-kind paint instructions
- html_generator: Convert a scene to the editor canvas markup
- client_rasterizer: Browser capture of the live canvas
- image_fetcher: Concurrent image retrieval for remote rendering
- remote_rasterizer: Standalone Pillow renderer
"""
