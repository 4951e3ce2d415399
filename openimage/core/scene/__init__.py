"""
Scene
=====

Element construction, the immutable scene, its transport form, persistence
and the editor interaction controller.
"""
