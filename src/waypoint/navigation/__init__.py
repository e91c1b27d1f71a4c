"""Navigation guard pipeline.

``guards`` normalizes every guard source into ``GuardEntry`` values and
runs them one at a time. ``pipeline`` orders them into stages for one
navigation and reports how it settled.
"""
