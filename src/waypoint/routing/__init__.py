"""Routing — path templates, the record tree, and location matching.

Templates are tokenized and compiled into ``PathParser`` objects when a
route is registered; the ``RouterMatcher`` keeps them ranked by
specificity so resolution is a single ordered scan.
"""
