"""History backends — the router's view of the address bar.

``RouterHistory`` is the contract the router depends on;
``MemoryHistory`` is an in-process implementation for tests and
non-browser runtimes.
"""
