"""
Heap-usage comparison harness for interchangeable TLS libraries.

Prefer importing concrete components from their specific submodules; use the
registries exposed under ``tlsmem.core`` for discovery.
"""

__version__ = "0.1.0"
