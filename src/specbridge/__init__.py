"""
SpecBridge - positions and results for Lua busted-style spec files.

This package provides tools to:
- Discover describe/it positions in spec files as a stable tree
- Derive line filters that scope a run to a selected subtree
- Reconcile the runner's alias-keyed JSON report onto tree positions
"""

__version__ = "0.1.0"
__author__ = "SpecBridge Team"
