"""
gtdtree - hierarchical item store for GTD-style task management.
"""
__version__ = "0.1.0"
