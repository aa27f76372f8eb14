#!/usr/bin/env python3
"""
Exceptions Module
Hard failures of the hierarchy iterator. Recoverable conditions are not
raised; they are collected as diagnostics (see diagnostics.py).
"""


class HierarchyExportError(Exception):
    """Base class for all hierarchy export failures"""


class ConfigurationError(HierarchyExportError):
    """Iterator was constructed with missing or invalid collaborators"""


class HierarchyDepthError(HierarchyExportError):
    """Scene hierarchy is deeper than the configured limit

    Raised instead of letting the recursive traversal exhaust the stack,
    which usually means the scene's parent pointers contain a cycle.
    """

    def __init__(self, object_name, max_depth):
        self.object_name = object_name
        self.max_depth = max_depth
        super().__init__(
            f"Hierarchy depth limit ({max_depth}) exceeded at object {object_name!r}; "
            "the scene hierarchy is cyclic or pathologically deep"
        )


class IteratorStateError(HierarchyExportError):
    """Operation is not allowed in the iterator's current state"""
