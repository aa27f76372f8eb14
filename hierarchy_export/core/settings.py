#!/usr/bin/env python3
"""
Settings Module
Tunable limits for the hierarchy iterator.
"""

from dataclasses import dataclass

# Recursion in the traversal costs a few stack frames per hierarchy level;
# stay well below the interpreter's default recursion limit of 1000.
DEFAULT_MAX_DEPTH = 200

# Blender-style name suffixes run from .001 to .999
DEFAULT_MAX_NAME_SUFFIX = 999
DEFAULT_NAME_SUFFIX_DIGITS = 3


@dataclass
class IteratorSettings:
    """Configuration for a HierarchyIterator

    Attributes:
        max_depth: Deepest hierarchy (true parenting plus nested duplication)
                   accepted before the pass fails with HierarchyDepthError
        max_name_suffix: Highest numeric disambiguator appended to sibling
                         names before falling back to a synthetic suffix
        name_suffix_digits: Zero-padding of the numeric disambiguator
        strict: Raise HierarchyExportError at the end of a pass that
                collected any warnings
    """
    max_depth: int = DEFAULT_MAX_DEPTH
    max_name_suffix: int = DEFAULT_MAX_NAME_SUFFIX
    name_suffix_digits: int = DEFAULT_NAME_SUFFIX_DIGITS
    strict: bool = False

    def __post_init__(self):
        if self.max_depth < 1:
            raise ValueError(f"max_depth must be at least 1, got {self.max_depth}")
        if self.max_name_suffix < 1:
            raise ValueError(f"max_name_suffix must be at least 1, got {self.max_name_suffix}")
        if self.name_suffix_digits < 1:
            raise ValueError(f"name_suffix_digits must be at least 1, got {self.name_suffix_digits}")

    def format_suffix(self, name: str, index: int) -> str:
        """Return name with numeric disambiguator, e.g. 'Cube.001'"""
        return f"{name}.{index:0{self.name_suffix_digits}d}"
