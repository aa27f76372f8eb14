#!/usr/bin/env python3
"""
Writers Module
Writer interfaces and format-specific writer factories.

USD support needs the pxr library (pip install usd-core) and is imported on
first use of hierarchy_export.writers.usd_writer.
"""

from .base_writer import (
    AbstractHierarchyWriter,
    ExportPolicy,
    PredicatePolicy,
    WriterFactory,
    WriterKind,
)

__all__ = [
    'AbstractHierarchyWriter',
    'ExportPolicy',
    'PredicatePolicy',
    'WriterFactory',
    'WriterKind',
]
