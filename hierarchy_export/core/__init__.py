#!/usr/bin/env python3
"""
Core Module
Export graph, path resolution, writer registry and the iterator driving them.
"""

from .context import HierarchyContext
from .diagnostics import Diagnostic, DiagnosticKind, Diagnostics
from .exceptions import (
    ConfigurationError,
    HierarchyDepthError,
    HierarchyExportError,
    IteratorStateError,
)
from .export_graph import ExportGraph, ExportGraphBuilder
from .hierarchy_iterator import HierarchyIterator, IteratorState
from .path_resolver import OriginalPathMap, PathResolver
from .scene_objects import (
    DupliLink,
    MeshGeometry,
    ObjectData,
    ObjectKind,
    ParticleKind,
    ParticleSystem,
    SceneObject,
)
from .settings import IteratorSettings
from .writer_registry import WriterRegistry

__all__ = [
    'HierarchyContext',
    'Diagnostic',
    'DiagnosticKind',
    'Diagnostics',
    'ConfigurationError',
    'HierarchyDepthError',
    'HierarchyExportError',
    'IteratorStateError',
    'ExportGraph',
    'ExportGraphBuilder',
    'HierarchyIterator',
    'IteratorState',
    'OriginalPathMap',
    'PathResolver',
    'DupliLink',
    'MeshGeometry',
    'ObjectData',
    'ObjectKind',
    'ParticleKind',
    'ParticleSystem',
    'SceneObject',
    'IteratorSettings',
    'WriterRegistry',
]
