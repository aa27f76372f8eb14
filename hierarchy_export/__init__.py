#!/usr/bin/env python3
"""
Hierarchy Export
Turns a scene's object hierarchy, with true parenting and instancing, into a
single-parent export hierarchy and drives format-specific writers over it.
"""

from .core import (
    ConfigurationError,
    Diagnostic,
    DiagnosticKind,
    Diagnostics,
    DupliLink,
    HierarchyContext,
    HierarchyDepthError,
    HierarchyExportError,
    HierarchyIterator,
    IteratorSettings,
    IteratorState,
    IteratorStateError,
    MeshGeometry,
    ObjectData,
    ObjectKind,
    ParticleKind,
    ParticleSystem,
    SceneObject,
)
from .evaluators import InMemorySceneEvaluator, SceneEvaluator
from .writers import (
    AbstractHierarchyWriter,
    ExportPolicy,
    PredicatePolicy,
    WriterFactory,
    WriterKind,
)

__version__ = "1.0.0"

__all__ = [
    'ConfigurationError',
    'Diagnostic',
    'DiagnosticKind',
    'Diagnostics',
    'DupliLink',
    'HierarchyContext',
    'HierarchyDepthError',
    'HierarchyExportError',
    'HierarchyIterator',
    'IteratorSettings',
    'IteratorState',
    'IteratorStateError',
    'MeshGeometry',
    'ObjectData',
    'ObjectKind',
    'ParticleKind',
    'ParticleSystem',
    'SceneObject',
    'InMemorySceneEvaluator',
    'SceneEvaluator',
    'AbstractHierarchyWriter',
    'ExportPolicy',
    'PredicatePolicy',
    'WriterFactory',
    'WriterKind',
]
