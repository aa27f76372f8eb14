#!/usr/bin/env python3
"""
Path Resolver Module
Assigns unique export paths and decides which contexts are references to
data exported elsewhere.
"""

import logging
from typing import Callable, Dict, Optional, Set

from .context import HierarchyContext
from .diagnostics import DiagnosticKind, Diagnostics
from .export_graph import ExportGraph
from .matrices import invert_matrix
from .scene_objects import identity_matrix
from .settings import IteratorSettings

logger = logging.getLogger(__name__)


class OriginalPathMap:
    """Maps object (or object data) identity to the path of its real export

    The first registration of an identity wins; later registrations of the
    same identity are ignored.
    """

    def __init__(self):
        self._paths: Dict[object, str] = {}

    def register(self, identity, export_path: str) -> bool:
        """Record export_path for identity unless one is known already

        Returns:
            bool: True if this call registered the path
        """
        if identity in self._paths:
            return False
        self._paths[identity] = export_path
        return True

    def lookup(self, identity) -> Optional[str]:
        return self._paths.get(identity)

    def clear(self):
        self._paths.clear()

    def __contains__(self, identity):
        return identity in self._paths

    def __len__(self):
        return len(self._paths)


class PathResolver:
    """Top-down path assignment and duplication reference resolution

    Args:
        graph: Pruned export graph
        originals: Original-path map to fill and consult
        path_concatenate: Joins a parent path and a child name
        make_valid_name: Makes a name valid for the target format
        get_object_data: Returns the data identity of an object, or None
        get_object_data_path: Returns the export path of a context's data
        get_reserved_names: Returns the child names a context's own data and
                            particle writers occupy
        diagnostics: Channel for recoverable problems
        settings: Name suffix limits
    """

    def __init__(self, graph: ExportGraph, originals: OriginalPathMap,
                 path_concatenate: Callable[[str, str], str],
                 make_valid_name: Callable[[str], str],
                 get_object_data: Callable[[object], object],
                 get_object_data_path: Callable[[HierarchyContext], str],
                 get_reserved_names: Callable[[HierarchyContext], Set[str]],
                 diagnostics: Diagnostics, settings: IteratorSettings):
        self.graph = graph
        self.originals = originals
        self.path_concatenate = path_concatenate
        self.make_valid_name = make_valid_name
        self.get_object_data = get_object_data
        self.get_object_data_path = get_object_data_path
        self.get_reserved_names = get_reserved_names
        self.diagnostics = diagnostics
        self.settings = settings

    # === EXPORT PATHS ===

    def determine_export_paths(self, parent_context: HierarchyContext):
        """Assign export name, path and parent inverse to all descendants

        Siblings are visited in deterministic order, and a name already used
        by an earlier sibling gets a numeric disambiguator (Cube, Cube.001,
        Cube.002, ...).
        """
        children = self.graph.children_of(parent_context)
        if not children:
            return

        parent_export_path = parent_context.export_path
        parent_matrix_inv_world = self._parent_inverse(parent_context)

        # Data and particle paths of the parent are taken already.
        used_names: Set[str] = set(self.get_reserved_names(parent_context))
        for context in children:
            context.export_name = self._unique_name(context, used_names, parent_export_path)
            used_names.add(context.export_name)
            context.export_path = self.path_concatenate(parent_export_path, context.export_name)
            context.parent_matrix_inv_world = parent_matrix_inv_world.copy()

            if context.duplicator is None and not context.weak_export:
                # Original (non-instanced) object; remember where it went in
                # case it gets instanced somewhere.
                self.originals.register(context.object, context.export_path)
                data = self.get_object_data(context.object)
                if data is not None:
                    self.originals.register(data, self.get_object_data_path(context))

            self.determine_export_paths(context)

    def _parent_inverse(self, parent_context: HierarchyContext):
        if parent_context.is_root():
            return identity_matrix()
        inverse, ok = invert_matrix(parent_context.world_matrix)
        if not ok:
            self.diagnostics.warn(
                DiagnosticKind.SINGULAR_TRANSFORM,
                "world matrix is not invertible; children are exported relative to identity",
                path=parent_context.export_path,
            )
        return inverse

    def _unique_name(self, context: HierarchyContext, used_names: Set[str],
                     parent_export_path: str) -> str:
        name = context.export_name
        if name not in used_names:
            return name

        for index in range(1, self.settings.max_name_suffix + 1):
            candidate = self.make_valid_name(self.settings.format_suffix(name, index))
            if candidate not in used_names:
                return candidate

        candidate = self.make_valid_name(f"{name}.h{context.handle}")
        attempt = 0
        while candidate in used_names:
            attempt += 1
            candidate = self.make_valid_name(f"{name}.h{context.handle}_{attempt}")
        self.diagnostics.warn(
            DiagnosticKind.NAME_COLLISION_EXHAUSTED,
            f"more than {self.settings.max_name_suffix} siblings named {name!r}; "
            f"using {candidate!r}",
            path=self.path_concatenate(parent_export_path, candidate),
        )
        return candidate

    # === DUPLICATION REFERENCES ===

    def determine_duplication_references(self, parent_context: HierarchyContext):
        """Mark duplicated contexts as references to their original

        A duplicated context whose object was exported elsewhere becomes a
        reference to that export. When the original is not part of the
        export, the first duplicated context met in traversal order becomes
        the original, and later ones reference it.
        """
        for context in self.graph.children_of(parent_context):
            if context.duplicator is not None:
                self._resolve_reference(context)
            self.determine_duplication_references(context)

    def _resolve_reference(self, context: HierarchyContext):
        original_path = self.originals.lookup(context.object)

        if original_path is None or original_path == context.export_path:
            context.mark_as_not_instanced()
            self.originals.register(context.object, context.export_path)
            data = self.get_object_data(context.object)
            if data is not None:
                self.originals.register(data, self.get_object_data_path(context))
            logger.debug("%s is the original of %s", context.export_path,
                         getattr(context.object, "name", context.object))
        else:
            context.mark_as_instance_of(original_path)
