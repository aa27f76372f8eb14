#!/usr/bin/env python3
"""
Hierarchy Iterator Module
Drives one export pass over a scene: build the export graph, prune it,
assign paths, resolve instancing and hand every context to its writers.

The iterator is intended for exporters of file formats that describe an
entire hierarchy of objects (USD, Alembic) rather than a single mesh. It
makes no decisions about *what* to export; that is left to the ExportPolicy.
"""

import logging
from enum import Enum
from typing import List, Optional, Set

from .context import HierarchyContext
from .diagnostics import DiagnosticKind, Diagnostics
from .exceptions import (
    ConfigurationError,
    HierarchyDepthError,
    HierarchyExportError,
    IteratorStateError,
)
from .export_graph import ExportGraph, ExportGraphBuilder
from .path_resolver import OriginalPathMap, PathResolver
from .scene_objects import ParticleKind
from .settings import IteratorSettings
from .writer_registry import WriterRegistry
from ..writers.base_writer import ExportPolicy

logger = logging.getLogger(__name__)

_EVALUATOR_METHODS = (
    'list_root_objects',
    'list_children',
    'resolve_world_matrix',
    'list_duplications',
    'current_time',
)

_FACTORY_METHODS = (
    'create_transform_writer',
    'create_data_writer',
    'create_hair_writer',
    'create_particle_writer',
    'release_writer',
)


class IteratorState(Enum):
    """Phases of an export pass, in the order they run"""
    IDLE = "idle"
    GRAPH_BUILDING = "graph_building"
    PRUNING = "pruning"
    PATH_ASSIGNMENT = "path_assignment"
    DUPLICATION_RESOLUTION = "duplication_resolution"
    WRITING = "writing"
    RELEASED = "released"


class HierarchyIterator:
    """Export pass orchestrator

    This class coordinates the export process:
    1. Build the export graph ONCE per pass (via the scene evaluator)
    2. Prune transform-only branches that lead to nothing exported
    3. Assign unique export paths and resolve instancing
    4. Create or reuse a writer per path and write every context

    Calling iterate() again re-evaluates the scene and rebuilds the graph
    while keeping the writers, so an animation is exported by iterating once
    per frame and calling release_writers() at the end.
    """

    def __init__(self, evaluator, writer_factory, policy: Optional[ExportPolicy] = None,
                 settings: Optional[IteratorSettings] = None, progress_callback=None):
        """Initialize iterator

        Args:
            evaluator: SceneEvaluator supplying objects, transforms and duplications
            writer_factory: WriterFactory for the target format
            policy: ExportPolicy deciding what to export (default: everything drawn)
            settings: IteratorSettings (default limits if omitted)
            progress_callback: Optional function to call for progress updates
                              Signature: callback(message: str) -> None

        Raises:
            ConfigurationError: If the evaluator or factory is missing or incomplete
        """
        _require_interface("scene evaluator", evaluator, _EVALUATOR_METHODS)
        _require_interface("writer factory", writer_factory, _FACTORY_METHODS)

        self.evaluator = evaluator
        self.writer_factory = writer_factory
        self.policy = policy if policy is not None else ExportPolicy()
        self.settings = settings if settings is not None else IteratorSettings()
        self.progress_callback = progress_callback

        self.diagnostics = Diagnostics(progress_callback)
        self.export_graph = ExportGraph()
        self.originals_export_paths = OriginalPathMap()
        self.writers = WriterRegistry(writer_factory.release_writer)

        self.state = IteratorState.IDLE
        self.export_time: Optional[float] = None

    def log(self, message):
        """Send progress updates to callback"""
        if self.progress_callback:
            self.progress_callback(message)
        logger.info(message)

    # === PASS ===

    def iterate(self) -> Diagnostics:
        """Run one complete export pass

        A graph left over from a previous pass is cleared first. Writers from
        earlier passes are reused for the same paths.

        Returns:
            Diagnostics: Recoverable problems found during this pass

        Raises:
            IteratorStateError: If the writers were released and the iterator
                                was not reset with export_graph_clear()
            HierarchyDepthError: If the hierarchy exceeds settings.max_depth
            HierarchyExportError: In strict mode, if any warning was collected
        """
        if self.state is IteratorState.RELEASED:
            raise IteratorStateError(
                "Writers have been released; call export_graph_clear() before iterating again"
            )
        if self.state is not IteratorState.IDLE:
            self.export_graph_clear()

        self.diagnostics.clear()
        self.export_time = self.evaluator.current_time()
        self.writer_factory.begin_pass(self.export_time)

        try:
            self._enter(IteratorState.GRAPH_BUILDING)
            self.export_graph_construct()

            self._enter(IteratorState.PRUNING)
            self.export_graph_prune()

            resolver = self._path_resolver()
            self._enter(IteratorState.PATH_ASSIGNMENT)
            resolver.determine_export_paths(self.export_graph.root)

            self._enter(IteratorState.DUPLICATION_RESOLUTION)
            resolver.determine_duplication_references(self.export_graph.root)

            if logger.isEnabledFor(logging.DEBUG):
                self.debug_print_export_graph()

            self._enter(IteratorState.WRITING)
            self.make_writers(self.export_graph.root)
        except HierarchyDepthError:
            # Fatal: no partial graph survives.
            self.export_graph_clear()
            raise

        self.log(f"Exported {len(self.export_graph)} contexts at time {self.export_time} "
                 f"({len(self.writers)} writers, {len(self.diagnostics)} warnings)")

        if self.settings.strict and self.diagnostics.has_warnings:
            raise HierarchyExportError(self.diagnostics.get_summary())
        return self.diagnostics

    def _enter(self, state: IteratorState):
        logger.debug("Hierarchy iterator: %s -> %s", self.state.value, state.value)
        self.state = state

    def export_graph_construct(self):
        builder = ExportGraphBuilder(
            graph=self.export_graph,
            evaluator=self.evaluator,
            policy=self.policy,
            get_object_name=self.get_object_name,
            make_valid_name=self.writer_factory.make_valid_name,
            diagnostics=self.diagnostics,
            settings=self.settings,
        )
        builder.construct()

    def export_graph_prune(self):
        self.export_graph.prune()

    def export_graph_clear(self):
        """Discard all contexts and return to the initial state

        Writers are not affected; use release_writers() for those.
        """
        self.export_graph.clear()
        self.originals_export_paths.clear()
        self._enter(IteratorState.IDLE)

    def _path_resolver(self) -> PathResolver:
        return PathResolver(
            graph=self.export_graph,
            originals=self.originals_export_paths,
            path_concatenate=self.writer_factory.path_concatenate,
            make_valid_name=self.writer_factory.make_valid_name,
            get_object_data=self.evaluator_object_data,
            get_object_data_path=self.get_object_data_path,
            get_reserved_names=self.reserved_child_names,
            diagnostics=self.diagnostics,
            settings=self.settings,
        )

    # === WRITERS ===

    def make_writers(self, parent_context: HierarchyContext):
        """Write every descendant of parent_context, parents first"""
        for context in self.export_graph.children_of(parent_context):
            transform_writer = self.writers.ensure_writer(
                context, self.writer_factory.create_transform_writer)

            if transform_writer is None:
                self._report_unsupported(context, "transform")
            else:
                transform_writer.write(context)
                # Instances only record a reference; their data belongs to the original.
                if not context.weak_export and not context.is_instance():
                    self.make_writers_particle_systems(context)
                    self.make_writer_object_data(context)

            self.make_writers(context)

    def make_writer_object_data(self, context: HierarchyContext):
        data = self.evaluator_object_data(context.object)
        if data is None:
            return

        data_context = context.derive(export_path=self.get_object_data_path(context),
                                      object_data=data)
        # Data shared between objects is written once; later users reference it.
        original_data_path = self.originals_export_paths.lookup(data)
        if original_data_path and original_data_path != data_context.export_path:
            data_context.mark_as_instance_of(original_data_path)

        data_writer = self.writers.ensure_writer(data_context, self.writer_factory.create_data_writer)
        if data_writer is None:
            self._report_unsupported(data_context, "data")
            return
        data_writer.write(data_context)

    def make_writers_particle_systems(self, transform_context: HierarchyContext):
        for psys in self.evaluator_particle_systems(transform_context.object):
            if not getattr(psys, 'enabled', True):
                continue

            psys_context = transform_context.derive(
                export_path=self.writer_factory.path_concatenate(
                    transform_context.export_path, self.get_id_name(psys)),
                particle_system=psys,
            )

            kind = getattr(psys, 'kind', ParticleKind.HAIR)
            if kind is ParticleKind.HAIR:
                create_func = self.writer_factory.create_hair_writer
            elif kind is ParticleKind.EMITTER:
                create_func = self.writer_factory.create_particle_writer
            else:
                continue

            writer = self.writers.ensure_writer(psys_context, create_func)
            if writer is None:
                self._report_unsupported(psys_context, kind.value)
                continue
            writer.write(psys_context)

    def _report_unsupported(self, context: HierarchyContext, what: str):
        self.diagnostics.warn(
            DiagnosticKind.UNSUPPORTED_OBJECT,
            f"no {what} writer for {self.get_object_name(context.object)!r}; skipped",
            path=context.export_path,
        )

    def release_writers(self):
        """Tear down all writers; safe to call more than once"""
        self.writers.release_writers()
        self._enter(IteratorState.RELEASED)

    @property
    def writer_map(self):
        """Read-only mapping of path -> writer"""
        return self.writers.writers

    # === NAMING ===

    def get_id_name(self, block) -> str:
        """Return the valid export name of a named block (object, data, particles)"""
        if block is None:
            return ""
        return self.writer_factory.make_valid_name(getattr(block, 'name', str(block)))

    def get_object_name(self, obj) -> str:
        return self.get_id_name(obj)

    def get_object_data_name(self, obj) -> str:
        return self.get_id_name(self.evaluator_object_data(obj))

    def get_object_data_path(self, context: HierarchyContext) -> str:
        """Export path of the context's object data, below the object's path"""
        return self.writer_factory.path_concatenate(
            context.export_path, self.get_object_data_name(context.object))

    def reserved_child_names(self, context: HierarchyContext) -> Set[str]:
        """Names below context.export_path taken by its data and particle writers

        Child objects are kept off these names so that no object path equals
        a data or particle path.
        """
        if context.is_root():
            return set()
        names = set()
        data_name = self.get_object_data_name(context.object)
        if data_name:
            names.add(data_name)
        for psys in self.evaluator_particle_systems(context.object):
            if getattr(psys, 'enabled', True):
                names.add(self.get_id_name(psys))
        return names

    def evaluator_object_data(self, obj):
        get_data = getattr(self.evaluator, 'get_object_data', None)
        if get_data is None:
            return getattr(obj, 'data', None)
        return get_data(obj)

    def evaluator_particle_systems(self, obj):
        list_systems = getattr(self.evaluator, 'list_particle_systems', None)
        if list_systems is None:
            return list(getattr(obj, 'particle_systems', ()))
        return list_systems(obj)

    # === INSPECTION ===

    def contexts(self) -> List[HierarchyContext]:
        """Contexts of the current pass, in traversal (writing) order"""
        return list(self.export_graph.walk())

    def debug_print_export_graph(self) -> str:
        text = self.export_graph.debug_format()
        logger.debug("%s", text)
        return text


def _require_interface(label: str, candidate, methods):
    if candidate is None:
        raise ConfigurationError(f"No {label} given")
    missing = [name for name in methods if not callable(getattr(candidate, name, None))]
    if missing:
        raise ConfigurationError(
            f"{type(candidate).__name__} is not a usable {label}; missing: {', '.join(missing)}"
        )
