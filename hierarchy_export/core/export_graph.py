#!/usr/bin/env python3
"""
Export Graph Module
Builds the export hierarchy from the scene's object hierarchy.

The scene can have two parent-like relations at once: the true parent of an
object, and a duplicator instancing it. The export graph resolves these into
a single export parent per context. It maps the identity of a context,
(object, duplicator, persistent_id), to the set of contexts that are its
export-children. (object, duplicator) identifies the pair; persistent_id only
keeps distinct instances made by one duplicator apart.

Contexts live in an arena owned by the graph and are referenced by integer
handle, so clearing the graph releases all of them at once.
"""

import logging
from typing import Callable, Dict, Iterator, List, Optional, Set

from .context import ROOT_KEY, HierarchyContext
from .diagnostics import DiagnosticKind, Diagnostics
from .exceptions import HierarchyDepthError
from .matrices import as_matrix, invert_matrix
from .settings import IteratorSettings

logger = logging.getLogger(__name__)


class ExportGraph:
    """Arena of HierarchyContexts plus the parent-key -> children mapping"""

    def __init__(self):
        self.root = HierarchyContext.root()
        self._arena: List[Optional[HierarchyContext]] = []
        self._children: Dict[tuple, Set[int]] = {}

    # === ARENA ===

    def add(self, context: HierarchyContext, parent_key) -> int:
        """Take ownership of context and register it as a child of parent_key

        Returns:
            int: The handle assigned to the context
        """
        context.handle = len(self._arena)
        self._arena.append(context)
        self._children.setdefault(parent_key, set()).add(context.handle)
        return context.handle

    def get(self, handle: int) -> Optional[HierarchyContext]:
        """Return the live context for handle, or None if it was released"""
        if 0 <= handle < len(self._arena):
            return self._arena[handle]
        return None

    def has_entry(self, key) -> bool:
        return key in self._children

    def remove_entry(self, key):
        self._children.pop(key, None)

    def release(self, key, context: HierarchyContext):
        """Detach context from key's children and drop it from the arena"""
        children = self._children.get(key)
        if children is not None:
            children.discard(context.handle)
        if self.get(context.handle) is context:
            self._arena[context.handle] = None

    def clear(self):
        """Release every context; all handles become invalid"""
        self._arena.clear()
        self._children.clear()

    # === TRAVERSAL ===

    def children(self, key) -> List[HierarchyContext]:
        """Children stored under key, in deterministic traversal order"""
        handles = self._children.get(key, ())
        contexts = [self._arena[h] for h in handles if self._arena[h] is not None]
        contexts.sort(key=HierarchyContext.sort_key)
        return contexts

    def children_of(self, context: HierarchyContext) -> List[HierarchyContext]:
        return self.children(context.graph_key())

    def walk(self, parent: Optional[HierarchyContext] = None) -> Iterator[HierarchyContext]:
        """Depth-first traversal, parents before children"""
        parent = parent if parent is not None else self.root
        for context in self.children_of(parent):
            yield context
            yield from self.walk(context)

    def contexts(self) -> List[HierarchyContext]:
        """All live contexts, in arena order"""
        return [c for c in self._arena if c is not None]

    def __len__(self):
        return sum(1 for c in self._arena if c is not None)

    def __iter__(self):
        return self.walk()

    # === PRUNING ===

    def prune(self):
        """Remove all weakly-exported subtrees without a non-weak descendant

        Post-order: whether a weak context survives depends on everything
        below it, so the decision is made on the way back up. Weak contexts
        that gate a surviving non-weak descendant are kept as transform-only.
        """
        def prune_subtree(context: HierarchyContext) -> bool:
            all_is_weak = not context.is_root() and context.weak_export
            key = context.graph_key()

            if key in self._children:
                for child in self.children(key):
                    child_tree_is_weak = prune_subtree(child)
                    all_is_weak = all_is_weak and child_tree_is_weak
                    if child_tree_is_weak:
                        self.release(key, child)

            if all_is_weak:
                self.remove_entry(key)
            return all_is_weak

        prune_subtree(self.root)
        self._release_unreachable()

    def _release_unreachable(self):
        """Drop contexts that no path from the root leads to"""
        reachable = {context.handle for context in self.walk()}
        for handle, context in enumerate(self._arena):
            if context is not None and handle not in reachable:
                self._arena[handle] = None
        live_keys = {ROOT_KEY} | {context.graph_key() for context in self.contexts()}
        for key in list(self._children):
            if key not in live_keys:
                del self._children[key]

    # === DEBUGGING ===

    def debug_format(self) -> str:
        """Textual dump of the graph, one line per context"""
        lines = ["Export graph:"]

        def format_children(context: HierarchyContext, indent: str):
            for child in self.children_of(context):
                flags = []
                if child.weak_export:
                    flags.append("weak")
                if child.duplicator is not None:
                    flags.append(f"dupli of {_object_name(child.duplicator)}")
                if child.is_instance():
                    flags.append(f"-> {child.original_export_path}")
                label = child.export_path or child.export_name
                suffix = f" ({', '.join(flags)})" if flags else ""
                lines.append(f"{indent}[{child.handle}] {label}{suffix}")
                format_children(child, indent + "  ")

        format_children(self.root, "  ")
        if len(lines) == 1:
            lines.append("  (empty)")
        return "\n".join(lines)


def _object_name(obj) -> str:
    return getattr(obj, "name", repr(obj))


class ExportGraphBuilder:
    """Walks the scene through the evaluator and fills an ExportGraph

    Args:
        graph: Graph to fill
        evaluator: SceneEvaluator supplying objects, transforms and duplications
        policy: ExportPolicy deciding which objects/duplications are exported
        get_object_name: Returns the (valid) export name of a scene object
        make_valid_name: Makes an arbitrary name valid for the target format
        diagnostics: Channel for recoverable problems
        settings: Depth limit and friends
    """

    def __init__(self, graph: ExportGraph, evaluator, policy,
                 get_object_name: Callable[[object], str],
                 make_valid_name: Callable[[str], str],
                 diagnostics: Diagnostics, settings: IteratorSettings):
        self.graph = graph
        self.evaluator = evaluator
        self.policy = policy
        self.get_object_name = get_object_name
        self.make_valid_name = make_valid_name
        self.diagnostics = diagnostics
        self.settings = settings

    def construct(self):
        """Visit every top-level object and, recursively, its descendants"""
        for obj in self.evaluator.list_root_objects():
            self.visit_object(obj, None, self.mark_as_weak_export(obj))
        logger.debug("Export graph constructed: %d contexts", len(self.graph))

    def mark_as_weak_export(self, obj) -> bool:
        return not self.policy.should_export_object(obj)

    def visit_object(self, obj, export_parent, weak_export: bool, depth: int = 0):
        """Create a context for obj under its true parent, then recurse

        Non-instanced objects always have their true parent as export parent.
        """
        self._check_depth(obj, depth)

        context = HierarchyContext(
            object=obj,
            export_parent=export_parent,
            duplicator=None,
            world_matrix=as_matrix(self.evaluator.resolve_world_matrix(obj)),
            export_name=self.get_object_name(obj),
            weak_export=weak_export,
        )
        parent_key = (export_parent, None, ()) if export_parent is not None else ROOT_KEY
        self.graph.add(context, parent_key)

        # A weakly exported duplicator does not export its duplicated objects either.
        if not weak_export:
            self._visit_duplications(context, obj, self.evaluator.list_duplications(obj),
                                     chain=(obj,), depth=depth)

        for child in self.evaluator.list_children(obj):
            self.visit_object(child, obj, self.mark_as_weak_export(child), depth + 1)

    def _visit_duplications(self, owner: HierarchyContext, source, links, chain, depth,
                            pid_prefix=(), offset=None):
        """Visit the duplication records of source, below owner"""
        links = [link for link in links if self.policy.should_visit_duplication(link)]
        if not links:
            return

        # Objects instanced together, keyed by the instance group they are in,
        # so that a duplicated parent can be found for a duplicated child.
        dupli_set = {}
        for link in links:
            group = tuple(link.persistent_id[:-1])
            dupli_set.setdefault((link.instanced_object, group), link)

        for link in links:
            self.visit_dupli_object(link, owner, source, dupli_set, chain, depth,
                                    pid_prefix=pid_prefix, offset=offset)

    def visit_dupli_object(self, link, owner: HierarchyContext, duplicator, dupli_set,
                           chain, depth, pid_prefix=(), offset=None):
        """Create a context for one duplicated object

        Export-parent precedence: when the duplicated object's true parent is
        duplicated by the same duplicator in the same instance group, that
        duplicated parent becomes the export parent. Otherwise the duplicator
        is the export parent, and animation detection has to look at the
        object's real ancestors as well.
        """
        instanced = link.instanced_object
        if instanced in chain:
            self.diagnostics.warn(
                DiagnosticKind.DUPLICATION_CYCLE,
                f"{_object_name(duplicator)} instances {_object_name(instanced)}, "
                "which is already on its duplication chain; link skipped",
                path=" > ".join(_object_name(o) for o in chain),
            )
            return

        persistent_id = tuple(pid_prefix) + tuple(link.persistent_id)
        group = tuple(link.persistent_id[:-1])

        parent = self._parent_of(instanced)
        parent_link = dupli_set.get((parent, group)) if parent is not None else None
        if (parent_link is not None and parent_link is not link
                and parent_link.instanced_object not in chain):
            # The parent object is part of the duplicated collection.
            export_parent = parent
            parent_key = (parent, duplicator, tuple(pid_prefix) + tuple(parent_link.persistent_id))
            animation_check_include_parent = False
        else:
            # The world transform of this object can be influenced by objects
            # outside its own export subtree.
            export_parent = owner.object
            parent_key = owner.graph_key()
            animation_check_include_parent = True

        world_matrix = as_matrix(link.world_matrix)
        if offset is not None:
            world_matrix = offset @ world_matrix

        suffix = "".join(f"-{part:x}" for part in persistent_id)
        context = HierarchyContext(
            object=instanced,
            export_parent=export_parent,
            duplicator=duplicator,
            persistent_id=persistent_id,
            world_matrix=world_matrix,
            export_name=self.make_valid_name(self.get_object_name(instanced) + suffix),
            weak_export=False,
            animation_check_include_parent=animation_check_include_parent,
        )
        self.graph.add(context, parent_key)

        # Nested instancing: whatever the instanced object duplicates itself is
        # moved along with this instance.
        nested_links = self.evaluator.list_duplications(instanced)
        if not nested_links:
            return
        self._check_depth(instanced, depth + 1)
        own_inverse, ok = invert_matrix(as_matrix(self.evaluator.resolve_world_matrix(instanced)))
        if not ok:
            self.diagnostics.warn(
                DiagnosticKind.SINGULAR_TRANSFORM,
                "world matrix of instanced object is not invertible; "
                "nested instances use their unmodified transform",
                path=_object_name(instanced),
            )
        self._visit_duplications(context, instanced, nested_links, chain + (instanced,), depth + 1,
                                 pid_prefix=persistent_id,
                                 offset=world_matrix @ own_inverse)

    def _parent_of(self, obj):
        get_parent = getattr(self.evaluator, "get_parent", None)
        if get_parent is None:
            return getattr(obj, "parent", None)
        return get_parent(obj)

    def _check_depth(self, obj, depth):
        if depth >= self.settings.max_depth:
            raise HierarchyDepthError(_object_name(obj), self.settings.max_depth)
