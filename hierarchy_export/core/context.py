#!/usr/bin/env python3
"""
Hierarchy Context Module
Describes one exported instance of one object at one point in the export
hierarchy.

The same scene object can appear several times in the export hierarchy: once
at its true place, and once more for every time a duplicator instances it.
Each of those appearances is a separate HierarchyContext.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Optional, Tuple

import numpy as np

from .scene_objects import ParticleSystem, identity_matrix

# Graph key of the synthetic root context.
ROOT_KEY = (None, None, ())


@dataclass(eq=False)
class HierarchyContext:
    """One export-time instance of one object

    Attributes:
        object: Underlying scene object (None only for the synthetic root)
        export_parent: Object chosen as the single export-time parent
        duplicator: Object instancing this context, or None
        persistent_id: Instance identifier within the duplicator, () when
                       not instanced
        world_matrix: World transform at this point in the hierarchy
        export_name: Leaf name, unique among siblings after path assignment
        export_path: Full hierarchical path, unique after path assignment
        weak_export: Only exported as transform, and only when it is an
                     ancestor of a non-weak context
        animation_check_include_parent: Animation detection must also look
                                        at the ancestors of this object
        parent_matrix_inv_world: Inverse of the export parent's world matrix
        particle_system: Only set for hair/particle writer contexts
        object_data: Only set for data writer contexts, as resolved by the
                     scene evaluator
        original_export_path: Path of the context owning the real data when
                              this context is a reference to it
        handle: Index into the owning export graph's arena
    """
    object: Any = None
    export_parent: Any = None
    duplicator: Any = None
    persistent_id: Tuple[int, ...] = ()
    world_matrix: np.ndarray = field(default_factory=identity_matrix)
    export_name: str = ""
    export_path: str = ""
    weak_export: bool = False
    animation_check_include_parent: bool = False
    parent_matrix_inv_world: np.ndarray = field(default_factory=identity_matrix)
    particle_system: Optional[ParticleSystem] = None
    object_data: Any = None
    original_export_path: str = ""
    handle: int = -1

    @classmethod
    def root(cls) -> 'HierarchyContext':
        """Return a context representing the root of the export hierarchy"""
        return cls()

    def is_root(self) -> bool:
        return self.object is None

    def is_instance(self) -> bool:
        return bool(self.original_export_path)

    def mark_as_instance_of(self, reference_export_path: str):
        self.original_export_path = reference_export_path

    def mark_as_not_instanced(self):
        self.original_export_path = ""

    def graph_key(self):
        """Key under which this context's export-children are stored"""
        if self.is_root():
            return ROOT_KEY
        return (self.object, self.duplicator, self.persistent_id)

    def sort_key(self):
        """Deterministic sibling order: by name, then by creation order"""
        return (self.export_name, self.handle)

    def local_matrix(self) -> np.ndarray:
        """Transform relative to the export parent"""
        return self.parent_matrix_inv_world @ self.world_matrix

    def derive(self, **changes) -> 'HierarchyContext':
        """Shallow copy with some fields replaced, for data/particle writers"""
        return replace(self, **changes)

    def __repr__(self):
        if self.is_root():
            return "HierarchyContext(<root>)"
        return (f"HierarchyContext({self.export_path or self.export_name!r}, "
                f"handle={self.handle}, weak={self.weak_export})")
