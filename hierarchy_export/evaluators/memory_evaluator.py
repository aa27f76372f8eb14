#!/usr/bin/env python3
"""
In-Memory Evaluator Module
SceneEvaluator over SceneObjects held in memory.

Useful for scripted scenes and for testing exporters without a host
application. Objects are reported in the order they were added.
"""

from typing import Dict, List, Optional, Sequence

import numpy as np

from ..core.matrices import as_matrix
from ..core.scene_objects import (
    DupliLink,
    ObjectData,
    ParticleSystem,
    SceneObject,
    identity_matrix,
)
from .base_evaluator import SceneEvaluator


class InMemorySceneEvaluator(SceneEvaluator):
    """Scene evaluator backed by plain SceneObjects

    Args:
        time: Evaluation time reported by current_time()
    """

    def __init__(self, time: float = 0.0):
        self.time = time
        self._objects: List[SceneObject] = []
        self._duplications: Dict[SceneObject, List[DupliLink]] = {}

    # === SCENE BUILDING ===

    def add_object(self, name: str, parent: Optional[SceneObject] = None,
                   data: Optional[ObjectData] = None, matrix_world=None,
                   particle_systems: Sequence[ParticleSystem] = ()) -> SceneObject:
        """Create an object and link it into the hierarchy

        Args:
            name: Object name, does not need to be unique
            parent: True parent, None for a top-level object
            data: Object data block, None for an empty
            matrix_world: 4x4 world transform, identity if omitted
            particle_systems: Hair/particle systems on the object

        Returns:
            SceneObject: The new object
        """
        obj = SceneObject(
            name=name,
            parent=parent,
            data=data,
            particle_systems=list(particle_systems),
            matrix_world=identity_matrix() if matrix_world is None else as_matrix(matrix_world),
        )
        if parent is not None:
            parent.children.append(obj)
        self._objects.append(obj)
        return obj

    def add_duplication(self, duplicator: SceneObject, instanced_object: SceneObject,
                        persistent_id, matrix_world=None, no_draw: bool = False) -> DupliLink:
        """Make duplicator instance instanced_object once

        Args:
            duplicator: Object doing the instancing
            instanced_object: Object being instanced
            persistent_id: int or tuple of ints identifying the instance
            matrix_world: World transform of the instance, identity if omitted
            no_draw: Hidden instance

        Returns:
            DupliLink: The new duplication record
        """
        if isinstance(persistent_id, int):
            persistent_id = (persistent_id,)
        link = DupliLink(
            instanced_object=instanced_object,
            duplicator=duplicator,
            persistent_id=tuple(persistent_id),
            world_matrix=identity_matrix() if matrix_world is None else as_matrix(matrix_world),
            no_draw=no_draw,
        )
        self._duplications.setdefault(duplicator, []).append(link)
        return link

    # === SceneEvaluator ===

    def list_root_objects(self) -> List[SceneObject]:
        return [obj for obj in self._objects if obj.parent is None]

    def list_children(self, obj: SceneObject) -> List[SceneObject]:
        return list(obj.children)

    def resolve_world_matrix(self, obj: SceneObject) -> np.ndarray:
        return obj.matrix_world.copy()

    def list_duplications(self, obj: SceneObject) -> List[DupliLink]:
        return list(self._duplications.get(obj, ()))

    def current_time(self) -> float:
        return self.time
