#!/usr/bin/env python3
"""
Base Evaluator Module
Abstract interface for querying a scene at one point in time.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence

import numpy as np


class SceneEvaluator(ABC):
    """Abstract base class for scene evaluators

    Supplies the hierarchy iterator with the scene's objects, their resolved
    world transforms and their duplication records. All calls are expected to
    be synchronous and consistent with current_time() for one export pass.
    """

    @abstractmethod
    def list_root_objects(self) -> Sequence[Any]:
        """Get the objects without a parent

        Returns:
            list: Top-level scene objects
        """
        pass

    @abstractmethod
    def list_children(self, obj: Any) -> Sequence[Any]:
        """Get the objects whose true parent is obj

        Returns:
            list: Child scene objects
        """
        pass

    @abstractmethod
    def resolve_world_matrix(self, obj: Any) -> np.ndarray:
        """Get the evaluated world transform of obj

        Returns:
            np.ndarray: 4x4 matrix
        """
        pass

    @abstractmethod
    def list_duplications(self, obj: Any) -> Sequence[Any]:
        """Get the duplication records of objects instanced by obj

        Returns:
            list: DupliLink-like records with instanced_object, duplicator,
                  persistent_id and world_matrix
        """
        pass

    @abstractmethod
    def current_time(self) -> float:
        """Get the time the scene is evaluated at"""
        pass

    def get_parent(self, obj: Any) -> Optional[Any]:
        """Get the true parent of obj, None for top-level objects

        Override in subclasses if objects don't carry a parent attribute.
        """
        return getattr(obj, "parent", None)

    def get_object_data(self, obj: Any) -> Optional[Any]:
        """Get the data block of obj (mesh, camera, ...), None for empties"""
        return getattr(obj, "data", None)

    def list_particle_systems(self, obj: Any) -> Sequence[Any]:
        """Get the hair/particle systems attached to obj"""
        return list(getattr(obj, "particle_systems", ()))
