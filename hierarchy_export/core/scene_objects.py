#!/usr/bin/env python3
"""
Scene Objects Module
Format-agnostic data structures describing the live scene being exported.

These are the objects a scene evaluator hands to the hierarchy iterator.
They compare and hash by identity: two objects with the same name are still
two different scene objects, exactly like objects in a DCC application.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

import numpy as np


def identity_matrix() -> np.ndarray:
    """Return a fresh 4x4 identity matrix"""
    return np.identity(4, dtype=np.float64)


class ObjectKind(Enum):
    """Kind of data an object carries"""
    EMPTY = "empty"
    MESH = "mesh"
    CAMERA = "camera"
    CURVES = "curves"
    LIGHT = "light"


class ParticleKind(Enum):
    """Particle system classification"""
    HAIR = "hair"
    EMITTER = "emitter"


@dataclass(eq=False)
class MeshGeometry:
    """Static mesh geometry

    Attributes:
        positions: List of vertex positions as [x, y, z] tuples
        indices: Face vertex indices (flattened)
        counts: Number of vertices per face
    """
    positions: List[Tuple[float, float, float]] = field(default_factory=list)
    indices: List[int] = field(default_factory=list)
    counts: List[int] = field(default_factory=list)


@dataclass(eq=False)
class ObjectData:
    """Object data block (mesh, camera, ...), shareable between objects

    Attributes:
        name: Data block name
        kind: What sort of data this is
        geometry: Mesh geometry, only for ObjectKind.MESH
    """
    name: str
    kind: ObjectKind = ObjectKind.MESH
    geometry: Optional[MeshGeometry] = None


@dataclass(eq=False)
class ParticleSystem:
    """Hair or particle emission attached to an object

    Attributes:
        name: Particle settings name, used as the export name
        kind: HAIR or EMITTER
        enabled: Disabled systems are never exported
        points: Strand/particle positions in object space
        strand_counts: Number of points per hair strand (hair only)
    """
    name: str
    kind: ParticleKind = ParticleKind.HAIR
    enabled: bool = True
    points: List[Tuple[float, float, float]] = field(default_factory=list)
    strand_counts: List[int] = field(default_factory=list)


@dataclass(eq=False)
class SceneObject:
    """A single object in the scene

    Attributes:
        name: Object name (not necessarily unique in the scene)
        parent: True parent object, None for top-level objects
        data: Object data, None for empties
        particle_systems: Hair/particle systems attached to this object
        matrix_world: 4x4 world transform
        children: Child objects, maintained by the evaluator
    """
    name: str
    parent: Optional['SceneObject'] = None
    data: Optional[ObjectData] = None
    particle_systems: List[ParticleSystem] = field(default_factory=list)
    matrix_world: np.ndarray = field(default_factory=identity_matrix)
    children: List['SceneObject'] = field(default_factory=list, repr=False)

    def __repr__(self):
        return f"SceneObject({self.name!r})"


@dataclass(eq=False)
class DupliLink:
    """One duplication record, as reported by the scene evaluator

    Attributes:
        instanced_object: The object being instanced
        duplicator: The object doing the instancing
        persistent_id: Identifies this instance within the duplicator, stable
                       across frames
        world_matrix: World transform of this instance
        no_draw: Instance is hidden (e.g. custom bone shapes)
    """
    instanced_object: SceneObject
    duplicator: SceneObject
    persistent_id: Tuple[int, ...]
    world_matrix: np.ndarray = field(default_factory=identity_matrix)
    no_draw: bool = False
