#!/usr/bin/env python3
"""
Matrix utilities shared by graph construction and path resolution
"""

import numpy as np

from .scene_objects import identity_matrix

# Determinants below this are treated as non-invertible (e.g. zero scale).
SINGULAR_TOLERANCE = 1e-12


def as_matrix(value) -> np.ndarray:
    """Coerce a nested sequence or array into a 4x4 float64 matrix

    Raises:
        ValueError: If value is not 4x4
    """
    matrix = np.array(value, dtype=np.float64)
    if matrix.shape != (4, 4):
        raise ValueError(f"Expected a 4x4 matrix, got shape {matrix.shape}")
    return matrix


def invert_matrix(matrix):
    """Invert a 4x4 transform

    Returns:
        tuple: (inverse, ok). When the matrix is singular the inverse is the
               identity matrix and ok is False.
    """
    if abs(np.linalg.det(matrix)) < SINGULAR_TOLERANCE:
        return identity_matrix(), False
    try:
        inverse = np.linalg.inv(matrix)
    except np.linalg.LinAlgError:
        return identity_matrix(), False
    if not np.all(np.isfinite(inverse)):
        return identity_matrix(), False
    return inverse, True
