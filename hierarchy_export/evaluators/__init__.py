#!/usr/bin/env python3
"""
Evaluators Module
Scene evaluators supplying objects, transforms and duplications to the
hierarchy iterator.
"""

from .base_evaluator import SceneEvaluator
from .memory_evaluator import InMemorySceneEvaluator

__all__ = [
    'SceneEvaluator',
    'InMemorySceneEvaluator',
]
