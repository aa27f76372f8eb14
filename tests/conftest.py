"""Shared fixtures for hierarchy export tests."""

from __future__ import annotations

import numpy as np
import pytest

from hierarchy_export import (
    AbstractHierarchyWriter,
    HierarchyIterator,
    InMemorySceneEvaluator,
    WriterFactory,
    WriterKind,
)


# ---------------------------------------------------------------------------
# Recording writers
# ---------------------------------------------------------------------------


class RecordingWriter(AbstractHierarchyWriter):
    """Writer that records every write into a shared log."""

    def __init__(self, kind: WriterKind, path: str, log: list):
        self.kind = kind
        self.path = path
        self.log = log
        self.write_count = 0

    def write(self, context) -> None:
        self.write_count += 1
        self.log.append(
            (self.kind, context.export_path, context.original_export_path, context.weak_export)
        )


class RecordingFactory(WriterFactory):
    """Factory creating RecordingWriters.

    ``decline(kind, context)`` returning True makes the factory report the
    object as unsupported for that writer kind.
    """

    def __init__(self, decline=None):
        super().__init__()
        self.decline = decline or (lambda kind, context: False)
        self.log: list = []
        self.created: list = []
        self.released: list = []
        self.pass_times: list = []

    def _create(self, kind: WriterKind, context):
        if self.decline(kind, context):
            return None
        writer = RecordingWriter(kind, context.export_path, self.log)
        self.created.append(writer)
        return writer

    def create_transform_writer(self, context):
        return self._create(WriterKind.TRANSFORM, context)

    def create_data_writer(self, context):
        return self._create(WriterKind.DATA, context)

    def create_hair_writer(self, context):
        return self._create(WriterKind.HAIR, context)

    def create_particle_writer(self, context):
        return self._create(WriterKind.PARTICLE, context)

    def release_writer(self, writer) -> None:
        self.released.append(writer)

    def begin_pass(self, export_time: float) -> None:
        self.pass_times.append(export_time)

    def written_paths(self, kind: WriterKind | None = None) -> list:
        return [path for (k, path, _, _) in self.log if kind is None or k is kind]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def translation(x: float, y: float, z: float) -> np.ndarray:
    """4x4 column-vector translation matrix."""
    matrix = np.identity(4)
    matrix[:3, 3] = (x, y, z)
    return matrix


def export_paths(iterator: HierarchyIterator) -> list:
    return [context.export_path for context in iterator.contexts()]


def context_at(iterator: HierarchyIterator, path: str):
    for context in iterator.contexts():
        if context.export_path == path:
            return context
    raise KeyError(path)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def evaluator() -> InMemorySceneEvaluator:
    """An empty in-memory scene."""
    return InMemorySceneEvaluator()


@pytest.fixture
def factory() -> RecordingFactory:
    """A factory that supports every object."""
    return RecordingFactory()


@pytest.fixture
def make_iterator(evaluator, factory):
    """Build an iterator over the shared evaluator/factory, with overrides."""

    def _make(**kwargs) -> HierarchyIterator:
        return HierarchyIterator(
            kwargs.pop("evaluator", evaluator),
            kwargs.pop("writer_factory", factory),
            **kwargs,
        )

    return _make
