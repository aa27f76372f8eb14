#!/usr/bin/env python3
"""
Base Writer Module
Abstract interfaces between the hierarchy iterator and a target file format.

The iterator never knows which concrete writer it is talking to. A format
plugs in through three objects:
- WriterFactory: creates (and tears down) writers for contexts
- AbstractHierarchyWriter: writes one context
- ExportPolicy: decides what gets exported at all
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from ..core.context import HierarchyContext

logger = logging.getLogger(__name__)


class WriterKind(Enum):
    """The closed set of writer variants"""
    TRANSFORM = "transform"
    DATA = "data"
    HAIR = "hair"
    PARTICLE = "particle"


class AbstractHierarchyWriter(ABC):
    """Writes one context into the target format

    A writer is created once per export path and then called once per
    context per export pass. It must not keep a reference to the context
    after write() returns; contexts are owned by the export graph.
    """

    kind: WriterKind = WriterKind.TRANSFORM

    @abstractmethod
    def write(self, context: 'HierarchyContext'):
        """Write the context's current state

        Args:
            context: Resolved context (paths, matrices and instancing set)
        """
        pass


class WriterFactory(ABC):
    """Creates the writers for one target format

    Each create_* hook returns a new writer, or None when the target format
    does not support the context's object.
    """

    path_separator = "/"

    def __init__(self, progress_callback=None):
        """Initialize factory

        Args:
            progress_callback: Optional function to call for progress updates
                              Signature: callback(message: str) -> None
        """
        self.progress_callback = progress_callback

    def log(self, message):
        """Send progress/status message

        Args:
            message: Message to log
        """
        if self.progress_callback:
            self.progress_callback(message)
        logger.info(message)

    @abstractmethod
    def create_transform_writer(self, context: 'HierarchyContext') -> Optional[AbstractHierarchyWriter]:
        pass

    @abstractmethod
    def create_data_writer(self, context: 'HierarchyContext') -> Optional[AbstractHierarchyWriter]:
        pass

    @abstractmethod
    def create_hair_writer(self, context: 'HierarchyContext') -> Optional[AbstractHierarchyWriter]:
        pass

    @abstractmethod
    def create_particle_writer(self, context: 'HierarchyContext') -> Optional[AbstractHierarchyWriter]:
        pass

    @abstractmethod
    def release_writer(self, writer: AbstractHierarchyWriter):
        """Tear down a writer; called exactly once per created writer"""
        pass

    def begin_pass(self, export_time: float):
        """Called at the start of every export pass with the evaluation time"""
        pass

    def path_concatenate(self, parent_path: str, child_name: str) -> str:
        """Join a parent path and a child name into a hierarchical path

        Returns:
            str: e.g. "/grandparent/parent/child"
        """
        return f"{parent_path}{self.path_separator}{child_name}"

    def make_valid_name(self, name: str) -> str:
        """Make a name valid for use as one element of an export path

        The default only keeps the path separator out of names; formats with
        stricter naming rules override this.
        """
        return name.replace(self.path_separator, "_")


class ExportPolicy:
    """Decides what gets exported

    The default exports everything that is drawn. Subclass to implement
    filters such as "selected only" or "visible only".
    """

    def should_export_object(self, obj) -> bool:
        """Return False to export obj only as transform for its descendants"""
        return True

    def should_visit_duplication(self, link) -> bool:
        """Return False to ignore a duplication record"""
        # Hidden instances are things like custom bone shapes.
        return not getattr(link, "no_draw", False)


class PredicatePolicy(ExportPolicy):
    """ExportPolicy built from plain callables

    Args:
        should_export_object: obj -> bool, None to export everything
        should_visit_duplication: link -> bool, None for the default
    """

    def __init__(self, should_export_object=None, should_visit_duplication=None):
        self._should_export_object = should_export_object
        self._should_visit_duplication = should_visit_duplication

    def should_export_object(self, obj) -> bool:
        if self._should_export_object is None:
            return super().should_export_object(obj)
        return bool(self._should_export_object(obj))

    def should_visit_duplication(self, link) -> bool:
        if self._should_visit_duplication is None:
            return super().should_visit_duplication(link)
        return bool(self._should_visit_duplication(link))
