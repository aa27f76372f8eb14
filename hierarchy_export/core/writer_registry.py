#!/usr/bin/env python3
"""
Writer Registry Module
Caches one writer per exported entity, keyed by export (or data) path.

Writers outlive a single export pass: when the same scene is iterated once
per frame, the writer created for a path in the first frame is reused for all
later frames. Writers are only destroyed by an explicit release_writers().
"""

import logging
from types import MappingProxyType
from typing import Callable, Dict, Mapping, Optional

from .context import HierarchyContext

logger = logging.getLogger(__name__)


class WriterRegistry:
    """Owns the writers of one iterator

    Args:
        release_writer: Teardown hook, called exactly once per writer
    """

    def __init__(self, release_writer: Callable[[object], None]):
        self._release_writer = release_writer
        self._writers: Dict[str, object] = {}

    def get_writer(self, name: str) -> Optional[object]:
        """Return the cached writer for name, or None"""
        return self._writers.get(name)

    def ensure_writer(self, context: HierarchyContext,
                      create_func: Callable[[HierarchyContext], Optional[object]],
                      key: Optional[str] = None) -> Optional[object]:
        """Return the cached writer for the context, creating it if needed

        A factory returning None means the target format does not support the
        object. Nothing is cached in that case, so the next context with the
        same key asks the factory again; its answer may depend on context
        fields that are not part of the key.

        Args:
            context: Context the writer is for
            create_func: Factory hook creating the writer
            key: Cache key, defaults to context.export_path

        Returns:
            The writer, or None if the factory declined
        """
        if key is None:
            key = context.export_path

        writer = self.get_writer(key)
        if writer is not None:
            return writer

        writer = create_func(context)
        if writer is None:
            return None

        self._writers[key] = writer
        logger.debug("Created %s for %s", type(writer).__name__, key)
        return writer

    def release_writers(self):
        """Tear down every writer once and empty the cache

        Calling this again without new writers being created does nothing.
        """
        writers = list(self._writers.values())
        self._writers.clear()
        for writer in writers:
            self._release_writer(writer)
        if writers:
            logger.debug("Released %d writer(s)", len(writers))

    @property
    def writers(self) -> Mapping[str, object]:
        """Read-only view of the cache, keyed by path"""
        return MappingProxyType(self._writers)

    def __len__(self):
        return len(self._writers)

    def __contains__(self, name):
        return name in self._writers
