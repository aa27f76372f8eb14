#!/usr/bin/env python3
"""
Diagnostics Module
Accumulates recoverable problems found during an export pass.

A pass never stops for these; it completes with best-effort results and the
caller decides whether the warnings should block downstream consumption.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterator, List, Optional

logger = logging.getLogger(__name__)


class DiagnosticKind(Enum):
    """Classification of recoverable export problems"""
    SINGULAR_TRANSFORM = "singular_transform"
    UNSUPPORTED_OBJECT = "unsupported_object"
    NAME_COLLISION_EXHAUSTED = "name_collision_exhausted"
    DUPLICATION_CYCLE = "duplication_cycle"


@dataclass(frozen=True)
class Diagnostic:
    """Single recoverable problem

    Attributes:
        kind: What went wrong
        message: Human-readable description
        path: Export path (or object name, before paths exist) it concerns
    """
    kind: DiagnosticKind
    message: str
    path: str = ""

    def __str__(self):
        if self.path:
            return f"[{self.kind.value}] {self.path}: {self.message}"
        return f"[{self.kind.value}] {self.message}"


class Diagnostics:
    """Ordered collection of diagnostics for one export pass"""

    def __init__(self, progress_callback: Optional[Callable[[str], None]] = None):
        self.progress_callback = progress_callback
        self._entries: List[Diagnostic] = []

    def warn(self, kind: DiagnosticKind, message: str, path: str = "") -> Diagnostic:
        """Record a warning and forward it to the log and progress callback"""
        diagnostic = Diagnostic(kind=kind, message=message, path=path)
        self._entries.append(diagnostic)
        logger.warning("%s", diagnostic)
        if self.progress_callback:
            self.progress_callback(f"Warning: {diagnostic}")
        return diagnostic

    def of_kind(self, kind: DiagnosticKind) -> List[Diagnostic]:
        return [d for d in self._entries if d.kind is kind]

    def clear(self):
        self._entries.clear()

    @property
    def has_warnings(self) -> bool:
        return bool(self._entries)

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(self._entries)

    def __len__(self):
        return len(self._entries)

    def get_summary(self) -> str:
        """Generate human-readable summary of the collected diagnostics

        Returns:
            str: Formatted summary text
        """
        lines = [f"Diagnostics: {len(self._entries)} warning(s)"]
        for kind in DiagnosticKind:
            count = len(self.of_kind(kind))
            if count:
                lines.append(f"  - {kind.value}: {count}")
        return "\n".join(lines)
