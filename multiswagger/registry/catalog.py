"""
Spec Registry

Holds the APIs currently offered by the portal.

The registry is only ever replaced as a whole: ``replace`` builds a fresh
mapping and swaps it in under the lock, and readers get a read-only view of
whichever mapping was installed when they asked. A reader therefore sees
either the old or the new batch, never a mix.

Usage:
    from multiswagger.registry import SpecRegistry

    registry = SpecRegistry()
    registry.replace(records)
    record = registry.lookup("petstore")
"""
from __future__ import annotations

import logging
import threading
from types import MappingProxyType
from typing import Dict, Iterable, Mapping

from multiswagger.core.errors import SpecNotFoundError
from multiswagger.core.metrics import set_registry_size
from multiswagger.registry.models import APIRecord

logger = logging.getLogger(__name__)


class SpecRegistry:
    """Name -> APIRecord mapping with atomic full replacement."""

    def __init__(self):
        self._lock = threading.Lock()
        self._specs: Mapping[str, APIRecord] = MappingProxyType({})

    def replace(self, candidates: Iterable[APIRecord]) -> int:
        """
        Install a new snapshot built from ``candidates``.

        Candidates carrying an ``error`` are skipped. For duplicate names the
        last candidate wins. Returns the size of the installed snapshot.
        """
        new_specs: Dict[str, APIRecord] = {}
        for record in candidates:
            if record.error:
                logger.warning(
                    "Skipping API spec for %s due to existing error: %s",
                    record.name,
                    record.error,
                )
                continue
            new_specs[record.name] = record

        snapshot = MappingProxyType(new_specs)
        with self._lock:
            self._specs = snapshot

        set_registry_size(len(snapshot))
        logger.info("API specs updated. Total specs: %d", len(snapshot))
        return len(snapshot)

    def snapshot(self) -> Mapping[str, APIRecord]:
        """Return the currently installed mapping (read-only)."""
        with self._lock:
            return self._specs

    def lookup(self, name: str) -> APIRecord:
        """Get record by name or raise SpecNotFoundError."""
        record = self.snapshot().get(name)
        if record is None:
            raise SpecNotFoundError(f"API not found: {name}")
        return record

    def __len__(self) -> int:
        return len(self.snapshot())
