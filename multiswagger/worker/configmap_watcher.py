"""
ConfigMap Watcher

Background task that periodically reads the spec ConfigMap and installs the
APIs it lists into the registry.

Each ConfigMap data entry holds one JSON-encoded APIRecord:

    data:
      petstore: |
        {"name": "petstore", "url": "http://petstore.default.svc/v3/api-docs",
         "namespace": "default", "resourceType": "Service", "resourceName": "petstore"}

A cycle that yields no usable record (ConfigMap missing, empty, unreadable)
leaves the current registry snapshot in place; the next cycle is the retry.

Usage:
    watcher = SpecWatcher(registry, ConfigMapSource(settings), settings.watch_interval_seconds)
    await watcher.start()
    ...
    await watcher.stop()
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Protocol

from pydantic import ValidationError

from multiswagger.core.config import Settings
from multiswagger.core.metrics import record_watch_cycle
from multiswagger.registry.catalog import SpecRegistry
from multiswagger.registry.models import APIRecord
from multiswagger.worker.kube import ConfigMapClient, load_cluster_connection

logger = logging.getLogger(__name__)


class RecordSource(Protocol):
    """Anything that can produce the raw ConfigMap data."""

    description: str

    async def fetch(self) -> Mapping[str, str]:
        ...


class ConfigMapSource:
    """Reads ``CONFIGMAP_NAME`` in ``NAMESPACE`` through the Kubernetes API.

    The cluster connection is resolved on first use and re-resolved after a
    configuration failure, so a pod that starts before its credentials are
    mounted recovers on a later cycle.
    """

    def __init__(self, settings: Settings):
        self.namespace = settings.namespace
        self.name = settings.configmap_name
        self.kubeconfig = settings.kubeconfig
        self.description = f"ConfigMap '{self.name}' in namespace '{self.namespace}'"
        self._client: Optional[ConfigMapClient] = None

    async def fetch(self) -> Mapping[str, str]:
        if self._client is None:
            self._client = ConfigMapClient(load_cluster_connection(self.kubeconfig))
        return await self._client.get_data(self.namespace, self.name)

    async def close(self):
        if self._client is not None:
            await self._client.close()
            self._client = None


def parse_configmap_records(data: Mapping[str, str]) -> List[APIRecord]:
    """
    Decode every ConfigMap entry into an APIRecord.

    Entries that are not valid JSON records are logged and skipped. Display
    defaults are filled in: title falls back to the name, description to the
    owning resource.
    """
    records: List[APIRecord] = []
    for key in sorted(data):
        raw = data[key]
        logger.debug("Processing ConfigMap data key: %s", key)
        try:
            record = APIRecord.model_validate_json(raw)
        except ValidationError as e:
            logger.error("Failed to unmarshal API info for key '%s': %s. Raw data: %s", key, e, raw)
            continue

        defaults: Dict[str, Any] = {}
        if not record.title:
            defaults["title"] = record.name
        if not record.description:
            defaults["description"] = f"API from {record.namespace}/{record.resource_name}"
        if defaults:
            record = record.model_copy(update=defaults)

        logger.debug("Successfully unmarshalled API info for key '%s': Name='%s', URL='%s'", key, record.name, record.url)
        records.append(record)
    return records


class SpecWatcher:
    """
    Periodic poll -> registry.replace loop.

    Runs as an async task and can be started/stopped gracefully.
    """

    def __init__(self, registry: SpecRegistry, source: RecordSource, interval_seconds: float = 10):
        self.registry = registry
        self.source = source
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None
        self._running = False
        self._last_poll: Optional[datetime] = None
        self._last_success: Optional[datetime] = None
        self._last_error: Optional[str] = None

    @property
    def ready(self) -> bool:
        """True once one poll has installed a snapshot."""
        return self._last_success is not None

    async def poll_once(self) -> int:
        """
        Run one cycle. Returns the number of records installed, 0 when the
        registry was left untouched.
        """
        self._last_poll = datetime.utcnow()
        logger.info("Attempting to load API specs from %s", self.source.description)
        try:
            data = await self.source.fetch()
        except Exception as e:
            self._last_error = str(e)
            record_watch_cycle("error")
            logger.error("Failed to load API specs from %s: %s", self.source.description, e)
            return 0

        records = parse_configmap_records(data)
        if not records:
            self._last_error = None
            record_watch_cycle("empty")
            logger.warning("No API specs loaded or an error occurred. Server not updated.")
            return 0

        logger.info("Successfully loaded %d API spec(s). Updating server...", len(records))
        installed = self.registry.replace(records)
        self._last_success = datetime.utcnow()
        self._last_error = None
        record_watch_cycle("updated")
        return installed

    async def start(self):
        """Start the watcher."""
        if self._running:
            logger.warning("Spec watcher already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info("Spec watcher started (interval: %ss)", self.interval_seconds)

    async def stop(self):
        """Stop the watcher gracefully."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        close = getattr(self.source, "close", None)
        if close is not None:
            await close()
        logger.info("Spec watcher stopped")

    async def _run_loop(self):
        """Poll immediately, then every interval."""
        while self._running:
            try:
                await self.poll_once()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.exception("Spec watcher error: %s", e)
            await asyncio.sleep(self.interval_seconds)

    def get_status(self) -> Dict[str, Any]:
        return {
            "running": self._running,
            "interval_seconds": self.interval_seconds,
            "last_poll": self._last_poll.isoformat() if self._last_poll else None,
            "last_success": self._last_success.isoformat() if self._last_success else None,
            "last_error": self._last_error,
            "specs": len(self.registry),
        }
