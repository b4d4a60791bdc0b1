"""
CDCManager - wires the converter cache, row materializer and queue registry
together and runs one DispatchWorker task per table.

Producers call enqueue() from any thread; a table seen for the first time
gets its worker scheduled on the manager's event loop.
"""
import asyncio
import logging
from typing import Any, Callable, Dict, Optional

from cdc_engine.cdc.converter_cache import SchemaConverterCache
from cdc_engine.cdc.metadata_provider import MetadataProvider
from cdc_engine.cdc.position_store import PositionStore
from cdc_engine.cdc.queue_registry import DispatchWorker, TableQueueRegistry
from cdc_engine.cdc.row_materializer import RowMaterializer
from cdc_engine.config import CDCEngineConfig
from cdc_engine.sinks.base import RowSink
from cdc_engine.types.change_event import ChangeEvent

logger = logging.getLogger(__name__)


class CDCManager:
    def __init__(
        self,
        metadata_provider: MetadataProvider,
        sink: RowSink,
        config: Optional[CDCEngineConfig] = None,
        position_store: Optional[PositionStore] = None,
    ):
        """
        Initialize CDC Manager.

        Args:
            metadata_provider: Source of table column names and declared types
            sink: Receives materialized rows and schema change notifications
            config: Row layout and dispatch settings
            position_store: Where forwarded log positions are recorded
        """
        self.config = config or CDCEngineConfig()
        self.config.validate()
        self.sink = sink

        self.converter_cache = SchemaConverterCache(metadata_provider)
        self.materializer = RowMaterializer(
            paved=self.config.paved_representation,
            split_update=self.config.split_update_rows,
        )
        self.registry = TableQueueRegistry(self.converter_cache, position_store)
        self.registry.register_schema_change_listener(sink.on_schema_change)
        self.registry.add_new_table_listener(self._on_new_table)

        self.workers: Dict[str, DispatchWorker] = {}
        self.worker_tasks: Dict[str, asyncio.Task] = {}
        self.running = False
        self._stop_event: Optional[asyncio.Event] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def enqueue(self, event: ChangeEvent):
        """Queue a change event; safe to call from producer threads."""
        self.registry.enqueue(event.table_identity, event)

    def register_schema_change_listener(self, listener: Callable):
        """Register a function (sync or async) called with each applied DDL event"""
        self.registry.register_schema_change_listener(listener)

    async def start(self):
        """Start one worker per known table; tables seen later get workers as they appear."""
        if self.running:
            return
        self._loop = asyncio.get_running_loop()
        self._stop_event = asyncio.Event()
        self.running = True
        for table_identity in self.registry.table_identities():
            self._spawn_worker(table_identity)
        logger.info("CDC manager started with %d tables", len(self.worker_tasks))

    def _on_new_table(self, table_identity: str):
        if self.running and self._loop is not None:
            self._loop.call_soon_threadsafe(self._spawn_worker, table_identity)

    def _spawn_worker(self, table_identity: str):
        if not self.running or table_identity in self.worker_tasks:
            return
        worker = DispatchWorker(
            self.registry,
            table_identity,
            self.materializer,
            self.sink,
            batch_depth=self.config.batch_depth,
            idle_sleep=self.config.idle_sleep,
        )
        self.workers[table_identity] = worker
        self.worker_tasks[table_identity] = asyncio.create_task(
            worker.run(self._stop_event), name=f"cdc-worker-{table_identity}"
        )

    async def wait_until_idle(self, timeout: Optional[float] = None):
        """Wait until every queue is drained (or its table has failed)."""
        async def _poll():
            while not self.registry.is_idle():
                await asyncio.sleep(self.config.idle_sleep or 0.001)
        await asyncio.wait_for(_poll(), timeout)

    async def stop(self):
        """Signal all workers to stop after their current turn and wait for them."""
        if not self.running:
            return
        self.running = False
        self._stop_event.set()
        await asyncio.gather(*self.worker_tasks.values())
        self.worker_tasks.clear()
        self.workers.clear()
        logger.info("CDC manager stopped")

    def get_cdc_status(self, table_identity: str) -> Dict[str, Any]:
        """Get the status of CDC for a specific table"""
        return self.registry.get_status(table_identity)

    def get_all_status(self) -> Dict[str, Dict[str, Any]]:
        return {identity: self.registry.get_status(identity) for identity in self.registry.table_identities()}

    def get_positions(self) -> Dict[str, Any]:
        return self.registry.position_store.get_positions()
