"""
Per-table event queues and the workers that drain them.

Every table gets its own FIFO queue and exactly one DispatchWorker. A worker
forwards DML in queue order; when a DDL event reaches the head of the queue
the table is blocked, the registry refreshes the table's converters and
notifies downstream, and only then is the table unblocked. DML enqueued
after a DDL can therefore never overtake it, while other tables keep
draining on their own workers.
"""
import asyncio
import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, List, Optional

from cdc_engine.cdc.converter_cache import SchemaConverterCache
from cdc_engine.cdc.position_store import MemoryPositionStore, PositionStore
from cdc_engine.cdc.row_materializer import RowMaterializer
from cdc_engine.errors import CDCError
from cdc_engine.types.change_event import ChangeEvent

logger = logging.getLogger(__name__)


@dataclass
class TableQueueState:
    queue: Deque[ChangeEvent] = field(default_factory=deque)
    blocked: bool = False
    failed: bool = False
    error: Optional[Exception] = None
    forwarded_events: int = 0
    forwarded_rows: int = 0
    ddl_count: int = 0
    last_position: Any = None


class TableQueueRegistry:
    """
    Owns the table identity -> queue state map.

    Args:
        converter_cache: Refreshed when a table's DDL event is handled.
        position_store: Receives the position of each fully forwarded event.
    """

    def __init__(self, converter_cache: SchemaConverterCache, position_store: Optional[PositionStore] = None):
        self.converter_cache = converter_cache
        self.position_store = position_store or MemoryPositionStore()
        self._states: Dict[str, TableQueueState] = {}
        self._lock = threading.Lock()
        self._schema_change_listeners: List[Callable] = []
        self._new_table_listeners: List[Callable[[str], None]] = []

    def enqueue(self, table_identity: str, event: ChangeEvent):
        """Append an event to its table's queue. Never blocks on dispatch."""
        created = False
        state = self._states.get(table_identity)
        if state is None:
            with self._lock:
                state = self._states.get(table_identity)
                if state is None:
                    state = TableQueueState()
                    self._states[table_identity] = state
                    created = True
        state.queue.append(event)

        if created:
            logger.debug("Created queue for %s", table_identity)
            for listener in self._new_table_listeners:
                listener(table_identity)

    def get_state(self, table_identity: str) -> Optional[TableQueueState]:
        return self._states.get(table_identity)

    def table_identities(self) -> List[str]:
        with self._lock:
            return list(self._states)

    def is_blocked(self, table_identity: str) -> bool:
        state = self._states.get(table_identity)
        return state is not None and state.blocked

    def is_idle(self) -> bool:
        """True when every table's queue is empty or its processing has stopped."""
        with self._lock:
            states = list(self._states.values())
        return all(s.failed or (not s.queue and not s.blocked) for s in states)

    def add_new_table_listener(self, listener: Callable[[str], None]):
        self._new_table_listeners.append(listener)

    def register_schema_change_listener(self, listener: Callable):
        """Register a callable (sync or async) invoked with each handled DDL event"""
        self._schema_change_listeners.append(listener)

    async def handle_ddl(self, table_identity: str):
        """
        Process the DDL event at the head of a table's queue.

        The table stays blocked until the converters are refreshed and every
        schema change listener has run. On failure it stays blocked and the
        DDL stays queued.
        """
        state = self._states[table_identity]
        event = state.queue[0]
        state.blocked = True
        logger.info("DDL on %s at position %s, blocking queue", table_identity, event.sequence_position)

        await asyncio.to_thread(self.converter_cache.refresh, table_identity)

        for listener in self._schema_change_listeners:
            if asyncio.iscoroutinefunction(listener):
                await listener(event)
            else:
                listener(event)

        state.ddl_count += 1
        await self._record_position(table_identity, state, event)
        state.queue.popleft()
        state.blocked = False
        logger.debug("Unblocked %s", table_identity)

    async def mark_forwarded(self, table_identity: str, event: ChangeEvent, row_count: int):
        """The event leaves the queue only once its position is stored."""
        state = self._states[table_identity]
        state.forwarded_events += 1
        state.forwarded_rows += row_count
        await self._record_position(table_identity, state, event)
        state.queue.popleft()

    def mark_failed(self, table_identity: str, error: Exception):
        state = self._states[table_identity]
        state.failed = True
        state.error = error

    async def _record_position(self, table_identity: str, state: TableQueueState, event: ChangeEvent):
        state.last_position = event.sequence_position
        # May be a network round trip (Redis)
        await asyncio.to_thread(self.position_store.save_position, table_identity, event.sequence_position)

    def get_status(self, table_identity: str) -> Dict[str, Any]:
        state = self._states.get(table_identity)
        if state is None:
            return {}
        return {
            'queued': len(state.queue),
            'blocked': state.blocked,
            'failed': state.failed,
            'error': str(state.error) if state.error else None,
            'forwarded_events': state.forwarded_events,
            'forwarded_rows': state.forwarded_rows,
            'ddl_count': state.ddl_count,
            'last_position': state.last_position,
        }


class DispatchWorker:
    """
    Drains one table's queue in bounded turns.

    Args:
        batch_depth: Maximum events handled per turn, so a busy table yields
            to the others regularly.
        sink: Object with accept(row), receives rows in drain order.
    """

    def __init__(
        self,
        registry: TableQueueRegistry,
        table_identity: str,
        materializer: RowMaterializer,
        sink,
        batch_depth: int = 100,
        idle_sleep: float = 0.01,
    ):
        if batch_depth < 1:
            raise ValueError("batch_depth must be at least 1")
        self.registry = registry
        self.table_identity = table_identity
        self.materializer = materializer
        self.sink = sink
        self.batch_depth = batch_depth
        self.idle_sleep = idle_sleep

    async def run_turn(self) -> int:
        """Handle up to batch_depth events; returns how many were handled."""
        state = self.registry.get_state(self.table_identity)
        if state is None:
            return 0
        handled = 0
        for _ in range(self.batch_depth):
            if state.blocked or state.failed or not state.queue:
                break
            event = state.queue[0]
            if event.is_ddl:
                await self.registry.handle_ddl(self.table_identity)
            else:
                row_count = await self._forward(event)
                await self.registry.mark_forwarded(self.table_identity, event, row_count)
            handled += 1
        return handled

    async def _forward(self, event: ChangeEvent) -> int:
        cache = self.registry.converter_cache
        column_names = event.column_names()
        entry = cache.lookup(self.table_identity, column_names)
        if entry is not None:
            converters, schema = entry.converters, entry.schema
        else:
            converters, schema = await asyncio.to_thread(cache.resolve, self.table_identity, column_names)

        rows = self.materializer.materialize(event, converters, schema)
        for row in rows:
            self.sink.accept(row)
        return len(rows)

    async def run(self, stop_event: asyncio.Event):
        """Run turns until stop_event is set or the table fails."""
        while not stop_event.is_set():
            try:
                handled = await self.run_turn()
            except CDCError as e:
                if e.table_identity is None:
                    e.table_identity = self.table_identity
                logger.error("Stopping %s: %s", self.table_identity, e)
                self.registry.mark_failed(self.table_identity, e)
                return
            except Exception as e:
                logger.exception("Stopping %s after unexpected error", self.table_identity)
                self.registry.mark_failed(self.table_identity, e)
                return
            await asyncio.sleep(0 if handled else self.idle_sleep)
