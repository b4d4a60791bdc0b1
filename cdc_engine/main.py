"""
main.py - Assembles a CDC engine from configuration
"""
import logging
from typing import Optional

from cdc_engine.backends.duckdb_backend import create_backend_from_uri
from cdc_engine.cdc.cdc_manager import CDCManager
from cdc_engine.cdc.metadata_provider import MetadataProvider
from cdc_engine.cdc.position_store import MemoryPositionStore, PositionStore, RedisPositionStore
from cdc_engine.config import CDCEngineConfig, get_config
from cdc_engine.sinks.base import MemoryRowSink, RowSink


class CDCEngineApplication:
    """
    Builds the metadata backend, position store and manager described by a config.

    Args:
        config: Engine configuration; the global config when omitted
        sink: Row consumer; rows are collected in memory when omitted
        metadata_provider: Overrides the backend named by config.backend_uri
    """

    def __init__(
        self,
        config: Optional[CDCEngineConfig] = None,
        sink: Optional[RowSink] = None,
        metadata_provider: Optional[MetadataProvider] = None,
    ):
        self.config = config or get_config()
        self.config.validate()
        self.logger = logging.getLogger(__name__)

        self.backend = None
        if metadata_provider is None:
            self.backend = create_backend_from_uri(self.config.backend_uri)
            metadata_provider = self.backend

        self.sink = sink if sink is not None else MemoryRowSink()
        self.position_store = self._create_position_store()
        self.manager = CDCManager(metadata_provider, self.sink, self.config, self.position_store)
        self.logger.info(
            "CDC engine initialized (paved=%s, split_update=%s, batch_depth=%d)",
            self.config.paved_representation, self.config.split_update_rows, self.config.batch_depth,
        )

    def _create_position_store(self) -> PositionStore:
        if self.config.position_store_type == "redis":
            return RedisPositionStore.from_config(**self.config.redis_config)
        return MemoryPositionStore()

    async def start(self):
        await self.manager.start()

    async def stop(self):
        await self.manager.stop()

    def close(self):
        if self.backend is not None:
            self.backend.close()
            self.backend = None
