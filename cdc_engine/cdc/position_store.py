from abc import ABC, abstractmethod
from typing import Dict, Optional, Union
import json
import threading

import redis

Position = Union[int, str]


class PositionStore(ABC):
    """Last forwarded log position per table, for resuming the log reader"""

    @abstractmethod
    def get_position(self, table_identity: str) -> Optional[Position]:
        pass

    @abstractmethod
    def save_position(self, table_identity: str, position: Position):
        pass

    @abstractmethod
    def get_positions(self) -> Dict[str, Position]:
        pass


class MemoryPositionStore(PositionStore):
    def __init__(self):
        self._store: Dict[str, Position] = {}
        self._lock = threading.Lock()

    def get_position(self, table_identity: str) -> Optional[Position]:
        return self._store.get(table_identity)

    def save_position(self, table_identity: str, position: Position):
        with self._lock:
            self._store[table_identity] = position

    def get_positions(self) -> Dict[str, Position]:
        with self._lock:
            return dict(self._store)


class RedisPositionStore(PositionStore):
    """Positions kept in a Redis hash, one field per table identity."""

    def __init__(self, client: "redis.Redis", key: str = "cdc_engine:positions"):
        self.client = client
        self.key = key

    @classmethod
    def from_config(cls, host: str = 'localhost', port: int = 6379, db: int = 0,
                    password: Optional[str] = None, key: str = "cdc_engine:positions") -> "RedisPositionStore":
        try:
            client = redis.StrictRedis(host=host, port=port, db=db, password=password, decode_responses=True)
            client.ping()
        except redis.exceptions.ConnectionError as e:
            raise ConnectionError(f"Could not connect to Redis at {host}:{port}. Please ensure Redis is running.") from e
        return cls(client, key)

    def get_position(self, table_identity: str) -> Optional[Position]:
        value = self.client.hget(self.key, table_identity)
        return json.loads(value) if value is not None else None

    def save_position(self, table_identity: str, position: Position):
        self.client.hset(self.key, table_identity, json.dumps(position))

    def get_positions(self) -> Dict[str, Position]:
        raw = self.client.hgetall(self.key)
        return {
            (k.decode('utf-8') if isinstance(k, bytes) else k): json.loads(v)
            for k, v in raw.items()
        }
