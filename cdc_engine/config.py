"""
config.py - Configuration for the CDC engine
"""
import os
from typing import Dict, Any, Optional
from dataclasses import dataclass, field


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass
class CDCEngineConfig:
    """Configuration for the CDC engine"""

    # Row layout
    paved_representation: bool = True   # before_<col>/after_<col> fields vs. nested maps
    split_update_rows: bool = False     # UPDATE -> UPDATE_BEFORE + UPDATE_AFTER rows

    # Dispatch
    batch_depth: int = 100              # events per worker turn
    idle_sleep: float = 0.01            # seconds an idle worker waits before polling again

    # Metadata backend
    backend_uri: str = ":memory:"
    backend_type: str = "duckdb"

    # Position tracking
    position_store_type: str = "memory"  # memory or redis
    redis_config: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_env(cls) -> 'CDCEngineConfig':
        """Load configuration from environment variables"""
        config = cls()

        config.paved_representation = _env_bool('CDC_PAVED_REPRESENTATION', config.paved_representation)
        config.split_update_rows = _env_bool('CDC_SPLIT_UPDATE_ROWS', config.split_update_rows)
        config.batch_depth = int(os.getenv('CDC_BATCH_DEPTH', str(config.batch_depth)))
        config.idle_sleep = float(os.getenv('CDC_IDLE_SLEEP', str(config.idle_sleep)))

        config.backend_uri = os.getenv('CDC_BACKEND_URI', config.backend_uri)
        config.backend_type = os.getenv('CDC_BACKEND_TYPE', config.backend_type)

        config.position_store_type = os.getenv('CDC_POSITION_STORE', config.position_store_type)
        if config.position_store_type == 'redis':
            config.redis_config = {
                'host': os.getenv('REDIS_HOST', 'localhost'),
                'port': int(os.getenv('REDIS_PORT', '6379')),
                'db': int(os.getenv('REDIS_DB', '0')),
                'password': os.getenv('REDIS_PASSWORD', None)
            }

        return config

    def validate(self) -> None:
        """Validate configuration settings"""
        errors = []

        if self.batch_depth < 1:
            errors.append("batch_depth must be at least 1")

        if self.idle_sleep < 0:
            errors.append("idle_sleep must not be negative")

        if self.backend_type != "duckdb":
            errors.append(f"unsupported backend_type: {self.backend_type}")

        if self.position_store_type not in ("memory", "redis"):
            errors.append(f"unsupported position_store_type: {self.position_store_type}")

        if errors:
            raise ValueError(f"Configuration validation errors: {'; '.join(errors)}")


class ConfigManager:
    """Manager for configuration loading and validation"""

    def __init__(self):
        self.config: Optional[CDCEngineConfig] = None

    def load_config(self, config_source: Optional[str] = None) -> CDCEngineConfig:
        """Load configuration from various sources"""
        if config_source == 'env':
            self.config = CDCEngineConfig.from_env()
        else:
            self.config = CDCEngineConfig()

        self.config.validate()
        return self.config

    def get_config(self) -> CDCEngineConfig:
        """Get the loaded configuration"""
        if self.config is None:
            self.config = self.load_config()
        return self.config


# Global configuration manager
config_manager = ConfigManager()


def get_config() -> CDCEngineConfig:
    """Get the global configuration"""
    return config_manager.get_config()
