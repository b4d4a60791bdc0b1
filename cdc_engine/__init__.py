"""
cdc_engine package - ordering-safe dispatch and typed row materialization for change data capture

Expose the manager and the config-driven application.
"""
from .cdc.cdc_manager import CDCManager
from .main import CDCEngineApplication

__all__ = ["CDCManager", "CDCEngineApplication"]
