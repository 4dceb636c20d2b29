"""
Infrastructure Storage Package
==============================
File-backed persistence for snapshots and configuration.
"""

from .json_store import StoreError, load_json, save_json

__all__ = ["StoreError", "load_json", "save_json"]
