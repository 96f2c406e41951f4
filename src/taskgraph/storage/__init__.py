"""Persistence of tracker state."""

from taskgraph.storage.persistence import KeyValueStore, TrackerRepository

__all__ = ["KeyValueStore", "TrackerRepository"]
