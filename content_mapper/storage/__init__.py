"""Local persistence: key-value backends, the namespaced store and comparisons.

Use explicit imports:
    from content_mapper.storage.backends import JSONFileStorage, MemoryStorage
    from content_mapper.storage.store import LocalStore, StorageResult
    from content_mapper.storage.compare import compare_analyses
"""

__all__ = [
    "KeyValueStorage",
    "MemoryStorage",
    "JSONFileStorage",
    "LocalStore",
    "StorageResult",
    "compare_analyses",
    "compute_statistics",
]
