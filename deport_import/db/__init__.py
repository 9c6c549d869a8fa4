from .store import InMemoryRecordStore, RecordStore, StoreError

__all__ = ["InMemoryRecordStore", "RecordStore", "StoreError"]
