"""Storage layer - adapter contract and implementations."""

from dmvc.storage.adapter import Page, StorageAdapter
from dmvc.storage.dynamodb import DynamoDBAdapter, IndexSpec
from dmvc.storage.memory import MemoryAdapter

__all__ = ["DynamoDBAdapter", "IndexSpec", "MemoryAdapter", "Page", "StorageAdapter"]
