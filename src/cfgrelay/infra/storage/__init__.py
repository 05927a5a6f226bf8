"""Storage Service client."""

from cfgrelay.infra.storage.client import StorageClient

__all__ = ["StorageClient"]
