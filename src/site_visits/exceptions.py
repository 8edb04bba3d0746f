"""Unified exception hierarchy for site-visits."""


class SiteVisitsError(Exception):
    """Base exception for all site-visits errors."""


# Storage
class StorageError(SiteVisitsError):
    """A key-value storage backend failed to read or write."""


class StorageQuotaError(StorageError):
    """A write would exceed the storage backend's quota."""


# Remote store
class RemoteStoreError(SiteVisitsError):
    """Base exception for remote store operations."""


class RemoteFetchError(RemoteStoreError):
    """Failed to fetch the remote snapshot."""


class RemotePushError(RemoteStoreError):
    """Failed to push a snapshot to the remote store."""


# Configuration
class ConfigError(SiteVisitsError):
    """Settings could not be parsed."""
