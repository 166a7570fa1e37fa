"""Shared utilities package for Claude Pulse"""

from .storage import CredentialRecord, CredentialStore, CredentialStoreError, OAUTH_SECTION
from .memo import CacheEntry, TimedMemo

__all__ = [
    "CredentialRecord",
    "CredentialStore",
    "CredentialStoreError",
    "OAUTH_SECTION",
    "CacheEntry",
    "TimedMemo",
]
