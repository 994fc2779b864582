"""
ccontact_sync.storage - Local contact cache

Durable snapshot of remote contacts keyed by primary email.
"""

from ccontact_sync.storage.cache import DEFAULT_CACHE_FILE, CacheError, ContactCache

__all__ = ["DEFAULT_CACHE_FILE", "CacheError", "ContactCache"]
