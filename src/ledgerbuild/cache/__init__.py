"""Persistent build cache package."""

from ledgerbuild.cache.store import BuildCache
from ledgerbuild.cache.types import CacheLoad, CacheState

__all__ = ["BuildCache", "CacheLoad", "CacheState"]
