from __future__ import annotations

from typing import Annotated

from fastapi import Depends

from app.repos.progress_store import InMemoryProgressStore, ProgressStore
from app.services.cache import CacheService, cache_service

# Stand-in for the hosted data store; tests reset it between cases.
progress_store = InMemoryProgressStore()


def get_progress_store() -> ProgressStore:
    return progress_store


def get_cache() -> CacheService:
    return cache_service


StoreDep = Annotated[ProgressStore, Depends(get_progress_store)]
CacheDep = Annotated[CacheService, Depends(get_cache)]
