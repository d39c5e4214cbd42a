"""
Application-scoped cache for computed read models.

Entries are filed under a resource key (products, services, sales, dashboard,
reports). Writers invalidate the resources they touch; readers never see an
entry older than the configured TTL. One instance lives on
app.extensions["resource_cache"].
"""

from __future__ import annotations

import threading
import time
from typing import Any, Callable

from flask import current_app


PRODUCTS = "products"
SERVICES = "services"
SALES = "sales"
DASHBOARD = "dashboard"
REPORTS = "reports"
RESOURCES = frozenset({PRODUCTS, SERVICES, SALES, DASHBOARD, REPORTS})

# What a write to each resource makes stale.
INVALIDATES = {
    PRODUCTS: (PRODUCTS, DASHBOARD, REPORTS),
    SERVICES: (SERVICES, DASHBOARD, REPORTS),
    SALES: (SALES, PRODUCTS, DASHBOARD, REPORTS),
}


def make_key(*parts) -> str:
    return ":".join(str(p) for p in parts)


class ResourceCache:
    def __init__(self, ttl_seconds: float = 60, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, dict[str, tuple[float, Any]]] = {r: {} for r in RESOURCES}
        # Bumped on every invalidation of the resource
        self._generations: dict[str, int] = {r: 0 for r in RESOURCES}

    def _bucket(self, resource: str) -> dict:
        if resource not in RESOURCES:
            raise KeyError(f"Unknown cache resource: {resource}")
        return self._entries[resource]

    def get(self, resource: str, key: str):
        with self._lock:
            bucket = self._bucket(resource)
            hit = bucket.get(key)
            if hit is None:
                return None
            expires_at, value = hit
            if expires_at <= self._clock():
                del bucket[key]
                return None
            return value

    def generation(self, resource: str) -> int:
        with self._lock:
            self._bucket(resource)
            return self._generations[resource]

    def set(self, resource: str, key: str, value: Any, *, generation: int | None = None) -> bool:
        """
        Store `value`. With `generation`, the write is skipped (returns False)
        if the resource was invalidated since that generation was read.
        """
        if self.ttl_seconds <= 0:
            return False
        with self._lock:
            bucket = self._bucket(resource)
            if generation is not None and generation != self._generations[resource]:
                return False
            bucket[key] = (self._clock() + self.ttl_seconds, value)
            return True

    def get_or_set(self, resource: str, key: str, producer: Callable[[], Any]):
        value = self.get(resource, key)
        if value is None:
            generation = self.generation(resource)
            value = producer()
            self.set(resource, key, value, generation=generation)
        return value

    def invalidate(self, *resources: str) -> None:
        with self._lock:
            for resource in resources:
                self._bucket(resource).clear()
                self._generations[resource] += 1

    def invalidate_for_write(self, resource: str) -> None:
        """Drop everything made stale by a write to `resource`."""
        self.invalidate(*INVALIDATES.get(resource, (resource,)))

    def clear(self) -> None:
        self.invalidate(*RESOURCES)


def init_cache(app) -> ResourceCache:
    cache = ResourceCache(ttl_seconds=app.config.get("REPORT_CACHE_TTL_SECONDS", 60))
    app.extensions["resource_cache"] = cache
    return cache


def get_cache() -> ResourceCache:
    return current_app.extensions["resource_cache"]
