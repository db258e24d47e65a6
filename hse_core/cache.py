# hse_core/cache.py
"""
Dashboard summary caching.

Keys are structured (kind + normalized filter hash + per-kind generation)
instead of hand-concatenated strings. Bumping a kind's generation retires
every cached entry for that kind at once; entries also expire after
HSE_SUMMARY_CACHE_TTL seconds.
"""
from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional

from django.conf import settings
from django.core.cache import cache

logger = logging.getLogger(__name__)

KEY_PREFIX = "hse:summary"

# Request flags that ask for audit data; such requests never touch the cache
AUDIT_PARAMS = ("include_audit_trail", "include_history")

# Parameters that never change a summary
_IGNORED_PARAMS = {"page", "sort_by", "sort_direction"}


def _truthy(value) -> bool:
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def cache_bypassed(params: Optional[Mapping[str, Any]]) -> bool:
    """
    The one cache policy: anything audit-sensitive is computed fresh.
    """
    if not params:
        return False
    return any(_truthy(params.get(p, "")) for p in AUDIT_PARAMS)


def _generation_key(kind: str) -> str:
    return f"{KEY_PREFIX}:{kind}:generation"


def current_generation(kind: str) -> int:
    return int(cache.get_or_set(_generation_key(kind), 1, None))


def invalidate_summary(kind: str) -> None:
    key = _generation_key(kind)
    try:
        cache.incr(key)
    except ValueError:
        cache.set(key, 2, None)
    logger.debug("Summary cache for %s invalidated", kind)


@dataclass(frozen=True)
class SummaryCacheKey:
    kind: str
    filters: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def build(cls, kind: str, params: Optional[Mapping[str, Any]] = None) -> "SummaryCacheKey":
        filters: Dict[str, Any] = {}
        for name in sorted(params or {}):
            if name in _IGNORED_PARAMS or name in AUDIT_PARAMS:
                continue
            value = params.get(name)
            if value in (None, ""):
                continue
            filters[name] = str(value).strip()
        return cls(kind=kind, filters=filters)

    def digest(self) -> str:
        payload = json.dumps({"kind": self.kind, "filters": self.filters}, sort_keys=True)
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()

    def render(self, generation: int) -> str:
        return f"{KEY_PREFIX}:{self.kind}:v{generation}:{self.digest()}"


def cached_summary(
    kind: str,
    compute: Callable[[], Dict[str, Any]],
    params: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    if cache_bypassed(params):
        return compute()

    key = SummaryCacheKey.build(kind, params).render(current_generation(kind))
    value = cache.get(key)
    if value is None:
        value = compute()
        cache.set(key, value, getattr(settings, "HSE_SUMMARY_CACHE_TTL", 300))
    return value
