"""
app/services/queries.py — Cached Entity Query Services
======================================================
The sole read path used by the GraphQL API. One generic QueryService,
parameterised per entity by an EntityQueryConfig.

Caching rules:
  - Only the two unparameterised list shapes are cached:
        list_all()             → "<prefix>_all"
        list_with_relations()  → "<prefix>_all_<relations_suffix>"
  - Lookups by id and filtered scans ALWAYS go to storage. Caching them
    would change how stale a parameterised answer can be.
  - A hit returns the cached list object itself, not a copy.
  - A miss loads from storage and stores the result for
    `expiration_minutes` (absolute expiry from the time of the write).
  - With caching disabled the cache is never read or written.

Failure semantics:
  No retries and no stale fallback. StorageUnavailable (and any cache
  error) propagates to the caller unchanged.

Logging (cv.queries):
  INFO on hit (with item count), INFO on miss, WARNING on id not found.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Any, Callable, Optional
from uuid import UUID

from app.services.cache import MemoryCache
from db.models import Company, Education, Project, Skill
from db.store import CvStore

log = logging.getLogger("cv.queries")


# --- PER-ENTITY CONFIGURATION ---

@dataclass(frozen=True)
class EntityQueryConfig:
    entity: type
    label: str
    cache_key_prefix: str
    relations_suffix: Optional[str] = None     # None → entity has no relation shape
    filters: tuple[str, ...] = ()


COMPANY_QUERIES = EntityQueryConfig(
    entity=Company,
    label="Company",
    cache_key_prefix="companies",
    relations_suffix="with_projects",
)

PROJECT_QUERIES = EntityQueryConfig(
    entity=Project,
    label="Project",
    cache_key_prefix="projects",
    relations_suffix="with_relations",
    filters=("company_id", "skill_id"),
)

EDUCATION_QUERIES = EntityQueryConfig(
    entity=Education,
    label="Education",
    cache_key_prefix="education",
    filters=("degree", "institution"),
)

SKILL_QUERIES = EntityQueryConfig(
    entity=Skill,
    label="Skill",
    cache_key_prefix="skills",
    relations_suffix="with_projects",
    filters=("category", "proficiency_level", "project_id"),
)


def _param(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, UUID):
        return str(value)
    return value


# --- SERVICE ---

class QueryService:

    def __init__(
        self,
        config: EntityQueryConfig,
        store: CvStore,
        cache: Optional[MemoryCache] = None,
        caching_enabled: bool = False,
        expiration_minutes: int = 5,
    ):
        if caching_enabled and cache is None:
            raise ValueError("caching_enabled requires a cache instance")
        self.config = config
        self.store = store
        self.cache = cache
        self.caching_enabled = caching_enabled
        self.expiration = timedelta(minutes=expiration_minutes)

    @property
    def all_key(self) -> str:
        return f"{self.config.cache_key_prefix}_all"

    @property
    def relations_key(self) -> str:
        return f"{self.config.cache_key_prefix}_all_{self.config.relations_suffix}"

    # ── cached shapes ───────────────────────────────────────────────────────

    def list_all(self) -> list:
        return self._read_through(self.all_key, lambda: self.store.list_all(self.config.entity))

    def list_with_relations(self) -> list:
        self._require_relations()
        return self._read_through(
            self.relations_key,
            lambda: self.store.list_with_relations(self.config.entity),
        )

    # ── uncached shapes ─────────────────────────────────────────────────────

    def get_by_id(self, entity_id: Any):
        record = self.store.get_by_id(self.config.entity, _param(entity_id))
        if record is None:
            log.warning(f"{self.config.label} with id {entity_id} not found")
        return record

    def get_by_id_with_relations(self, entity_id: Any):
        self._require_relations()
        record = self.store.get_by_id_with_relations(self.config.entity, _param(entity_id))
        if record is None:
            log.warning(f"{self.config.label} with id {entity_id} not found")
        return record

    def filter_by(self, filter_name: str, value: Any) -> list:
        if filter_name not in self.config.filters:
            raise ValueError(f"{self.config.label} queries have no filter '{filter_name}'")
        return self.store.list_filtered(self.config.entity, filter_name, _param(value))

    # ── internals ───────────────────────────────────────────────────────────

    def _require_relations(self) -> None:
        if self.config.relations_suffix is None:
            raise ValueError(f"{self.config.label} has no relations to load")

    def _read_through(self, key: str, loader: Callable[[], list]) -> list:
        if not self.caching_enabled:
            return loader()

        cached, found = self.cache.get(key)
        if found:
            log.info(f"Cache hit for {key}: returning {len(cached)} items")
            return cached

        log.info(f"Cache miss for {key}, loading from storage")
        result = loader()
        self.cache.set(key, result, self.expiration)
        return result


# --- WIRING ---

@dataclass
class QueryServices:
    companies: QueryService
    projects: QueryService
    education: QueryService
    skills: QueryService


def build_query_services(
    store: CvStore,
    cache: Optional[MemoryCache] = None,
    caching_enabled: bool = False,
    expiration_minutes: int = 5,
) -> QueryServices:
    """Build one QueryService per entity, all sharing the same store and cache."""
    def make(config: EntityQueryConfig) -> QueryService:
        return QueryService(config, store, cache, caching_enabled, expiration_minutes)

    return QueryServices(
        companies=make(COMPANY_QUERIES),
        projects=make(PROJECT_QUERIES),
        education=make(EDUCATION_QUERIES),
        skills=make(SKILL_QUERIES),
    )
