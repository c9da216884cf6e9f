"""
db/store.py — Storage Gateway over SQLite
=========================================
Translates entity reads into ordered SQL and returns materialised records.

Read operations (one family per entity type):
  list_all(entity)                      → every row, canonical order
  get_by_id(entity, id)                 → single row or None
  list_filtered(entity, filter, value)  → rows matching a named predicate, canonical order
  list_with_relations(entity)           → list_all() with relation collections populated
  get_by_id_with_relations(entity, id)  → get_by_id() with relations populated

Canonical order (byte-wise, SQLite BINARY collation):
  Company   → name
  Project   → name
  Education → institution
  Skill     → category, name

Write helpers (seeding and tests only; the API is read-only):
  insert(record), link_project_skill(project_id, skill_id), transaction()

Connections:
  File databases open one short-lived connection per call.
  ":memory:" keeps a single shared connection guarded by a lock, since
  every new in-memory connection would see an empty database.

Failure mode:
  Any sqlite3.DatabaseError (locked, unreadable file, missing table) is
  re-raised as StorageUnavailable. Constraint violations on writes
  propagate unchanged as sqlite3.IntegrityError.
"""

import logging
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from threading import Lock
from typing import Any, Callable, Iterator, Optional, Union

from db.models import (
    Company, Education, Project, Skill,
    company_from_row, company_to_row,
    education_from_row, education_to_row,
    project_from_row, project_to_row,
    skill_from_row, skill_to_row,
)

log = logging.getLogger("cv.store")

MEMORY = ":memory:"

Entity = Union[Company, Project, Education, Skill]


class StorageUnavailable(Exception):
    """The relational store could not be reached or failed mid-read."""


# --- TABLE DEFINITIONS ---

@dataclass(frozen=True)
class EntityTable:
    table: str
    order_by: str
    from_row: Callable[[sqlite3.Row], Any]
    to_row: Callable[[Any], dict]
    # filter name → SQL predicate with exactly one placeholder
    filters: dict[str, str] = field(default_factory=dict)


TABLES: dict[type, EntityTable] = {
    Company: EntityTable(
        table="companies",
        order_by="name",
        from_row=company_from_row,
        to_row=company_to_row,
    ),
    Project: EntityTable(
        table="projects",
        order_by="name",
        from_row=project_from_row,
        to_row=project_to_row,
        filters={
            "company_id": "company_id = ?",
            "skill_id": "id IN (SELECT project_id FROM project_skills WHERE skill_id = ?)",
        },
    ),
    Education: EntityTable(
        table="education",
        order_by="institution",
        from_row=education_from_row,
        to_row=education_to_row,
        filters={
            "degree": "degree = ?",
            # instr() is case-sensitive, LIKE is not
            "institution": "instr(institution, ?) > 0",
        },
    ),
    Skill: EntityTable(
        table="skills",
        order_by="category, name",
        from_row=skill_from_row,
        to_row=skill_to_row,
        filters={
            "category": "category = ?",
            "proficiency_level": "proficiency_level = ?",
            "project_id": "id IN (SELECT skill_id FROM project_skills WHERE project_id = ?)",
        },
    ),
}


def table_for(entity: type) -> EntityTable:
    try:
        return TABLES[entity]
    except KeyError:
        raise ValueError(f"Unknown entity type: {entity!r}") from None


# --- DB CONNECTION ---

def get_db(path: Union[str, Path]) -> sqlite3.Connection:
    conn = sqlite3.connect(path, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys=ON")
    conn.execute("PRAGMA journal_mode=WAL")
    return conn


# --- GATEWAY ---

class CvStore:

    def __init__(self, path: Union[str, Path] = MEMORY):
        self.path = str(path)
        self.in_memory = self.path == MEMORY
        self._shared: Optional[sqlite3.Connection] = None
        self._lock = Lock()

    # ── connection handling ─────────────────────────────────────────────────

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        if self.in_memory:
            with self._lock:
                if self._shared is None:
                    self._shared = get_db(MEMORY)
                yield self._shared
            return

        Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        conn = get_db(self.path)
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def _guard(self) -> Iterator[sqlite3.Connection]:
        """Open a connection and translate driver faults into StorageUnavailable."""
        try:
            with self.connect() as conn:
                yield conn
        except sqlite3.IntegrityError:
            raise
        except sqlite3.DatabaseError as e:
            log.error(f"Storage fault on {self.path}: {e}")
            raise StorageUnavailable(str(e)) from e

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Commit on success, roll back on any exception."""
        with self._guard() as conn:
            try:
                yield conn
                conn.commit()
            except BaseException:
                conn.rollback()
                raise

    def close(self) -> None:
        if self._shared is not None:
            self._shared.close()
            self._shared = None

    def ping(self) -> bool:
        with self._guard() as conn:
            conn.execute("SELECT 1").fetchone()
        return True

    # ── reads ───────────────────────────────────────────────────────────────

    def list_all(self, entity: type) -> list:
        tbl = table_for(entity)
        with self._guard() as conn:
            rows = conn.execute(
                f"SELECT * FROM {tbl.table} ORDER BY {tbl.order_by}"
            ).fetchall()
        return [tbl.from_row(r) for r in rows]

    def get_by_id(self, entity: type, entity_id: str) -> Optional[Entity]:
        tbl = table_for(entity)
        with self._guard() as conn:
            row = conn.execute(
                f"SELECT * FROM {tbl.table} WHERE id = ?", (str(entity_id),)
            ).fetchone()
        return tbl.from_row(row) if row else None

    def list_filtered(self, entity: type, filter_name: str, value: Any) -> list:
        tbl = table_for(entity)
        if filter_name not in tbl.filters:
            raise ValueError(f"{entity.__name__} has no filter named '{filter_name}'")
        with self._guard() as conn:
            rows = conn.execute(
                f"SELECT * FROM {tbl.table} WHERE {tbl.filters[filter_name]} "
                f"ORDER BY {tbl.order_by}",
                (value,),
            ).fetchall()
        return [tbl.from_row(r) for r in rows]

    def list_with_relations(self, entity: type) -> list:
        loader = _relation_loader(entity)
        records = self.list_all(entity)
        with self._guard() as conn:
            loader(conn, records)
        return records

    def get_by_id_with_relations(self, entity: type, entity_id: str) -> Optional[Entity]:
        loader = _relation_loader(entity)
        record = self.get_by_id(entity, entity_id)
        if record is None:
            return None
        with self._guard() as conn:
            loader(conn, [record])
        return record

    def has_relations(self, entity: type) -> bool:
        return entity in RELATION_LOADERS

    def count(self, entity: type) -> int:
        tbl = table_for(entity)
        with self._guard() as conn:
            return conn.execute(f"SELECT COUNT(*) FROM {tbl.table}").fetchone()[0]

    # ── writes ──────────────────────────────────────────────────────────────

    def insert(self, record: Entity, conn: Optional[sqlite3.Connection] = None) -> str:
        """Insert one record; pass `conn` to join an open transaction()."""
        tbl = table_for(type(record))
        data = tbl.to_row(record)
        cols = ", ".join(data)
        marks = ", ".join("?" for _ in data)
        sql = f"INSERT INTO {tbl.table} ({cols}) VALUES ({marks})"
        if conn is not None:
            conn.execute(sql, list(data.values()))
        else:
            with self.transaction() as own:
                own.execute(sql, list(data.values()))
        return record.id

    def link_project_skill(self, project_id: str, skill_id: str,
                           conn: Optional[sqlite3.Connection] = None) -> None:
        sql = "INSERT OR IGNORE INTO project_skills (project_id, skill_id) VALUES (?, ?)"
        if conn is not None:
            conn.execute(sql, (project_id, skill_id))
        else:
            with self.transaction() as own:
                own.execute(sql, (project_id, skill_id))


# --- RELATION LOADERS ---
# Each loader mutates the given records in place and populates every
# relation attribute with a list (never None), ordered canonically.

def _in_clause(records: list) -> tuple[str, list[str]]:
    ids = [r.id for r in records]
    return ", ".join("?" for _ in ids), ids


def _load_company_relations(conn: sqlite3.Connection, companies: list[Company]) -> None:
    for c in companies:
        c.projects = []
    if not companies:
        return
    marks, ids = _in_clause(companies)
    rows = conn.execute(
        f"SELECT * FROM projects WHERE company_id IN ({marks}) ORDER BY name", ids
    ).fetchall()
    by_id = {c.id: c for c in companies}
    for row in rows:
        by_id[row["company_id"]].projects.append(project_from_row(row))


def _load_project_relations(conn: sqlite3.Connection, projects: list[Project]) -> None:
    for p in projects:
        p.skills = []
        p.company = None
    if not projects:
        return

    company_ids = sorted({p.company_id for p in projects if p.company_id})
    if company_ids:
        marks = ", ".join("?" for _ in company_ids)
        companies = {
            row["id"]: company_from_row(row)
            for row in conn.execute(f"SELECT * FROM companies WHERE id IN ({marks})", company_ids)
        }
        for p in projects:
            p.company = companies.get(p.company_id)

    marks, ids = _in_clause(projects)
    rows = conn.execute(
        f"""SELECT ps.project_id AS link_id, s.* FROM skills s
            JOIN project_skills ps ON ps.skill_id = s.id
            WHERE ps.project_id IN ({marks})
            ORDER BY s.category, s.name""",
        ids,
    ).fetchall()
    by_id = {p.id: p for p in projects}
    for row in rows:
        by_id[row["link_id"]].skills.append(skill_from_row(row))


def _load_skill_relations(conn: sqlite3.Connection, skills: list[Skill]) -> None:
    for s in skills:
        s.projects = []
    if not skills:
        return
    marks, ids = _in_clause(skills)
    rows = conn.execute(
        f"""SELECT ps.skill_id AS link_id, p.* FROM projects p
            JOIN project_skills ps ON ps.project_id = p.id
            WHERE ps.skill_id IN ({marks})
            ORDER BY p.name""",
        ids,
    ).fetchall()
    by_id = {s.id: s for s in skills}
    for row in rows:
        by_id[row["link_id"]].projects.append(project_from_row(row))


RELATION_LOADERS: dict[type, Callable[[sqlite3.Connection, list], None]] = {
    Company: _load_company_relations,
    Project: _load_project_relations,
    Skill: _load_skill_relations,
}


def _relation_loader(entity: type) -> Callable[[sqlite3.Connection, list], None]:
    try:
        return RELATION_LOADERS[entity]
    except KeyError:
        raise ValueError(f"{entity.__name__} has no relations to load") from None
