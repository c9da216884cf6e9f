"""
db/migrations.py — Linear Schema Migrations
===========================================
Ordered, idempotent migrations applied at process startup.

Each migration is (version, name, sql). Applied versions are recorded in
``schema_migrations``; re-running apply_migrations() is a no-op once the
database is current. Migrations never rewrite history: new schema changes
are appended as a new version.

The ephemeral ``:memory:`` backend skips bookkeeping and receives the same
DDL directly (see ensure_schema()).

Main functions:
  - apply_migrations(store): apply pending migrations, return applied names
  - ensure_schema(store):    choose migrations or direct DDL by backend

Dependent files:
  - db/store.py (connection handling, StorageUnavailable)
"""

import logging
import sqlite3
from datetime import datetime, timezone

from db.store import CvStore, StorageUnavailable

log = logging.getLogger("cv.migrations")


# --- MIGRATIONS ---

INITIAL_CREATE = """
-- ── Companies ──────────────────────────────────────────────────────────────
CREATE TABLE IF NOT EXISTS companies (
    id          TEXT PRIMARY KEY,                                   -- uuid4
    name        TEXT NOT NULL CHECK (length(name) <= 200),
    position    TEXT NOT NULL CHECK (length(position) <= 200),
    start_date  TEXT NOT NULL,                                      -- YYYY-MM-DD
    end_date    TEXT,                                               -- null = still employed
    description TEXT
);
CREATE INDEX IF NOT EXISTS idx_companies_start_date ON companies(start_date);

-- ── Education ──────────────────────────────────────────────────────────────
CREATE TABLE IF NOT EXISTS education (
    id          TEXT PRIMARY KEY,
    institution TEXT NOT NULL CHECK (length(institution) <= 200),
    degree      TEXT NOT NULL CHECK (length(degree) <= 200),       -- DegreeType value
    field       TEXT NOT NULL CHECK (length(field) <= 200),
    start_date  TEXT NOT NULL,
    end_date    TEXT,
    description TEXT
);
CREATE INDEX IF NOT EXISTS idx_education_start_date ON education(start_date);

-- ── Skills ─────────────────────────────────────────────────────────────────
CREATE TABLE IF NOT EXISTS skills (
    id                TEXT PRIMARY KEY,
    name              TEXT NOT NULL CHECK (length(name) <= 100),
    category          TEXT NOT NULL CHECK (length(category) <= 100),
    proficiency_level TEXT NOT NULL,                                -- ProficiencyLevel value
    years_experience  INTEGER NOT NULL CHECK (years_experience >= 0)
);

-- ── Projects ───────────────────────────────────────────────────────────────
CREATE TABLE IF NOT EXISTS projects (
    id           TEXT PRIMARY KEY,
    name         TEXT NOT NULL CHECK (length(name) <= 200),
    company_id   TEXT REFERENCES companies(id) ON DELETE SET NULL,
    description  TEXT,
    technologies TEXT,                                              -- free text
    start_date   TEXT NOT NULL,
    end_date     TEXT                                               -- null = ongoing
);
CREATE INDEX IF NOT EXISTS idx_projects_company_id ON projects(company_id);
CREATE INDEX IF NOT EXISTS idx_projects_start_date ON projects(start_date);

-- ── Project ↔ Skill (many-to-many) ─────────────────────────────────────────
CREATE TABLE IF NOT EXISTS project_skills (
    project_id TEXT NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
    skill_id   TEXT NOT NULL REFERENCES skills(id) ON DELETE CASCADE,
    PRIMARY KEY (project_id, skill_id)
);
CREATE INDEX IF NOT EXISTS idx_project_skills_skill_id ON project_skills(skill_id);
"""

ADD_PERFORMANCE_INDEXES = """
CREATE INDEX IF NOT EXISTS idx_companies_name            ON companies(name);
CREATE INDEX IF NOT EXISTS idx_projects_name             ON projects(name);
CREATE INDEX IF NOT EXISTS idx_education_institution     ON education(institution);
CREATE INDEX IF NOT EXISTS idx_education_degree          ON education(degree);
CREATE INDEX IF NOT EXISTS idx_skills_name               ON skills(name);
CREATE INDEX IF NOT EXISTS idx_skills_category           ON skills(category);
CREATE INDEX IF NOT EXISTS idx_skills_proficiency_level  ON skills(proficiency_level);
"""

MIGRATIONS: list[tuple[int, str, str]] = [
    (1, "initial_create", INITIAL_CREATE),
    (2, "add_performance_indexes", ADD_PERFORMANCE_INDEXES),
]

BOOKKEEPING = """
CREATE TABLE IF NOT EXISTS schema_migrations (
    version    INTEGER PRIMARY KEY,
    name       TEXT NOT NULL,
    applied_at TEXT NOT NULL
);
"""


# --- RUNNERS ---

def applied_versions(conn: sqlite3.Connection) -> set[int]:
    conn.executescript(BOOKKEEPING)
    return {row["version"] for row in conn.execute("SELECT version FROM schema_migrations")}


def apply_migrations(store: CvStore) -> list[str]:
    """
    Apply every pending migration in version order.

    Process:
    1. Ensure the schema_migrations table exists
    2. Skip versions already recorded
    3. Run each pending script and record it in the same connection

    Returns the names of the migrations applied by this call.
    """
    applied: list[str] = []
    try:
        with store.connect() as conn:
            done = applied_versions(conn)
            for version, name, sql in MIGRATIONS:
                if version in done:
                    continue
                label = f"{version:03d}_{name}"
                log.info(f"Applying migration {label}")
                conn.executescript(sql)
                conn.execute(
                    "INSERT INTO schema_migrations (version, name, applied_at) VALUES (?, ?, ?)",
                    (version, name, datetime.now(timezone.utc).isoformat()),
                )
                conn.commit()
                applied.append(label)
    except sqlite3.DatabaseError as e:
        log.error(f"Migration failed: {e}")
        raise StorageUnavailable(f"Could not migrate database at {store.path}") from e

    if applied:
        log.info(f"Applied {len(applied)} migration(s)")
    else:
        log.info("Database schema is up to date")
    return applied


def create_schema(store: CvStore) -> None:
    """Apply all DDL directly, without migration bookkeeping."""
    with store.connect() as conn:
        for _, _, sql in MIGRATIONS:
            conn.executescript(sql)
        conn.commit()


def ensure_schema(store: CvStore) -> None:
    if store.in_memory:
        log.info("In-memory database: skipping migrations")
        create_schema(store)
    else:
        apply_migrations(store)
