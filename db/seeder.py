"""
db/seeder.py — One-time CV Seeder
=================================
Populates an empty database from a YAML fixture (data/seed.yaml).

Gate:
  Seeding is skipped entirely when ANY of the four entity tables already
  holds a row, even if the others are empty.

Fixture layout:
  companies:  [{name, position, start_date, end_date?, description?}]
  skills:     [{name, category, proficiency_level, years_experience}]
  projects:   [{name, company?, start_date, end_date?, description?,
                technologies?, skills: [skill names]}]
  education:  [{institution, degree, field, start_date, end_date?, description?}]

Projects reference companies and skills by name. All rows are written in
a single transaction; an unknown reference aborts the whole seed.
"""

import logging
from datetime import date
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from db.models import (
    Company, DegreeType, Education, ProficiencyLevel, Project, Skill,
)
from db.store import CvStore

log = logging.getLogger("cv.seeder")

DEFAULT_SEED_PATH = Path(__file__).parent.parent / "data" / "seed.yaml"


class SeedError(Exception):
    """The seed fixture is malformed or references unknown rows."""


def _as_date(value: Any) -> Optional[date]:
    # PyYAML already turns unquoted YYYY-MM-DD into date objects
    if value is None or isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError as e:
        raise SeedError(f"Invalid date {value!r}, expected YYYY-MM-DD") from e


def load_fixture(path: Union[str, Path]) -> dict:
    path = Path(path)
    if not path.exists():
        raise SeedError(f"Seed file not found: {path}")
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise SeedError(f"Seed file {path} is not valid YAML: {e}") from e
    if not isinstance(data, dict):
        raise SeedError(f"Seed file {path} must contain a mapping at the top level")
    return data


# --- SEEDER CLASS ---

class Seeder:

    def __init__(self, store: CvStore, seed_path: Union[str, Path] = DEFAULT_SEED_PATH):
        self.store = store
        self.seed_path = Path(seed_path)

    def is_seeded(self) -> bool:
        return any(self.store.count(entity) > 0 for entity in (Company, Education, Skill, Project))

    def seed(self) -> dict[str, int]:
        """
        Seed the database unless it already contains data.

        Returns a mapping of table → rows inserted (empty when skipped).
        """
        try:
            if self.is_seeded():
                log.info("Database already contains data. Skipping seeding.")
                return {}

            log.info(f"Seeding database from {self.seed_path}")
            counts = self._seed_all(load_fixture(self.seed_path))
            log.info("Database seeding completed successfully.")
            return counts
        except Exception as e:
            log.error(f"An error occurred while seeding the database: {e}")
            raise

    def _seed_all(self, data: dict) -> dict[str, int]:
        companies = [self._company(item) for item in data.get("companies") or []]
        skills = [self._skill(item) for item in data.get("skills") or []]
        education = [self._education(item) for item in data.get("education") or []]

        company_ids = {c.name: c.id for c in companies}
        skill_ids = {s.name: s.id for s in skills}
        projects: list[tuple[Project, list[str]]] = [
            self._project(item, company_ids, skill_ids) for item in data.get("projects") or []
        ]

        with self.store.transaction() as conn:
            for record in (*companies, *skills, *education):
                self.store.insert(record, conn)
            for project, linked in projects:
                self.store.insert(project, conn)
                for skill_id in linked:
                    self.store.link_project_skill(project.id, skill_id, conn)

        counts = {
            "companies": len(companies),
            "skills": len(skills),
            "projects": len(projects),
            "education": len(education),
        }
        for table, n in counts.items():
            log.info(f"Seeded {n} {table}.")
        return counts

    # ── fixture → record ────────────────────────────────────────────────────

    @staticmethod
    def _company(item: dict) -> Company:
        try:
            return Company(
                name=item["name"],
                position=item["position"],
                start_date=_as_date(item["start_date"]),
                end_date=_as_date(item.get("end_date")),
                description=item.get("description"),
            )
        except KeyError as e:
            raise SeedError(f"Company entry is missing {e}") from e

    @staticmethod
    def _skill(item: dict) -> Skill:
        try:
            return Skill(
                name=item["name"],
                category=item["category"],
                proficiency_level=ProficiencyLevel(item["proficiency_level"]),
                years_experience=int(item["years_experience"]),
            )
        except KeyError as e:
            raise SeedError(f"Skill entry is missing {e}") from e
        except (TypeError, ValueError) as e:
            raise SeedError(f"Skill entry {item.get('name')!r}: {e}") from e

    @staticmethod
    def _education(item: dict) -> Education:
        try:
            return Education(
                institution=item["institution"],
                degree=DegreeType(item["degree"]),
                field=item["field"],
                start_date=_as_date(item["start_date"]),
                end_date=_as_date(item.get("end_date")),
                description=item.get("description"),
            )
        except KeyError as e:
            raise SeedError(f"Education entry is missing {e}") from e
        except ValueError as e:
            raise SeedError(f"Education entry {item.get('institution')!r}: {e}") from e

    @staticmethod
    def _project(item: dict, company_ids: dict[str, str],
                 skill_ids: dict[str, str]) -> tuple[Project, list[str]]:
        name = item.get("name")
        company_name = item.get("company")
        if company_name is not None and company_name not in company_ids:
            raise SeedError(f"Project {name!r} references unknown company {company_name!r}")

        unknown = [s for s in item.get("skills") or [] if s not in skill_ids]
        if unknown:
            raise SeedError(f"Project {name!r} references unknown skills: {', '.join(unknown)}")

        try:
            project = Project(
                name=item["name"],
                company_id=company_ids.get(company_name) if company_name else None,
                description=item.get("description"),
                technologies=item.get("technologies"),
                start_date=_as_date(item["start_date"]),
                end_date=_as_date(item.get("end_date")),
            )
        except KeyError as e:
            raise SeedError(f"Project entry is missing {e}") from e
        return project, [skill_ids[s] for s in item.get("skills") or []]
