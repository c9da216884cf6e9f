"""
db/models.py — CV Entity Data Model
===================================

Design principles:
  1. Four record types: Company, Project, Education, Skill
  2. Records are plain dataclasses, materialised from sqlite3.Row objects
  3. Enumerations are persisted by their string name, never by ordinal
  4. Relations are optional attributes: None = not loaded, [] = loaded but empty

Relations:
  Company  1 ──< Project      (projects.company_id, SET NULL on company delete)
  Project  >──< Skill         (project_skills join table, no attributes)
"""

import sqlite3
import uuid
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional


# --- ENUMERATIONS ---

class DegreeType(Enum):
    HIGH_SCHOOL   = "HighSchool"
    ASSOCIATE     = "Associate"
    BACHELOR      = "Bachelor"
    MASTER        = "Master"
    DOCTORATE     = "Doctorate"
    CERTIFICATE   = "Certificate"
    DIPLOMA       = "Diploma"
    PROFESSIONAL  = "Professional"
    BOOTCAMP      = "Bootcamp"
    ONLINE_COURSE = "OnlineCourse"


class ProficiencyLevel(Enum):
    BEGINNER     = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED     = "Advanced"
    EXPERT       = "Expert"


# Column limits (enforced by CHECK constraints in the schema as well)
NAME_MAX_LENGTH = 200
SKILL_NAME_MAX_LENGTH = 100


# --- RECORDS ---

def new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class Company:
    name: str
    position: str
    start_date: date
    end_date: Optional[date] = None          # None = still employed
    description: Optional[str] = None
    id: str = field(default_factory=new_id)
    projects: Optional[list["Project"]] = None


@dataclass
class Project:
    name: str
    start_date: date
    company_id: Optional[str] = None
    description: Optional[str] = None
    technologies: Optional[str] = None       # free text, e.g. "C#, React, Docker"
    end_date: Optional[date] = None          # None = ongoing
    id: str = field(default_factory=new_id)
    company: Optional[Company] = None
    skills: Optional[list["Skill"]] = None


@dataclass
class Education:
    institution: str
    degree: DegreeType
    field: str
    start_date: date
    end_date: Optional[date] = None
    description: Optional[str] = None
    id: str = field(default_factory=new_id)


@dataclass
class Skill:
    name: str
    category: str
    proficiency_level: ProficiencyLevel
    years_experience: int
    id: str = field(default_factory=new_id)
    projects: Optional[list[Project]] = None


# --- HELPERS ---

def to_iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


def from_iso(value: Optional[str]) -> Optional[date]:
    # Stored as YYYY-MM-DD; tolerate full timestamps written by other tools
    return date.fromisoformat(value[:10]) if value else None


# --- ROW MAPPING ---

def company_from_row(row: sqlite3.Row) -> Company:
    return Company(
        id=row["id"],
        name=row["name"],
        position=row["position"],
        start_date=from_iso(row["start_date"]),
        end_date=from_iso(row["end_date"]),
        description=row["description"],
    )


def project_from_row(row: sqlite3.Row) -> Project:
    return Project(
        id=row["id"],
        name=row["name"],
        company_id=row["company_id"],
        description=row["description"],
        technologies=row["technologies"],
        start_date=from_iso(row["start_date"]),
        end_date=from_iso(row["end_date"]),
    )


def education_from_row(row: sqlite3.Row) -> Education:
    return Education(
        id=row["id"],
        institution=row["institution"],
        degree=DegreeType(row["degree"]),
        field=row["field"],
        start_date=from_iso(row["start_date"]),
        end_date=from_iso(row["end_date"]),
        description=row["description"],
    )


def skill_from_row(row: sqlite3.Row) -> Skill:
    return Skill(
        id=row["id"],
        name=row["name"],
        category=row["category"],
        proficiency_level=ProficiencyLevel(row["proficiency_level"]),
        years_experience=row["years_experience"],
    )


def company_to_row(c: Company) -> dict:
    return {
        "id": c.id, "name": c.name, "position": c.position,
        "start_date": to_iso(c.start_date), "end_date": to_iso(c.end_date),
        "description": c.description,
    }


def project_to_row(p: Project) -> dict:
    return {
        "id": p.id, "name": p.name, "company_id": p.company_id,
        "description": p.description, "technologies": p.technologies,
        "start_date": to_iso(p.start_date), "end_date": to_iso(p.end_date),
    }


def education_to_row(e: Education) -> dict:
    return {
        "id": e.id, "institution": e.institution, "degree": e.degree.value,
        "field": e.field, "start_date": to_iso(e.start_date),
        "end_date": to_iso(e.end_date), "description": e.description,
    }


def skill_to_row(s: Skill) -> dict:
    return {
        "id": s.id, "name": s.name, "category": s.category,
        "proficiency_level": s.proficiency_level.value,
        "years_experience": s.years_experience,
    }
