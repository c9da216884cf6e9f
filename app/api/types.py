"""
app/api/types.py — GraphQL Object Types
=======================================
One strawberry type per record in db.models, built with from_record().

Relation fields (Company.projects, Project.company, Project.skills,
Skill.projects) return the collection preloaded by a with-relations query
when there is one. Otherwise they are resolved on demand through the
QueryService filtered lookups, which never touch the cache.

Enums are served by member name: BACHELOR, ONLINE_COURSE, EXPERT, ...
"""

from datetime import date
from typing import Optional
from uuid import UUID

import strawberry
from strawberry.types import Info

from app.services.queries import QueryServices
from db.models import (
    Company, DegreeType, Education, ProficiencyLevel, Project, Skill,
)

DegreeTypeEnum = strawberry.enum(DegreeType, name="DegreeType")
ProficiencyLevelEnum = strawberry.enum(ProficiencyLevel, name="ProficiencyLevel")


def queries(info: Info) -> QueryServices:
    return info.context["queries"]


@strawberry.type(name="Company")
class CompanyType:
    id: UUID
    name: str
    position: str
    start_date: date
    end_date: Optional[date]
    description: Optional[str]
    record: strawberry.Private[Company]

    @strawberry.field
    def projects(self, info: Info) -> list["ProjectType"]:
        records = self.record.projects
        if records is None:
            records = queries(info).projects.filter_by("company_id", self.record.id)
        return [ProjectType.from_record(p) for p in records]

    @classmethod
    def from_record(cls, c: Company) -> "CompanyType":
        return cls(
            id=UUID(c.id),
            name=c.name,
            position=c.position,
            start_date=c.start_date,
            end_date=c.end_date,
            description=c.description,
            record=c,
        )


@strawberry.type(name="Project")
class ProjectType:
    id: UUID
    name: str
    company_id: Optional[UUID]
    description: Optional[str]
    technologies: Optional[str]
    start_date: date
    end_date: Optional[date]
    record: strawberry.Private[Project]

    @strawberry.field
    def company(self, info: Info) -> Optional[CompanyType]:
        # company and skills are always loaded together
        if self.record.skills is not None:
            company = self.record.company
        elif self.record.company_id is None:
            company = None
        else:
            company = queries(info).companies.get_by_id(self.record.company_id)
        return CompanyType.from_record(company) if company else None

    @strawberry.field
    def skills(self, info: Info) -> list["SkillType"]:
        records = self.record.skills
        if records is None:
            records = queries(info).skills.filter_by("project_id", self.record.id)
        return [SkillType.from_record(s) for s in records]

    @classmethod
    def from_record(cls, p: Project) -> "ProjectType":
        return cls(
            id=UUID(p.id),
            name=p.name,
            company_id=UUID(p.company_id) if p.company_id else None,
            description=p.description,
            technologies=p.technologies,
            start_date=p.start_date,
            end_date=p.end_date,
            record=p,
        )


@strawberry.type(name="Education")
class EducationType:
    id: UUID
    institution: str
    degree: DegreeTypeEnum
    field: str
    start_date: date
    end_date: Optional[date]
    description: Optional[str]

    @classmethod
    def from_record(cls, e: Education) -> "EducationType":
        return cls(
            id=UUID(e.id),
            institution=e.institution,
            degree=e.degree,
            field=e.field,
            start_date=e.start_date,
            end_date=e.end_date,
            description=e.description,
        )


@strawberry.type(name="Skill")
class SkillType:
    id: UUID
    name: str
    category: str
    proficiency_level: ProficiencyLevelEnum
    years_experience: int
    record: strawberry.Private[Skill]

    @strawberry.field
    def projects(self, info: Info) -> list[ProjectType]:
        records = self.record.projects
        if records is None:
            records = queries(info).projects.filter_by("skill_id", self.record.id)
        return [ProjectType.from_record(p) for p in records]

    @classmethod
    def from_record(cls, s: Skill) -> "SkillType":
        return cls(
            id=UUID(s.id),
            name=s.name,
            category=s.category,
            proficiency_level=s.proficiency_level,
            years_experience=s.years_experience,
            record=s,
        )
