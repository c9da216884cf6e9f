"""
app/api/schema.py — GraphQL Schema & Router
===========================================

Purpose:
  Query root mapping each QueryService operation to a field, plus the
  FastAPI router that serves it at /graphql.

Fields (camelCase as served):
  Company:    companies, companiesPaged, company(id),
              companiesWithProjects, companyWithProjects(id)
  Project:    projects, projectsPaged, project(id), projectsWithRelations,
              projectsByCompany(companyId), projectsBySkill(skillId)
  Education:  allEducation, allEducationPaged, education(id),
              educationByDegree(degree), educationByInstitution(institution)
  Skill:      skills, skillsPaged, skill(id), skillsByCategory(category),
              skillsByProficiency(proficiencyLevel), skillsWithProjects,
              skillsByProject(projectId)

Contract:
  - Unknown id       → null, no error
  - No matches       → [], no error
  - Bad enum / UUID  → rejected by validation before any resolver runs
  - Storage fault    → HTTP 500 with a generic message; detail only in the log

Dependencies:
  - app.services.queries: QueryServices passed in through the request context
"""

import logging
from typing import Iterator, Optional
from uuid import UUID

import strawberry
from graphql import GraphQLError
from strawberry.extensions import SchemaExtension
from strawberry.fastapi import GraphQLRouter
from strawberry.types import Info

from app.api.pagination import Connection, paginate
from app.api.types import (
    CompanyType, DegreeTypeEnum, EducationType, ProficiencyLevelEnum,
    ProjectType, SkillType, queries,
)
from app.services.queries import QueryServices
from db.store import StorageUnavailable

log = logging.getLogger("cv.graphql")

GENERIC_ERROR_MESSAGE = "An unexpected error occurred. Please try again later."


# ─────────────────────────────────────────────────────────────────────────────
# QUERY ROOT
# ─────────────────────────────────────────────────────────────────────────────

@strawberry.type
class Query:

    # ── companies ────────────────────────────────────────────────────────────

    @strawberry.field(description="All companies ordered by name.")
    def companies(self, info: Info) -> list[CompanyType]:
        return [CompanyType.from_record(c) for c in queries(info).companies.list_all()]

    @strawberry.field(description="Companies ordered by name, one page at a time.")
    def companies_paged(self, info: Info, first: Optional[int] = None,
                        after: Optional[str] = None) -> Connection[CompanyType]:
        return paginate(queries(info).companies.list_all(), CompanyType.from_record, first, after)

    @strawberry.field
    def company(self, info: Info, id: UUID) -> Optional[CompanyType]:
        record = queries(info).companies.get_by_id(id)
        return CompanyType.from_record(record) if record else None

    @strawberry.field(description="All companies with their projects loaded.")
    def companies_with_projects(self, info: Info) -> list[CompanyType]:
        return [CompanyType.from_record(c) for c in queries(info).companies.list_with_relations()]

    @strawberry.field
    def company_with_projects(self, info: Info, id: UUID) -> Optional[CompanyType]:
        record = queries(info).companies.get_by_id_with_relations(id)
        return CompanyType.from_record(record) if record else None

    # ── projects ─────────────────────────────────────────────────────────────

    @strawberry.field(description="All projects ordered by name.")
    def projects(self, info: Info) -> list[ProjectType]:
        return [ProjectType.from_record(p) for p in queries(info).projects.list_all()]

    @strawberry.field
    def projects_paged(self, info: Info, first: Optional[int] = None,
                       after: Optional[str] = None) -> Connection[ProjectType]:
        return paginate(queries(info).projects.list_all(), ProjectType.from_record, first, after)

    @strawberry.field
    def project(self, info: Info, id: UUID) -> Optional[ProjectType]:
        record = queries(info).projects.get_by_id(id)
        return ProjectType.from_record(record) if record else None

    @strawberry.field(description="All projects with company and skills loaded.")
    def projects_with_relations(self, info: Info) -> list[ProjectType]:
        return [ProjectType.from_record(p) for p in queries(info).projects.list_with_relations()]

    @strawberry.field
    def projects_by_company(self, info: Info, company_id: UUID) -> list[ProjectType]:
        return [ProjectType.from_record(p)
                for p in queries(info).projects.filter_by("company_id", company_id)]

    @strawberry.field
    def projects_by_skill(self, info: Info, skill_id: UUID) -> list[ProjectType]:
        return [ProjectType.from_record(p)
                for p in queries(info).projects.filter_by("skill_id", skill_id)]

    # ── education ────────────────────────────────────────────────────────────

    @strawberry.field(description="All education entries ordered by institution.")
    def all_education(self, info: Info) -> list[EducationType]:
        return [EducationType.from_record(e) for e in queries(info).education.list_all()]

    @strawberry.field
    def all_education_paged(self, info: Info, first: Optional[int] = None,
                            after: Optional[str] = None) -> Connection[EducationType]:
        return paginate(queries(info).education.list_all(), EducationType.from_record, first, after)

    @strawberry.field
    def education(self, info: Info, id: UUID) -> Optional[EducationType]:
        record = queries(info).education.get_by_id(id)
        return EducationType.from_record(record) if record else None

    @strawberry.field
    def education_by_degree(self, info: Info, degree: DegreeTypeEnum) -> list[EducationType]:
        return [EducationType.from_record(e)
                for e in queries(info).education.filter_by("degree", degree)]

    @strawberry.field(description="Case-sensitive substring match on institution.")
    def education_by_institution(self, info: Info, institution: str) -> list[EducationType]:
        return [EducationType.from_record(e)
                for e in queries(info).education.filter_by("institution", institution)]

    # ── skills ───────────────────────────────────────────────────────────────

    @strawberry.field(description="All skills ordered by category, then name.")
    def skills(self, info: Info) -> list[SkillType]:
        return [SkillType.from_record(s) for s in queries(info).skills.list_all()]

    @strawberry.field
    def skills_paged(self, info: Info, first: Optional[int] = None,
                     after: Optional[str] = None) -> Connection[SkillType]:
        return paginate(queries(info).skills.list_all(), SkillType.from_record, first, after)

    @strawberry.field
    def skill(self, info: Info, id: UUID) -> Optional[SkillType]:
        record = queries(info).skills.get_by_id(id)
        return SkillType.from_record(record) if record else None

    @strawberry.field(description="Case-sensitive exact match on category.")
    def skills_by_category(self, info: Info, category: str) -> list[SkillType]:
        return [SkillType.from_record(s)
                for s in queries(info).skills.filter_by("category", category)]

    @strawberry.field
    def skills_by_proficiency(self, info: Info,
                              proficiency_level: ProficiencyLevelEnum) -> list[SkillType]:
        return [SkillType.from_record(s)
                for s in queries(info).skills.filter_by("proficiency_level", proficiency_level)]

    @strawberry.field(description="All skills with their projects loaded.")
    def skills_with_projects(self, info: Info) -> list[SkillType]:
        return [SkillType.from_record(s) for s in queries(info).skills.list_with_relations()]

    @strawberry.field
    def skills_by_project(self, info: Info, project_id: UUID) -> list[SkillType]:
        return [SkillType.from_record(s)
                for s in queries(info).skills.filter_by("project_id", project_id)]


# ─────────────────────────────────────────────────────────────────────────────
# STORAGE ERROR MASKING
# ─────────────────────────────────────────────────────────────────────────────

class StorageErrorExtension(SchemaExtension):
    """
    Replace storage faults with a generic message and answer HTTP 500.

    The original exception is logged with its traceback; clients only ever
    see GENERIC_ERROR_MESSAGE. Other errors (bad cursor, page size) pass
    through untouched.
    """

    def on_operation(self) -> Iterator[None]:
        yield
        result = self.execution_context.result
        if result is None or not result.errors:
            return

        masked = False
        errors = []
        for error in result.errors:
            original = error.original_error
            if isinstance(original, StorageUnavailable):
                log.error(f"Storage failure while resolving {error.path}: {original}",
                          exc_info=original)
                errors.append(GraphQLError(
                    GENERIC_ERROR_MESSAGE,
                    nodes=error.nodes,
                    source=error.source,
                    positions=error.positions,
                    path=error.path,
                ))
                masked = True
            else:
                errors.append(error)
        result.errors = errors

        if masked:
            context = self.execution_context.context
            response = context.get("response") if isinstance(context, dict) else None
            if response is not None:
                response.status_code = 500


schema = strawberry.Schema(query=Query, extensions=[StorageErrorExtension])


def build_graphql_router(services: QueryServices) -> GraphQLRouter:
    """GraphQL router bound to one set of QueryServices."""

    async def get_context() -> dict:
        return {"queries": services}

    return GraphQLRouter(schema, context_getter=get_context, graphql_ide="graphiql")
