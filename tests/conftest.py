# Shared fixtures
# In-memory store populated with a small CV, a controllable clock, and an
# app factory wired to both.
# Dependent files: db/store.py, db/migrations.py, app/main.py

from datetime import date

import pytest
from starlette.testclient import TestClient

from app.main import create_app
from app.services.cache import MemoryCache
from config_loader import AppSettings
from db.migrations import create_schema
from db.models import (
    Company, DegreeType, Education, ProficiencyLevel, Project, Skill,
)
from db.store import CvStore


# --- Fixed ids ---

ALPHA_CORP = "11111111-1111-1111-1111-111111111111"
BETA_INC = "22222222-2222-2222-2222-222222222222"
GAMMA_LLC = "33333333-3333-3333-3333-333333333333"

PROJECT_ALPHA = "a0000000-0000-0000-0000-000000000001"
PROJECT_BETA = "a0000000-0000-0000-0000-000000000002"
PROJECT_GAMMA = "a0000000-0000-0000-0000-000000000003"
PROJECT_DELTA = "a0000000-0000-0000-0000-000000000004"

CSHARP = "b0000000-0000-0000-0000-000000000001"
REACT = "b0000000-0000-0000-0000-000000000002"
POSTGRES = "b0000000-0000-0000-0000-000000000003"
DOCKER = "b0000000-0000-0000-0000-000000000004"
GOLANG = "b0000000-0000-0000-0000-000000000005"

MIT = "c0000000-0000-0000-0000-000000000001"
STANFORD = "c0000000-0000-0000-0000-000000000002"
TECH_ACADEMY = "c0000000-0000-0000-0000-000000000003"
FUTURETECH = "c0000000-0000-0000-0000-000000000004"

MISSING_ID = "99999999-9999-9999-9999-999999999999"


def populate(store: CvStore) -> None:
    """Insert the standard fixture set into an empty, migrated store."""
    companies = [
        Company(id=BETA_INC, name="Beta Inc", position="Developer",
                start_date=date(2016, 1, 1), end_date=date(2018, 12, 31)),
        Company(id=ALPHA_CORP, name="Alpha Corp", position="Senior Developer",
                start_date=date(2019, 1, 1), description="Backend platform work"),
        Company(id=GAMMA_LLC, name="Gamma LLC", position="Consultant",
                start_date=date(2014, 5, 1), end_date=date(2015, 12, 31)),
    ]
    skills = [
        Skill(id=REACT, name="React", category="Frontend",
              proficiency_level=ProficiencyLevel.ADVANCED, years_experience=5),
        Skill(id=CSHARP, name="C#", category="Backend",
              proficiency_level=ProficiencyLevel.EXPERT, years_experience=8),
        Skill(id=POSTGRES, name="PostgreSQL", category="Database",
              proficiency_level=ProficiencyLevel.ADVANCED, years_experience=6),
        Skill(id=DOCKER, name="Docker", category="Backend",
              proficiency_level=ProficiencyLevel.INTERMEDIATE, years_experience=3),
        Skill(id=GOLANG, name="Go", category="backend",
              proficiency_level=ProficiencyLevel.BEGINNER, years_experience=1),
    ]
    projects = [
        Project(id=PROJECT_GAMMA, name="Project Gamma", company_id=ALPHA_CORP,
                technologies="C#, PostgreSQL, Docker", start_date=date(2021, 3, 1)),
        Project(id=PROJECT_ALPHA, name="Project Alpha", company_id=ALPHA_CORP,
                description="Order pipeline", technologies="C#, PostgreSQL",
                start_date=date(2019, 2, 1), end_date=date(2020, 6, 30)),
        Project(id=PROJECT_BETA, name="Project Beta", company_id=BETA_INC,
                technologies="React", start_date=date(2017, 4, 1), end_date=date(2018, 1, 31)),
        Project(id=PROJECT_DELTA, name="Project Delta", start_date=date(2022, 1, 1)),
    ]
    education = [
        Education(id=TECH_ACADEMY, institution="Tech Academy", degree=DegreeType.CERTIFICATE,
                  field="Cloud Architecture", start_date=date(2020, 1, 1),
                  end_date=date(2020, 6, 30)),
        Education(id=MIT, institution="MIT", degree=DegreeType.BACHELOR,
                  field="Computer Science", start_date=date(2010, 9, 1),
                  end_date=date(2014, 6, 30)),
        Education(id=STANFORD, institution="Stanford University", degree=DegreeType.MASTER,
                  field="Software Engineering", start_date=date(2014, 9, 1),
                  end_date=date(2016, 6, 30)),
        Education(id=FUTURETECH, institution="FutureTech Bootcamp", degree=DegreeType.BOOTCAMP,
                  field="Web Development", start_date=date(2013, 7, 1)),
    ]
    links = [
        (PROJECT_ALPHA, CSHARP), (PROJECT_ALPHA, POSTGRES),
        (PROJECT_BETA, REACT),
        (PROJECT_GAMMA, POSTGRES), (PROJECT_GAMMA, DOCKER), (PROJECT_GAMMA, CSHARP),
    ]

    with store.transaction() as conn:
        for record in (*companies, *skills, *projects, *education):
            store.insert(record, conn)
        for project_id, skill_id in links:
            store.link_project_skill(project_id, skill_id, conn)


class FakeClock:
    """Monotonic clock stand-in for MemoryCache; advance() moves time forward."""

    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, minutes: float = 0, seconds: float = 0) -> None:
        self.now += minutes * 60 + seconds


def make_settings(**sections) -> AppSettings:
    """Test settings: in-memory db, no caching, no rate limit, no log file, no seeding."""
    data = {
        "database": {"path": ":memory:"},
        "cache": {"enable_caching": False, "expiration_minutes": 5},
        "rate_limit": {"enable_rate_limiting": False},
        "logging": {"level": "INFO", "file": None},
        "seed": {"enabled": False},
    }
    for name, values in sections.items():
        data[name] = {**data.get(name, {}), **values}
    return AppSettings.model_validate(data)


def graphql(client: TestClient, query: str, variables: dict = None):
    body = {"query": query}
    if variables is not None:
        body["variables"] = variables
    return client.post("/graphql", json=body)


# --- Fixtures ---

@pytest.fixture
def empty_store():
    store = CvStore()
    create_schema(store)
    yield store
    store.close()


@pytest.fixture
def store(empty_store):
    populate(empty_store)
    return empty_store


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return MemoryCache(clock=clock)


@pytest.fixture
def make_client(store, cache):
    """Build a started TestClient; keyword arguments override settings sections."""
    clients = []

    def factory(**sections) -> TestClient:
        app = create_app(make_settings(**sections), store=store, cache=cache)
        client = TestClient(app, raise_server_exceptions=False)
        client.__enter__()
        clients.append(client)
        return client

    yield factory
    for client in reversed(clients):
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client):
    return make_client()


@pytest.fixture
def cached_client(make_client):
    return make_client(cache={"enable_caching": True, "expiration_minutes": 5})
