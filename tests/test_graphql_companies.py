# GraphQL company field tests
# Dependent files: app/api/schema.py, app/api/types.py

from conftest import ALPHA_CORP, GAMMA_LLC, MISSING_ID, graphql


def test_companies_ordered_by_name(client):
    resp = graphql(client, "{ companies { name position } }")
    assert resp.status_code == 200
    body = resp.json()
    assert "errors" not in body
    assert [c["name"] for c in body["data"]["companies"]] == ["Alpha Corp", "Beta Inc", "Gamma LLC"]


def test_company_by_id(client):
    resp = graphql(client, """
        query ($id: UUID!) {
          company(id: $id) { id name position startDate endDate description }
        }""", {"id": ALPHA_CORP})
    company = resp.json()["data"]["company"]
    assert company == {
        "id": ALPHA_CORP,
        "name": "Alpha Corp",
        "position": "Senior Developer",
        "startDate": "2019-01-01",
        "endDate": None,
        "description": "Backend platform work",
    }


def test_unknown_company_is_null_without_error(client):
    body = graphql(client, f'{{ company(id: "{MISSING_ID}") {{ name }} }}').json()
    assert body["data"]["company"] is None
    assert "errors" not in body


def test_malformed_id_rejected(client):
    body = graphql(client, '{ company(id: "not-a-uuid") { name } }').json()
    assert body.get("data") is None
    assert body["errors"]


def test_companies_with_projects(client):
    body = graphql(client, "{ companiesWithProjects { name projects { name } } }").json()
    companies = {c["name"]: [p["name"] for p in c["projects"]]
                 for c in body["data"]["companiesWithProjects"]}
    assert companies == {
        "Alpha Corp": ["Project Alpha", "Project Gamma"],
        "Beta Inc": ["Project Beta"],
        "Gamma LLC": [],
    }


def test_company_with_projects_by_id(client):
    body = graphql(client, """
        query ($id: UUID!) { companyWithProjects(id: $id) { name projects { name } } }
        """, {"id": GAMMA_LLC}).json()
    assert body["data"]["companyWithProjects"] == {"name": "Gamma LLC", "projects": []}

    body = graphql(client, """
        query ($id: UUID!) { companyWithProjects(id: $id) { name } }
        """, {"id": MISSING_ID}).json()
    assert body["data"]["companyWithProjects"] is None


def test_projects_resolved_on_plain_list(client):
    body = graphql(client, "{ companies { name projects { name skills { name } } } }").json()
    alpha = body["data"]["companies"][0]
    assert alpha["name"] == "Alpha Corp"
    assert [p["name"] for p in alpha["projects"]] == ["Project Alpha", "Project Gamma"]
    assert [s["name"] for s in alpha["projects"][1]["skills"]] == ["C#", "Docker", "PostgreSQL"]


def test_cached_list_matches_uncached(client, cached_client):
    query = "{ companies { id name } }"
    plain = graphql(client, query).json()
    first = graphql(cached_client, query).json()
    second = graphql(cached_client, query).json()
    assert plain == first == second
