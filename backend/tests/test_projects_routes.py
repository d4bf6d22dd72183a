from __future__ import annotations

URL = "/api/v1/projects"


def _payload(**overrides):
    data = {
        "name": "Portfolio",
        "description": "Personal site with a FastAPI backend",
        "url": "https://github.com/example/portfolio",
        "start_date": "2024-01-10",
        "technologies": "Python, FastAPI, SQLAlchemy",
    }
    data.update(overrides)
    return data


def test_create_list_get_project(client, anon_client):
    res = client.post(URL, json=_payload())
    assert res.status_code == 201
    created = res.json()
    assert created["startDate"] == "2024-01-10"
    assert created["endDate"] is None
    assert created["technologies"] == "Python, FastAPI, SQLAlchemy"

    listed = anon_client.get(URL)
    assert listed.status_code == 200
    assert [p["id"] for p in listed.json()] == [created["id"]]

    assert anon_client.get(f"{URL}/{created['id']}").json() == created


def test_description_is_required_and_bounded(client):
    assert client.post(URL, json=_payload(description="")).status_code == 422
    assert client.post(URL, json=_payload(description="x" * 501)).status_code == 422
    assert client.post(URL, json=_payload(technologies="x" * 501)).status_code == 422


def test_url_must_be_a_well_formed_http_url(client):
    assert client.post(URL, json=_payload(url="http://exa mple.com/<script>")).status_code == 422
    assert client.post(URL, json=_payload(url="mailto:me@example.com")).status_code == 422
    assert client.post(URL, json=_payload(url="https://" + "a" * 500 + ".com")).status_code == 422

    res = client.post(URL, json=_payload(url="  https://example.com/portfolio  "))
    assert res.status_code == 201
    assert res.json()["url"] == "https://example.com/portfolio"

    project_id = res.json()["id"]
    cleared = client.patch(f"{URL}/{project_id}", json={"url": ""})
    assert cleared.status_code == 200
    assert cleared.json()["url"] is None


def test_update_and_clear_optional_fields(client):
    created = client.post(URL, json=_payload(end_date="31/12/2024")).json()
    assert created["endDate"] == "2024-12-31"

    res = client.patch(f"{URL}/{created['id']}", json={"end_date": None, "technologies": None, "name": "Site"})
    assert res.status_code == 200
    body = res.json()
    assert body["name"] == "Site"
    assert body["endDate"] is None
    assert body["technologies"] is None
    assert body["description"] == created["description"]


def test_mutations_require_authentication(anon_client):
    assert anon_client.post(URL, json=_payload()).status_code == 401
    assert anon_client.patch(f"{URL}/1", json={"name": "x"}).status_code == 401
    assert anon_client.delete(f"{URL}/1").status_code == 401


def test_delete_project(client):
    created = client.post(URL, json=_payload()).json()
    assert client.delete(f"{URL}/{created['id']}").json()["message"] == "Project deleted successfully"
    res = client.get(f"{URL}/{created['id']}")
    assert res.status_code == 404
    assert res.json()["message"] == "Project not found"
