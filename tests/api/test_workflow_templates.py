"""API tests for /api/v1/workflow-templates."""

from httpx import AsyncClient

from tests.support import step, template_payload

BASE = "/api/v1/workflow-templates"
AS_DAVE = {"X-User-ID": "dave"}


async def test_validate_valid_template(client: AsyncClient) -> None:
    response = await client.post(f"{BASE}/validate", json=template_payload())
    assert response.status_code == 200
    assert response.json() == {"valid": True, "errors": []}


async def test_validate_reports_every_error(client: AsyncClient) -> None:
    payload = template_payload(step("s1", deadline={"type": "fixed"}), step("s1"))
    response = await client.post(f"{BASE}/validate", json=payload)
    assert response.status_code == 200
    assert response.json() == {
        "valid": False,
        "errors": [
            {"field": "steps[0].deadline.value", "message": "is required"},
            {"field": "steps[1].id", "message": 'duplicate step id "s1"'},
        ],
    }


async def test_create_get_and_list(client: AsyncClient) -> None:
    response = await client.post(BASE, json=template_payload(), headers=AS_DAVE)
    assert response.status_code == 201
    created = response.json()
    assert created["current_version"] == 1
    assert created["created_by"] == "dave"
    assert created["definition"]["steps"][0]["id"] == "s1"

    fetched = await client.get(f"{BASE}/{created['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["id"] == created["id"]

    listed = await client.get(BASE, params={"department": "Finance"})
    assert [t["id"] for t in listed.json()["items"]] == [created["id"]]


async def test_create_invalid_template_returns_field_errors(client: AsyncClient) -> None:
    response = await client.post(BASE, json=template_payload(step("s1", deadline={"type": "fixed"})))
    assert response.status_code == 400
    assert response.json() == {
        "errors": [{"field": "steps[0].deadline.value", "message": "is required"}]
    }


async def test_create_with_non_object_body(client: AsyncClient) -> None:
    response = await client.post(BASE, json=["not", "a", "template"])
    assert response.status_code == 400
    assert "errors" in response.json()


async def test_update_and_versions(client: AsyncClient) -> None:
    created = (await client.post(BASE, json=template_payload())).json()
    response = await client.put(
        f"{BASE}/{created['id']}",
        json=template_payload(step("s1", deadline={"type": "fixed", "value": 24})),
        params={"changeLog": "shorter deadline"},
    )
    assert response.status_code == 200
    assert response.json()["current_version"] == 2

    versions = (await client.get(f"{BASE}/{created['id']}/versions")).json()
    assert [v["version"] for v in versions] == [2, 1]
    assert versions[0]["change_log"] == "shorter deadline"


async def test_unknown_template_is_404(client: AsyncClient) -> None:
    response = await client.get(f"{BASE}/missing")
    assert response.status_code == 404
    body = response.json()
    assert body["error"] == "RESOURCE_NOT_FOUND"
    assert body["details"] == {"resource_type": "workflow_template", "resource_id": "missing"}


async def test_delete(client: AsyncClient) -> None:
    created = (await client.post(BASE, json=template_payload())).json()
    response = await client.delete(f"{BASE}/{created['id']}")
    assert response.status_code == 204
    assert (await client.get(f"{BASE}/{created['id']}")).status_code == 404


async def test_delete_template_in_use_is_409(client: AsyncClient) -> None:
    created = (await client.post(BASE, json=template_payload())).json()
    started = await client.post(
        "/api/v1/workflow-runs",
        json={"document_id": "doc1", "template_id": created["id"]},
        headers=AS_DAVE,
    )
    assert started.status_code == 201
    response = await client.delete(f"{BASE}/{created['id']}")
    assert response.status_code == 409
    assert response.json()["error"] == "TEMPLATE_IN_USE"
