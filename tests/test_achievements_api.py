import pytest
from fastapi import status


def _log(client, headers, user_id, **overrides):
    payload = {
        "user_id": user_id,
        "date": "2025-03-14",
        "achievement": "Led the incident review",
        "observation": "Clear communicator under pressure",
    }
    payload.update(overrides)
    return client.post("/api/achievements-observations", headers=headers, json=payload)


def test_manager_logs_entry_for_report(client, org, auth_headers):
    response = _log(client, auth_headers(org["head"]), org["dev"].id)
    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["created_by"] == org["head"].id
    assert data["date"] == "2025-03-14"


def test_manager_cannot_log_outside_subtree(client, org, auth_headers):
    response = _log(client, auth_headers(org["lead"]), org["qa"].id)
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_employee_cannot_log(client, org, auth_headers):
    response = _log(client, auth_headers(org["dev"]), org["qa"].id)
    assert response.status_code == status.HTTP_403_FORBIDDEN


@pytest.mark.parametrize("overrides", [{"achievement": ""}, {"date": "not-a-date"}])
def test_invalid_entry(client, org, auth_headers, overrides):
    response = _log(client, auth_headers(org["lead"]), org["dev"].id, **overrides)
    assert response.status_code == 422


def test_list_and_get_entries(client, org, auth_headers):
    _log(client, auth_headers(org["lead"]), org["dev"].id, date="2025-01-10")
    entry_id = _log(client, auth_headers(org["lead"]), org["dev"].id, date="2025-02-10").json()["id"]

    listing = client.get(f"/api/achievements-observations/{org['dev'].id}", headers=auth_headers(org["dev"]))
    assert listing.status_code == status.HTTP_200_OK
    assert [e["date"] for e in listing.json()] == ["2025-02-10", "2025-01-10"]

    single = client.get(f"/api/achievements-observations/entry/{entry_id}", headers=auth_headers(org["head"]))
    assert single.status_code == status.HTTP_200_OK
    assert single.json()["creator"]["id"] == org["lead"].id

    denied = client.get(f"/api/achievements-observations/{org['dev'].id}", headers=auth_headers(org["qa"]))
    assert denied.status_code == status.HTTP_403_FORBIDDEN


def test_only_creator_or_admin_modifies(client, admin_user, org, auth_headers):
    entry_id = _log(client, auth_headers(org["lead"]), org["dev"].id).json()["id"]

    response = client.put(
        f"/api/achievements-observations/{entry_id}",
        headers=auth_headers(org["head"]),
        json={"observation": "Overwritten"},
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN

    response = client.put(
        f"/api/achievements-observations/{entry_id}",
        headers=auth_headers(org["lead"]),
        json={"observation": "Keeps stakeholders informed"},
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["observation"] == "Keeps stakeholders informed"
    assert response.json()["achievement"] == "Led the incident review"

    assert client.delete(f"/api/achievements-observations/{entry_id}", headers=auth_headers(admin_user)).status_code == 204
    assert client.get(f"/api/achievements-observations/entry/{entry_id}", headers=auth_headers(admin_user)).status_code == 404
