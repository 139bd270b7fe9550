import pytest
from fastapi import status


def _payload(user_id, **overrides):
    payload = {"user_id": user_id, "quarter": "Q1", "year": 2025, "rating": 4, "manager_comment": "Solid quarter"}
    payload.update(overrides)
    return payload


def test_manager_records_performance_for_report(client, org, auth_headers):
    response = client.post("/api/quarterly-performance", headers=auth_headers(org["lead"]), json=_payload(org["dev"].id))
    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["rating"] == 4
    assert data["is_critical"] is False


def test_indirect_manager_records_performance(client, org, auth_headers):
    response = client.post("/api/quarterly-performance", headers=auth_headers(org["head"]), json=_payload(org["dev"].id))
    assert response.status_code == status.HTTP_201_CREATED


def test_manager_cannot_rate_outside_subtree(client, org, auth_headers):
    response = client.post("/api/quarterly-performance", headers=auth_headers(org["lead"]), json=_payload(org["qa"].id))
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_manager_cannot_rate_self(client, org, auth_headers):
    response = client.post("/api/quarterly-performance", headers=auth_headers(org["lead"]), json=_payload(org["lead"].id))
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_employee_cannot_create(client, org, auth_headers):
    response = client.post("/api/quarterly-performance", headers=auth_headers(org["dev"]), json=_payload(org["qa"].id))
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_duplicate_quarter_conflicts(client, admin_user, org, auth_headers):
    headers = auth_headers(admin_user)
    client.post("/api/quarterly-performance", headers=headers, json=_payload(org["dev"].id))
    response = client.post("/api/quarterly-performance", headers=headers, json=_payload(org["dev"].id))
    assert response.status_code == status.HTTP_409_CONFLICT


@pytest.mark.parametrize("overrides", [{"rating": 6}, {"rating": 0}, {"quarter": "Q5"}, {"quarter": "ANNUAL"}, {"year": 2031}])
def test_invalid_payload(client, admin_user, org, auth_headers, overrides):
    response = client.post("/api/quarterly-performance", headers=auth_headers(admin_user), json=_payload(org["dev"].id, **overrides))
    assert response.status_code == 422


def test_read_access(client, admin_user, org, auth_headers):
    client.post("/api/quarterly-performance", headers=auth_headers(admin_user), json=_payload(org["dev"].id))
    client.post("/api/quarterly-performance", headers=auth_headers(admin_user), json=_payload(org["dev"].id, quarter="Q2"))

    own = client.get(f"/api/quarterly-performance/{org['dev'].id}", headers=auth_headers(org["dev"]))
    assert own.status_code == status.HTTP_200_OK
    assert [r["quarter"] for r in own.json()] == ["Q2", "Q1"]

    assert client.get(f"/api/quarterly-performance/{org['dev'].id}", headers=auth_headers(org["head"])).status_code == 200
    assert client.get(f"/api/quarterly-performance/{org['dev'].id}", headers=auth_headers(org["qa"])).status_code == 403


def test_update_and_delete(client, admin_user, org, auth_headers):
    record_id = client.post(
        "/api/quarterly-performance", headers=auth_headers(org["lead"]), json=_payload(org["dev"].id)
    ).json()["id"]

    response = client.put(
        f"/api/quarterly-performance/{record_id}",
        headers=auth_headers(org["lead"]),
        json={"rating": 2, "is_critical": True, "next_action_plan_manager": "Weekly check-ins"},
    )
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["rating"] == 2
    assert data["is_critical"] is True
    assert data["manager_comment"] == "Solid quarter"

    assert client.delete(f"/api/quarterly-performance/{record_id}", headers=auth_headers(org["lead"])).status_code == 403
    assert client.delete(f"/api/quarterly-performance/{record_id}", headers=auth_headers(admin_user)).status_code == 204
    assert client.get(f"/api/quarterly-performance/{org['dev'].id}", headers=auth_headers(admin_user)).json() == []
