import pytest
from datetime import date
from fastapi import status
from performance360.models.monthly_attendance import MonthlyAttendance


def _payload(user_id, month=1, year=2025, **overrides):
    payload = {
        "user_id": user_id,
        "month": month,
        "year": year,
        "working_days": 20,
        "present_in_office": 10,
        "leaves_availed": 0,
        "leave_notifications_in_teams_channel": 0,
    }
    payload.update(overrides)
    return payload


def _create(client, headers, user_id, **kwargs):
    return client.post("/api/monthly-attendance", headers=headers, json=_payload(user_id, **kwargs))


def test_admin_creates_record(client, admin_user, org, auth_headers):
    response = _create(client, auth_headers(admin_user), org["dev"].id)
    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["attendance_percentage"] == 50
    assert data["weekly_compliance"] is None
    assert data["user"]["email"] == "dev@example.com"


def test_duplicate_period_conflicts(client, admin_user, org, auth_headers):
    headers = auth_headers(admin_user)
    assert _create(client, headers, org["dev"].id).status_code == status.HTTP_201_CREATED
    response = _create(client, headers, org["dev"].id)
    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["errors"][0]["code"] == "CONFLICT"


@pytest.mark.parametrize("overrides, message", [
    ({"month": 13}, "month"),
    ({"year": 2019}, "year"),
    ({"working_days": 32}, "working_days"),
    ({"leaves_availed": 21}, "leaves_availed"),
    ({"present_in_office": 19, "leaves_availed": 2}, "present_in_office"),
    ({"leave_notifications_in_teams_channel": -1}, "leave_notifications"),
])
def test_invalid_values_rejected(client, admin_user, org, auth_headers, overrides, message):
    response = _create(client, auth_headers(admin_user), org["dev"].id, **overrides)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert message in response.json()["errors"][0]["msg"]


def test_zero_working_days_stores_null_percentage(client, admin_user, org, auth_headers):
    response = _create(client, auth_headers(admin_user), org["dev"].id, working_days=0, present_in_office=0)
    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["attendance_percentage"] is None


def test_unknown_user_is_not_found(client, admin_user, auth_headers):
    response = _create(client, auth_headers(admin_user), 424242)
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_only_admin_creates(client, org, auth_headers):
    response = _create(client, auth_headers(org["head"]), org["dev"].id)
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_update_recomputes_percentage(client, admin_user, org, auth_headers):
    headers = auth_headers(admin_user)
    record_id = _create(client, headers, org["dev"].id, weekly_compliance=True).json()["id"]

    response = client.put(f"/api/monthly-attendance/{record_id}", headers=headers, json={"present_in_office": 5})
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["attendance_percentage"] == 25
    assert data["weekly_compliance"] is True


def test_update_can_clear_tri_state_flag(client, admin_user, org, auth_headers):
    headers = auth_headers(admin_user)
    record_id = _create(client, headers, org["dev"].id, exception_approved=True).json()["id"]

    response = client.put(f"/api/monthly-attendance/{record_id}", headers=headers, json={"exception_approved": None})
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["exception_approved"] is None


def test_update_validates_against_stored_values(client, admin_user, org, auth_headers):
    headers = auth_headers(admin_user)
    record_id = _create(client, headers, org["dev"].id).json()["id"]
    response = client.put(f"/api/monthly-attendance/{record_id}", headers=headers, json={"working_days": 5})
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_delete_record(client, admin_user, org, auth_headers, db_session):
    headers = auth_headers(admin_user)
    record_id = _create(client, headers, org["dev"].id).json()["id"]
    response = client.delete(f"/api/monthly-attendance/{record_id}", headers=headers)
    assert response.status_code == status.HTTP_204_NO_CONTENT
    assert db_session.query(MonthlyAttendance).filter(MonthlyAttendance.id == record_id).first() is None
    assert client.delete(f"/api/monthly-attendance/{record_id}", headers=headers).status_code == 404


def test_user_reads_own_attendance(client, admin_user, org, auth_headers):
    _create(client, auth_headers(admin_user), org["dev"].id, month=1)
    _create(client, auth_headers(admin_user), org["dev"].id, month=2)
    response = client.get(f"/api/monthly-attendance/{org['dev'].id}", headers=auth_headers(org["dev"]))
    assert response.status_code == status.HTTP_200_OK
    assert [r["month"] for r in response.json()] == [2, 1]


def test_indirect_manager_reads_attendance(client, org, auth_headers):
    response = client.get(f"/api/monthly-attendance/{org['dev'].id}", headers=auth_headers(org["head"]))
    assert response.status_code == status.HTTP_200_OK


def test_colleague_cannot_read_attendance(client, org, auth_headers):
    response = client.get(f"/api/monthly-attendance/{org['dev'].id}", headers=auth_headers(org["qa"]))
    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["errors"][0]["code"] == "PERMISSION_DENIED"


def test_admin_lists_with_filters(client, admin_user, org, auth_headers):
    headers = auth_headers(admin_user)
    _create(client, headers, org["dev"].id, month=1)
    _create(client, headers, org["qa"].id, month=1)
    _create(client, headers, org["qa"].id, month=2)

    response = client.get("/api/monthly-attendance", headers=headers, params={"month": 1})
    assert len(response.json()) == 2
    response = client.get("/api/monthly-attendance", headers=headers, params={"user_id": org["qa"].id})
    assert len(response.json()) == 2


def test_compliance_report(client, admin_user, org, auth_headers):
    today = date.today()
    _create(client, auth_headers(admin_user), org["dev"].id, month=today.month, year=today.year,
            present_in_office=5, exception_approved=True)

    response = client.get(f"/api/monthly-attendance/{org['dev'].id}/compliance", headers=auth_headers(org["lead"]))
    assert response.status_code == status.HTTP_200_OK
    report = response.json()
    assert report["threshold"] == 40
    assert len(report["months"]) == 12
    current = report["months"][-1]
    assert current["status"] == "EXCEPTION"
    assert current["color"] == "grey"
    assert current["monthly_compliant"] is False
    assert report["summary"]["exception_months"] == 1
    assert report["months"][0]["status"] == "NO_DATA"


def test_compliance_report_access_denied(client, org, auth_headers):
    response = client.get(f"/api/monthly-attendance/{org['dev'].id}/compliance", headers=auth_headers(org["outsider"]))
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_bulk_upsert_reports_row_errors(client, admin_user, org, auth_headers):
    headers = auth_headers(admin_user)
    _create(client, headers, org["dev"].id, month=3, present_in_office=1)

    response = client.post("/api/monthly-attendance/bulk", headers=headers, json={"records": [
        _payload(org["dev"].id, month=3, present_in_office=15),
        _payload(org["qa"].id, month=3),
        _payload(org["qa"].id, month=13),
        _payload(999999, month=3),
    ]})
    assert response.status_code == status.HTTP_200_OK
    result = response.json()
    assert result["success"] == 2
    assert result["error_count"] == 2
    assert [e["row"] for e in result["errors"]] == [3, 4]

    dev_march = [r for r in result["results"] if r["user_id"] == org["dev"].id][0]
    assert dev_march["attendance_percentage"] == 75


def test_bulk_duplicate_rows_last_wins(client, admin_user, org, auth_headers):
    response = client.post("/api/monthly-attendance/bulk", headers=auth_headers(admin_user), json={"records": [
        _payload(org["dev"].id, month=4, present_in_office=2),
        _payload(org["dev"].id, month=4, present_in_office=12),
    ]})
    result = response.json()
    assert result["success"] == 1
    assert result["results"][0]["present_in_office"] == 12


def test_bulk_requires_records(client, admin_user, auth_headers):
    response = client.post("/api/monthly-attendance/bulk", headers=auth_headers(admin_user), json={"records": []})
    assert response.status_code == 422


def test_csv_import(client, admin_user, org, auth_headers, db_session):
    csv_text = (
        "email,month,year,workingDays,presentInOffice,leavesAvailed,leaveNotificationsInTeamsChannel,"
        "weeklyCompliance,exceptionApproved\n"
        "dev@example.com,5,2025,20,10,0,0,yes,\n"
        "qa@example.com,5,2025,20,4,1,1,no,true\n"
        "ghost@example.com,5,2025,20,10,0,0,,\n"
        "dev@example.com,6,2025,20,10,0,0,maybe,\n"
    )
    response = client.post(
        "/api/monthly-attendance/bulk/csv",
        headers=auth_headers(admin_user),
        files={"file": ("attendance.csv", csv_text, "text/csv")},
    )
    assert response.status_code == status.HTTP_200_OK
    result = response.json()
    assert result["success"] == 2
    assert [e["row"] for e in result["errors"]] == [4, 5]

    qa_may = db_session.query(MonthlyAttendance).filter(
        MonthlyAttendance.user_id == org["qa"].id, MonthlyAttendance.month == 5
    ).one()
    assert qa_may.weekly_compliance is False
    assert qa_may.exception_approved is True
    dev_may = db_session.query(MonthlyAttendance).filter(
        MonthlyAttendance.user_id == org["dev"].id, MonthlyAttendance.month == 5
    ).one()
    assert dev_may.weekly_compliance is True
    assert dev_may.exception_approved is None


def test_csv_without_user_column_rejected(client, admin_user, auth_headers):
    response = client.post(
        "/api/monthly-attendance/bulk/csv",
        headers=auth_headers(admin_user),
        files={"file": ("attendance.csv", "month,year\n1,2025\n", "text/csv")},
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_oversized_csv_rejected(client, admin_user, org, auth_headers, db_session):
    row = "dev@example.com,5,2025,20,10,0,0,yes,\n"
    csv_text = "email,month,year,workingDays,presentInOffice,leavesAvailed\n" + row * (1024 * 1024 // len(row) + 1)
    response = client.post(
        "/api/monthly-attendance/bulk/csv",
        headers=auth_headers(admin_user),
        files={"file": ("attendance.csv", csv_text, "text/csv")},
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "too large" in response.json()["errors"][0]["msg"]
    assert db_session.query(MonthlyAttendance).count() == 0


def test_manager_comment(client, admin_user, org, auth_headers):
    record_id = _create(client, auth_headers(admin_user), org["dev"].id, present_in_office=2).json()["id"]

    response = client.patch(
        f"/api/monthly-attendance/{record_id}/comment",
        headers=auth_headers(org["head"]),
        json={"reason_for_non_compliance": "Client site visits"},
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["reason_for_non_compliance"] == "Client site visits"


def test_manager_comment_outside_subtree_denied(client, admin_user, org, auth_headers):
    record_id = _create(client, auth_headers(admin_user), org["qa"].id).json()["id"]
    response = client.patch(
        f"/api/monthly-attendance/{record_id}/comment",
        headers=auth_headers(org["lead"]),
        json={"reason_for_non_compliance": "n/a"},
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_bulk_schema_errors_name_the_row(client, admin_user, org, auth_headers):
    bad = _payload(org["dev"].id)
    bad["working_days"] = "many"
    response = client.post("/api/monthly-attendance/bulk", headers=auth_headers(admin_user), json={"records": [bad]})
    assert response.status_code == 422
    assert response.json()["errors"][0]["field"] == "records.0.working_days"


def test_business_rule_error_names_the_field(client, admin_user, org, auth_headers):
    response = _create(client, auth_headers(admin_user), org["dev"].id, working_days=40)
    error = response.json()["errors"][0]
    assert error["code"] == "VALIDATION_FAILED"
    assert error["field"] == "working_days"
