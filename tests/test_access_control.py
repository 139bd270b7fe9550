import logging
import pytest
from unittest.mock import patch
from sqlalchemy.exc import OperationalError
from performance360.core.exceptions import AccessDeniedError
from performance360.models.user import UserRole
from performance360.services.access_control import (
    AccessControlService,
    check_user_access,
    is_indirect_report,
)


def _chain(make_user, depth):
    """A manager with a single line of reports ``depth`` levels deep."""
    top = make_user("top@example.com", role=UserRole.MANAGER)
    users = [top]
    for level in range(1, depth + 1):
        users.append(make_user(f"level{level}@example.com", role=UserRole.MANAGER, manager=users[-1]))
    return users


def test_direct_report(db_session, org):
    service = AccessControlService(db_session)
    assert service.is_direct_report(org["lead"].id, org["dev"].id)
    assert not service.is_direct_report(org["head"].id, org["dev"].id)


def test_indirect_report_two_levels(db_session, org):
    assert is_indirect_report(db_session, org["head"].id, org["dev"].id)


def test_direct_report_is_not_indirect(db_session, org):
    assert not is_indirect_report(db_session, org["head"].id, org["lead"].id)


def test_indirect_report_outside_subtree(db_session, org):
    assert not is_indirect_report(db_session, org["head"].id, org["outsider"].id)
    assert not is_indirect_report(db_session, org["lead"].id, org["qa"].id)


def test_manager_without_reports(db_session, org):
    assert not is_indirect_report(db_session, org["dev"].id, org["qa"].id)


@pytest.mark.parametrize("depth", [1, 2, 3, 6])
def test_manager_sees_every_level(db_session, make_user, depth):
    users = _chain(make_user, depth)
    top, bottom = users[0], users[-1]
    assert check_user_access(db_session, top.id, UserRole.MANAGER, bottom.id)


def test_manager_cannot_see_upwards(db_session, org):
    assert not check_user_access(db_session, org["lead"].id, UserRole.MANAGER, org["head"].id)


def test_manager_cannot_see_outside_subtree(db_session, org):
    assert not check_user_access(db_session, org["lead"].id, UserRole.MANAGER, org["qa"].id)
    assert not check_user_access(db_session, org["head"].id, UserRole.MANAGER, org["outsider"].id)


@pytest.mark.parametrize("role", list(UserRole))
def test_everyone_sees_themselves(db_session, org, role):
    dev = org["dev"]
    assert check_user_access(db_session, dev.id, role, dev.id)


def test_admin_sees_everyone(db_session, org):
    for user in org.values():
        assert check_user_access(db_session, 999999, UserRole.ADMIN, user.id)


def test_employee_sees_only_self(db_session, org):
    assert not check_user_access(db_session, org["dev"].id, UserRole.EMPLOYEE, org["qa"].id)


def test_inactive_reports_are_skipped(db_session, org):
    org["lead"].is_active = False
    db_session.commit()
    assert not check_user_access(db_session, org["head"].id, UserRole.MANAGER, org["dev"].id)


def test_cycle_terminates(db_session, make_user):
    a = make_user("a@example.com", role=UserRole.MANAGER)
    b = make_user("b@example.com", role=UserRole.MANAGER, manager=a)
    c = make_user("c@example.com", role=UserRole.MANAGER, manager=b)
    # Corrupt the tree: a now reports to c
    a.manager_id = c.id
    db_session.commit()
    outsider = make_user("x@example.com")

    service = AccessControlService(db_session)
    assert not service.is_indirect_report(a.id, outsider.id)
    assert service.is_indirect_report(a.id, c.id)
    assert {u.id for u in service.get_all_reports(a.id)} == {b.id, c.id}


def test_database_error_fails_closed(db_session, org, caplog):
    service = AccessControlService(db_session)
    with patch.object(service, "_report_ids", side_effect=OperationalError("SELECT", {}, Exception("db down"))):
        with caplog.at_level(logging.ERROR):
            assert service.is_indirect_report(org["head"].id, org["dev"].id) is False
    assert "db down" in caplog.text


def test_direct_report_database_error_fails_closed(db_session, org):
    service = AccessControlService(db_session)
    with patch.object(service, "is_direct_report", side_effect=OperationalError("SELECT", {}, Exception("db down"))):
        assert service.check_user_access(org["lead"].id, UserRole.MANAGER, org["dev"].id) is False


def test_injected_logger_is_used(db_session, org):
    logger = logging.getLogger("tests.access_control")
    service = AccessControlService(db_session, logger=logger)
    with patch.object(logger, "warning") as warning:
        with pytest.raises(AccessDeniedError):
            service.ensure_user_access(org["dev"], org["qa"].id)
    warning.assert_called_once()


def test_ensure_user_access_allows_manager(db_session, org):
    AccessControlService(db_session).ensure_user_access(org["head"], org["dev"].id)


def test_get_direct_reports_ordered_by_name(db_session, make_user):
    boss = make_user("boss@example.com", role=UserRole.MANAGER)
    make_user("zed@example.com", manager=boss, last_name="Zed")
    make_user("amy@example.com", manager=boss, last_name="Amy")
    reports = AccessControlService(db_session).get_direct_reports(boss.id)
    assert [u.last_name for u in reports] == ["Amy", "Zed"]


def test_get_all_reports_breadth_first(db_session, org):
    reports = AccessControlService(db_session).get_all_reports(org["head"].id)
    ids = [u.id for u in reports]
    assert set(ids[:2]) == {org["lead"].id, org["qa"].id}
    assert ids[2:] == [org["dev"].id]


def test_would_create_cycle(db_session, org):
    service = AccessControlService(db_session)
    assert service.would_create_cycle(org["head"].id, org["dev"].id)
    assert service.would_create_cycle(org["lead"].id, org["lead"].id)
    assert not service.would_create_cycle(org["outsider"].id, org["dev"].id)
    assert not service.would_create_cycle(org["dev"].id, None)
