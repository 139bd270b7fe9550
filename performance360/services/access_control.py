"""
Access control over the reports-to hierarchy.

A manager can see the data of everyone below them in the ``manager_id``
tree, directly or transitively. Every check fails closed: a database error
while resolving the hierarchy is logged and answered with "no access".

Traversals walk the tree one level per query and keep a visited set, so a
``manager_id`` loop introduced by bad data terminates instead of spinning.
"""
from typing import Iterable, List, Optional, Set

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from performance360.core.exceptions import AccessDeniedError
from performance360.models.user import User, UserRole
from performance360.services.base import BaseService


class AccessControlService(BaseService):

    def _report_ids(self, manager_ids: Iterable[int]) -> List[int]:
        manager_ids = list(manager_ids)
        if not manager_ids:
            return []
        rows = (
            self.db.query(User.id)
            .filter(User.manager_id.in_(manager_ids), User.is_active.is_(True))
            .all()
        )
        return [row[0] for row in rows]

    def is_direct_report(self, manager_id: int, employee_id: int) -> bool:
        """True when ``employee_id`` is an active user whose manager is ``manager_id``."""
        match = (
            self.db.query(User.id)
            .filter(
                User.id == employee_id,
                User.manager_id == manager_id,
                User.is_active.is_(True),
            )
            .first()
        )
        return match is not None

    def is_indirect_report(self, manager_id: int, employee_id: int) -> bool:
        """
        True when ``employee_id`` reports to ``manager_id`` through at least one
        intermediate manager.

        Starting from the manager's direct reports, each level's reports are
        checked for the employee before descending a level. A manager with no
        reports is answered immediately. Self comparison is left to
        ``check_user_access``.
        """
        try:
            level = self._report_ids([manager_id])
            visited: Set[int] = {manager_id, *level}
            while level:
                next_level = []
                for report_id in self._report_ids(level):
                    if report_id == employee_id:
                        return True
                    if report_id in visited:
                        self._logger.warning(
                            "Cycle detected in reporting hierarchy",
                            extra={"manager_id": manager_id, "user_id": report_id},
                        )
                        continue
                    visited.add(report_id)
                    next_level.append(report_id)
                level = next_level
            return False
        except SQLAlchemyError as e:
            self._logger.error(
                f"Error checking indirect report relationship: {e}",
                exc_info=True,
                extra={"manager_id": manager_id, "employee_id": employee_id},
            )
            return False

    def check_user_access(self, current_user_id: int, current_user_role, target_user_id: int) -> bool:
        """
        Decide whether the current user may view the target user's data.

        - Anyone may view their own data.
        - ADMIN may view everyone.
        - MANAGER may view direct and indirect reports.
        - EMPLOYEE may view only themselves.
        """
        if current_user_id == target_user_id:
            return True

        if current_user_role == UserRole.ADMIN:
            return True

        if current_user_role == UserRole.MANAGER:
            try:
                if self.is_direct_report(current_user_id, target_user_id):
                    return True
            except SQLAlchemyError as e:
                self._logger.error(f"Error checking direct report relationship: {e}", exc_info=True)
                return False
            return self.is_indirect_report(current_user_id, target_user_id)

        return False

    def ensure_user_access(self, current_user: User, target_user_id: int, message: Optional[str] = None):
        if not self.check_user_access(current_user.id, current_user.role, target_user_id):
            self.log_warning(
                "Access denied to user data",
                user_id=current_user.id,
                target_user_id=target_user_id,
            )
            raise AccessDeniedError(
                message or "Access denied. You can only view data for your direct or indirect reports."
            )

    def get_direct_reports(self, manager_id: int) -> List[User]:
        return (
            self.db.query(User)
            .filter(User.manager_id == manager_id, User.is_active.is_(True))
            .order_by(User.last_name.asc(), User.first_name.asc())
            .all()
        )

    def get_all_reports(self, manager_id: int) -> List[User]:
        """
        Everyone below ``manager_id``: direct reports first, then each deeper
        level in turn (each level ordered by name).
        """
        reports: List[User] = []
        visited: Set[int] = {manager_id}
        level = [manager_id]
        while level:
            users = (
                self.db.query(User)
                .filter(User.manager_id.in_(level), User.is_active.is_(True))
                .order_by(User.last_name.asc(), User.first_name.asc())
                .all()
            )
            level = []
            for user in users:
                if user.id in visited:
                    continue
                visited.add(user.id)
                reports.append(user)
                level.append(user.id)
        return reports

    def would_create_cycle(self, user_id: int, new_manager_id: Optional[int]) -> bool:
        """True if making ``new_manager_id`` the manager of ``user_id`` closes a loop."""
        current = new_manager_id
        visited: Set[int] = set()
        while current is not None:
            if current == user_id:
                return True
            if current in visited:
                # Pre-existing loop above the new manager
                return True
            visited.add(current)
            row = self.db.query(User.manager_id).filter(User.id == current).first()
            current = row[0] if row else None
        return False


def is_indirect_report(db: Session, manager_id: int, employee_id: int) -> bool:
    return AccessControlService(db).is_indirect_report(manager_id, employee_id)


def check_user_access(db: Session, current_user_id: int, current_user_role, target_user_id: int) -> bool:
    return AccessControlService(db).check_user_access(current_user_id, current_user_role, target_user_id)
