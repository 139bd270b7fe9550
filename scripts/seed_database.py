"""
Populate a development database with a small organisation:

    admin
    └── head of engineering (MANAGER)
        ├── team lead (MANAGER)
        │   ├── developer 1
        │   └── developer 2
        └── qa engineer

plus twelve months of attendance, one quarter of performance ratings and a
few feedback entries. Safe to re-run: existing rows are skipped.
"""
import sys
import os
import logging
from datetime import date

sys.path.append(os.getcwd())

from performance360.database import init_db, session_scope
from performance360.models import (
    AchievementObservation,
    ColleagueFeedback,
    ManagerFeedback,
    MonthlyAttendance,
    Quarter,
    QuarterlyPerformance,
    User,
    UserRole,
)
from performance360.services.attendance_compliance import calculate_attendance_percentage
from performance360.services.auth import get_password_hash

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)

DEFAULT_PASSWORD = "Welcome123!"

USERS = [
    # email, first, last, position, role, manager email
    ("admin@example.com", "Ada", "Admin", "HR Administrator", UserRole.ADMIN, None),
    ("head.eng@example.com", "Hana", "Hughes", "Head of Engineering", UserRole.MANAGER, None),
    ("lead@example.com", "Liam", "Lopez", "Team Lead", UserRole.MANAGER, "head.eng@example.com"),
    ("dev1@example.com", "Dana", "Diaz", "Software Engineer", UserRole.EMPLOYEE, "lead@example.com"),
    ("dev2@example.com", "Eli", "Evans", "Software Engineer", UserRole.EMPLOYEE, "lead@example.com"),
    ("qa@example.com", "Quinn", "Quade", "QA Engineer", UserRole.EMPLOYEE, "head.eng@example.com"),
]

# (working_days, present_in_office, leaves, teams notifications, weekly, exception)
ATTENDANCE_PATTERNS = [
    (21, 12, 0, 0, True, None),
    (20, 6, 0, 0, False, None),
    (22, 9, 2, 2, False, None),
    (20, 3, 1, 0, None, True),
]


def seed_users(db):
    users = {}
    for email, first, last, position, role, _ in USERS:
        user = db.query(User).filter(User.email == email).first()
        if user is None:
            user = User(
                email=email,
                hashed_password=get_password_hash(DEFAULT_PASSWORD),
                first_name=first,
                last_name=last,
                position=position,
                role=role,
            )
            db.add(user)
            logger.info(f"Created {role.value} -> {email}")
        users[email] = user
    db.flush()

    for email, *_, manager_email in USERS:
        if manager_email:
            users[email].manager_id = users[manager_email].id
    db.commit()
    return users


def seed_attendance(db, users, today=None):
    today = today or date.today()
    employees = [u for u in users.values() if u.role != UserRole.ADMIN]
    for index, user in enumerate(employees):
        for offset in range(12):
            month = today.month - offset
            year = today.year
            while month <= 0:
                month += 12
                year -= 1
            exists = db.query(MonthlyAttendance.id).filter(
                MonthlyAttendance.user_id == user.id,
                MonthlyAttendance.month == month,
                MonthlyAttendance.year == year,
            ).first()
            if exists:
                continue
            working, present, leaves, notifications, weekly, exception = ATTENDANCE_PATTERNS[(index + offset) % len(ATTENDANCE_PATTERNS)]
            db.add(MonthlyAttendance(
                user_id=user.id,
                month=month,
                year=year,
                working_days=working,
                present_in_office=present,
                leaves_availed=leaves,
                leave_notifications_in_teams_channel=notifications,
                weekly_compliance=weekly,
                exception_approved=exception,
                attendance_percentage=calculate_attendance_percentage(working, present, leaves),
            ))
    db.commit()


def seed_reviews(db, users, year):
    lead = users["lead@example.com"]
    head = users["head.eng@example.com"]
    dev1 = users["dev1@example.com"]
    dev2 = users["dev2@example.com"]

    if db.query(QuarterlyPerformance.id).filter(QuarterlyPerformance.year == year).first():
        logger.info("Reviews already seeded, skipping")
        return

    for user, rating, critical in ((dev1, 4, False), (dev2, 2, True), (lead, 4, False)):
        db.add(QuarterlyPerformance(
            user_id=user.id,
            quarter=Quarter.Q1,
            year=year,
            rating=rating,
            is_critical=critical,
            manager_comment="Seeded review",
        ))

    db.add(ColleagueFeedback(
        sender_id=dev1.id,
        receiver_id=dev2.id,
        year=year,
        quarter=Quarter.Q1,
        rating=4,
        feedback_provider=dev1.full_name,
        appreciation="Great pairing partner.",
        would_work_again=True,
    ))
    db.add(ManagerFeedback(
        sender_id=dev1.id,
        receiver_id=lead.id,
        year=year,
        quarter=Quarter.Q1,
        feedback_provider=dev1.full_name,
        manager_satisfaction="VERY_SATISFIED",
        leadership_style={"clear_goals": "Always"},
        manager_overall_rating=5,
    ))
    db.add(AchievementObservation(
        user_id=dev2.id,
        date=date(year, 2, 14),
        achievement="Shipped the attendance import",
        observation="Needs to raise blockers earlier",
        created_by=head.id,
    ))
    db.commit()


def main():
    init_db()
    with session_scope() as db:
        users = seed_users(db)
        seed_attendance(db, users)
        seed_reviews(db, users, date.today().year)
    logger.info(f"Seed complete. Every seeded account uses the password '{DEFAULT_PASSWORD}'.")


if __name__ == "__main__":
    main()
