"""
Bootstrap the first administrator account.

    ADMIN_EMAIL=ops@example.com ADMIN_PASSWORD='...' python scripts/create_admin.py
"""
import sys
import os
import logging

# Ensure we can import performance360 modules
sys.path.append(os.getcwd())

from performance360.core.security import validate_password_strength
from performance360.database import init_db, session_scope
from performance360.models.user import User, UserRole
from performance360.services.auth import get_password_hash

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)


def create_admin_user(email: str, password: str, first_name: str = "System", last_name: str = "Administrator"):
    is_valid, message = validate_password_strength(password)
    if not is_valid:
        logger.error(f"Refusing to create admin: {message}")
        return None

    init_db()
    with session_scope() as db:
        existing = db.query(User).filter(User.email == email).first()
        if existing:
            if existing.role != UserRole.ADMIN:
                logger.warning(f"'{email}' exists with role {existing.role.value}; promoting to ADMIN")
                existing.role = UserRole.ADMIN
            else:
                logger.warning(f"Admin '{email}' already exists.")
            return existing.id

        admin = User(
            email=email,
            hashed_password=get_password_hash(password),
            first_name=first_name,
            last_name=last_name,
            role=UserRole.ADMIN,
            is_active=True,
        )
        db.add(admin)
        db.flush()
        logger.info(f"Admin '{email}' created (id={admin.id}). You can now login.")
        return admin.id


if __name__ == "__main__":
    password = os.getenv("ADMIN_PASSWORD")
    if not password:
        logger.error("ADMIN_PASSWORD must be set")
        sys.exit(1)
    if create_admin_user(os.getenv("ADMIN_EMAIL", "admin@example.com"), password) is None:
        sys.exit(1)
