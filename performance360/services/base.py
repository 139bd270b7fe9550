import logging
from typing import Optional

from sqlalchemy.orm import Session


class BaseService:
    """
    Common plumbing for service classes: the request's DB session and a
    logger that callers may inject (defaults to the concrete module's logger).
    """

    def __init__(self, db: Session, logger: Optional[logging.Logger] = None):
        self.db = db
        self._logger = logger or logging.getLogger(type(self).__module__)

    def log_info(self, message: str, **extra):
        self._logger.info(message, extra=extra or None)

    def log_warning(self, message: str, **extra):
        self._logger.warning(message, extra=extra or None)

    def commit(self):
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
