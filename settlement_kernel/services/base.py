"""
BaseService -- shared shape of the SQL-backed kernel services.

Services flush into the caller's session and leave commit and rollback to
the caller (``session_scope()`` in production, the test fixture in tests).
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseService(ABC):
    """Holds the caller's session; subclasses call ``flush()``, never ``commit()``."""

    def __init__(self, session: Session):
        self.session = session
