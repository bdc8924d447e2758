"""
BaseService -- abstract base for all lunch kernel services.

Responsibility:
    Common constructor and session-handling contract.  Every concrete
    service receives a SQLAlchemy ``Session`` and persists through
    ``session.flush()`` -- never ``session.commit()``.

Invariants enforced:
    Transaction boundaries belong to the caller (the lunch_services facade
    or a test).  Multi-step transitions open a SAVEPOINT with
    ``session.begin_nested()`` so a late failure undoes the whole step
    without ending the caller's transaction.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from lunch_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all kernel services.

    Guarantees:
        - The service never calls ``session.commit()`` or
          ``session.rollback()``.

    Non-goals:
        - Query-only reads live in ``lunch_kernel/selectors/``.
    """

    def __init__(self, session: Session):
        self.session = session
