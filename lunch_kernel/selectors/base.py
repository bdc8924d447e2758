"""
BaseSelector -- read-only query access for the lunch kernel.

Selectors accept a Session from the caller, run SELECTs and return frozen
DTOs.  They never add, delete, flush or commit; the caller owns the session
and its transaction.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from lunch_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseSelector(ABC, Generic[ModelType]):
    """Abstract base class for all selectors."""

    def __init__(self, session: Session):
        self.session = session
