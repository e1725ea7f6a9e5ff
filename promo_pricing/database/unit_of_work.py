import logging
from typing import Optional

from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


class UnitOfWork:
    """
    One transaction around a pricing / coupon operation.

    Usage:
        with UnitOfWork(db) as uow:
            ...
            uow.add(row)

    Leaving the block commits, unless `rollback()` was called explicitly
    (business rejection) or an exception escaped, in which case everything
    added inside the block is discarded.
    """

    def __init__(self, session: Session):
        self.session = session
        self._rolled_back = False

    def __enter__(self) -> "UnitOfWork":
        self._rolled_back = False
        return self

    def __exit__(self, exc_type, exc, tb) -> Optional[bool]:
        if exc_type is not None:
            logger.debug("Rolling back unit of work after %s", exc_type.__name__)
            self.session.rollback()
            return None
        if not self._rolled_back:
            self.commit()
        return None

    def add(self, instance) -> None:
        self.session.add(instance)

    def flush(self) -> None:
        self.session.flush()

    def commit(self) -> None:
        try:
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    def rollback(self) -> None:
        self.session.rollback()
        self._rolled_back = True

    @property
    def rolled_back(self) -> bool:
        return self._rolled_back
