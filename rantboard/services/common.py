"""
Shared plumbing for the board services.
"""

import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from rantboard.database import get_session
from rantboard.errors import StorageError

logger = logging.getLogger(__name__)


@contextmanager
def board_session() -> Generator[Session, None, None]:
    """
    Session for a single board operation.

    Commits are explicit inside the operation. Any database failure is logged
    and surfaces as StorageError; board errors pass through untouched.
    """
    session = get_session()
    try:
        yield session
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception("Storage failure")
        raise StorageError() from e
    finally:
        session.close()
