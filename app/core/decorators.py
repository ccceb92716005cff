import functools
import logging
from typing import Callable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.core.config import settings
from app.core.exceptions import ConcurrentUpdateConflict

logger = logging.getLogger(__name__)


def optimistic_transaction(func: Callable) -> Callable:
    """Run a service method as one atomic unit with optimistic retry.

    The wrapped method receives the session as its first argument after
    ``self`` and must not commit. A lost version check (``StaleDataError``) or
    a duplicate lazy insert (``IntegrityError``) rolls the whole unit back and
    runs it again against fresh rows. When the attempt budget is exhausted a
    ``ConcurrentUpdateConflict`` is raised.
    """
    @functools.wraps(func)
    def wrapper(self, db: Session, *args, **kwargs):
        max_attempts = max(1, settings.PROGRESS_MAX_WRITE_ATTEMPTS)
        for attempt in range(1, max_attempts + 1):
            try:
                result = func(self, db, *args, **kwargs)
                db.commit()
                return result
            except (StaleDataError, IntegrityError) as exc:
                db.rollback()
                logger.info(
                    f"Write conflict in {func.__qualname__} "
                    f"(attempt {attempt}/{max_attempts}): {type(exc).__name__}"
                )
            except Exception:
                db.rollback()
                raise

        logger.warning(f"Retry budget exhausted in {func.__qualname__} after {max_attempts} attempts")
        raise ConcurrentUpdateConflict()

    return wrapper
