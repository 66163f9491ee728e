from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from flask_login import LoginManager
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.exc import IntegrityError

from app.core.errors import BadRequestError

logger = logging.getLogger(__name__)

db = SQLAlchemy()
migrate = Migrate()
login_manager = LoginManager()


@contextmanager
def atomic(conflict_message: str = "Conflicting concurrent update, retry the operation") -> Iterator[None]:
    """Run a block of reads and writes as one unit of work.

    Commits when the block finishes, rolls everything back on any error.
    A unique-constraint violation means another request won a race for the
    same row and is reported as a bad request.
    """
    try:
        yield
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("Transaction rolled back on constraint violation: %s", exc.orig)
        raise BadRequestError(conflict_message) from exc
    except Exception:
        db.session.rollback()
        raise
