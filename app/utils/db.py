from contextlib import contextmanager
import logging
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from models import db
from app.services.exceptions import SettlementError

logger = logging.getLogger(__name__)


@contextmanager
def transactional(message="DB transaction failed"):
    """Commit on success; roll back and re-raise on any error."""
    try:
        yield
        db.session.commit()
    except SettlementError as e:
        db.session.rollback()
        logger.info("%s: %s", message, e.message)
        raise
    except Exception as e:
        db.session.rollback()
        logger.error("%s: %s", message, e, exc_info=True)
        raise


def insert_ignore(model, values, session=None):
    """INSERT a row unless one with the same unique key already exists."""
    session = session or db.session
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = postgresql.insert(model.__table__).values(**values).on_conflict_do_nothing()
    elif dialect == "sqlite":
        stmt = sqlite.insert(model.__table__).values(**values).on_conflict_do_nothing()
    else:
        try:
            with session.begin_nested():
                session.execute(model.__table__.insert().values(**values))
        except IntegrityError:
            pass
        return
    session.execute(stmt)
