"""
Generic CRUD helpers for SQLAlchemy models keyed by a single primary key.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Type, TypeVar

from sqlalchemy.orm import Session

from ..exceptions import PersistenceFailedError
from ..utils.logger import get_logger

T = TypeVar("T")


def get_record(session: Session, model_class: Type[T], record_id: Any) -> Optional[T]:
    """
    Generic get-by-primary-key operation.

    Args:
        session: Database session
        model_class: SQLAlchemy model class
        record_id: Primary key value

    Returns:
        Record instance or None
    """
    return session.get(model_class, record_id)


def upsert_record(
    session: Session, model_class: Type[T], record_id: Any, data: Dict[str, Any]
) -> T:
    """
    Create the record or overwrite its fields in a single commit.

    Raises:
        PersistenceFailedError: If the commit fails
    """
    logger = get_logger()

    try:
        record = session.get(model_class, record_id)
        if record is None:
            record = model_class(**data)
            session.add(record)
        else:
            for key, value in data.items():
                if hasattr(record, key):
                    setattr(record, key, value)
            if hasattr(record, "updated_at"):
                record.updated_at = datetime.now(timezone.utc)

        session.commit()

        logger.debug(
            f"Stored {model_class.__name__}",
            extra={"model": model_class.__name__, "record_id": record_id},
        )
        return record

    except Exception as e:
        session.rollback()
        raise PersistenceFailedError(
            f"Failed to store {model_class.__name__}: {str(e)}",
            cause=e,
            record_id=record_id,
        )


def delete_record(session: Session, model_class: Type[T], record_id: Any) -> bool:
    """
    Generic delete operation.

    Returns:
        True if deleted, False if not found

    Raises:
        PersistenceFailedError: If the delete fails
    """
    logger = get_logger()

    try:
        record = session.get(model_class, record_id)
        if not record:
            return False

        session.delete(record)
        session.commit()

        logger.debug(
            f"Deleted {model_class.__name__}",
            extra={"model": model_class.__name__, "record_id": record_id},
        )
        return True

    except Exception as e:
        session.rollback()
        raise PersistenceFailedError(
            f"Failed to delete {model_class.__name__}: {str(e)}",
            cause=e,
            record_id=record_id,
        )


def list_record_ids(
    session: Session, model_class: Type[T], id_column: str, prefix: str = ""
) -> List[str]:
    """
    List primary keys starting with ``prefix`` in ascending order.
    """
    column = getattr(model_class, id_column)
    query = session.query(column)
    if prefix:
        query = query.filter(column.startswith(prefix, autoescape=True))
    return [row[0] for row in query.order_by(column).all()]
