from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from konsept import db
from konsept.errors import StoreError, ValidationError


def commit(action: str) -> None:
    """Commit the session, rolling back and raising StoreError on failure."""
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        current_app.logger.error(f"[store-conflict] action={action} detail={exc.orig}")
        raise StoreError(f"Conflicting write while trying to {action}") from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.error(f"[store-failed] action={action} detail={exc}")
        raise StoreError(f"Could not {action}") from exc


def check_length(value: str, column, label: str) -> None:
    """Reject *value* when it is longer than the String *column* allows."""
    limit = column.type.length
    if limit and len(value) > limit:
        raise ValidationError(f"{label} must be at most {limit} characters")
