"""Shared utility functions used by services and blueprints.

parse_date:          lenient date parsing (returns None on bad input)
parse_amount:        money input coercion (raises ValueError on bad input)
db_commit_or_error:  commit with uniform rollback + JSON error response
format_currency:     whole-unit display strings for USD / SYP
"""
import logging
from datetime import date, datetime

from flask import jsonify

from buildops.models import db

logger = logging.getLogger(__name__)


def parse_date(value):
    """Parse a date string (ISO or DD.MM.YYYY) to a date object.

    Returns None for empty/invalid input. Supports:
    - YYYY-MM-DD (ISO format)
    - YYYY-MM-DDTHH:MM:SS (datetime ISO → .date())
    - DD.MM.YYYY
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except (ValueError, TypeError):
        pass
    try:
        return datetime.fromisoformat(str(value)).date()
    except (ValueError, TypeError):
        pass
    try:
        return datetime.strptime(str(value), "%d.%m.%Y").date()
    except (ValueError, TypeError):
        return None


def parse_amount(value, default: float = 0.0) -> float:
    """Coerce a money field to float.

    ``None`` and ``""`` give *default*; anything non-numeric raises
    ValueError so services can report it as a field error.
    """
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise ValueError("Amount must be a number")
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError("Amount must be a number") from exc


def format_currency(amount, currency: str = "USD") -> str:
    """Format an amount without fractional digits.

    >>> format_currency(1500000)
    '$1,500,000'
    >>> format_currency(250000, "SYP")
    '250,000 SYP'
    """
    value = round(float(amount or 0))
    sign = "-" if value < 0 else ""
    digits = f"{abs(value):,}"
    if currency == "SYP":
        return f"{sign}{digits} SYP"
    return f"{sign}${digits}"


# ── Database commit helper ───────────────────────────────────────────────────

def db_commit_or_error():
    """Commit the current SQLAlchemy session, returning an error response on failure.

    Returns:
        None on success.
        (response, status_code) tuple on failure - ready for ``return``.

    Usage::

        err = db_commit_or_error()
        if err:
            return err

    IntegrityError → 409 (duplicate / constraint violation)
    OperationalError → 500 (connection / lock issues)
    Other → 500 (unexpected)
    """
    from sqlalchemy.exc import IntegrityError, OperationalError

    try:
        db.session.commit()
        return None
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("Integrity error on commit: %s", exc.orig)
        return jsonify({"error": "Duplicate or constraint violation", "code": "ERR_CONFLICT_DUPLICATE"}), 409
    except OperationalError:
        db.session.rollback()
        logger.exception("Database operational error on commit")
        return jsonify({"error": "Database error", "code": "ERR_DATABASE"}), 500
    except Exception:
        db.session.rollback()
        logger.exception("Unexpected database error on commit")
        return jsonify({"error": "Database error", "code": "ERR_DATABASE"}), 500
