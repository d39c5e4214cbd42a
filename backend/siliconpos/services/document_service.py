# Overview: Human-readable document numbers backed by atomic per-day sequences.

from __future__ import annotations

from datetime import datetime

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DocumentSequence


SALE_DOCUMENT_TYPE = "SALE"
SALE_PREFIX = "SL"
SUFFIX_WIDTH = 4
_BASE36 = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


class DocumentSequenceError(Exception):
    """Raised when document sequence operations fail."""
    pass


def to_base36(number: int, width: int = SUFFIX_WIDTH) -> str:
    if number < 0:
        raise DocumentSequenceError("Sequence numbers must be non-negative")
    digits = ""
    while number:
        number, rem = divmod(number, 36)
        digits = _BASE36[rem] + digits
    digits = digits or "0"
    if len(digits) > width:
        raise DocumentSequenceError(f"Sequence exhausted for width {width}")
    return digits.rjust(width, "0")


def allocate_number(*, document_type: str, period: str) -> int:
    """
    Atomically allocate the next number for (document_type, period).

    Runs inside the caller's transaction and never commits. The first
    allocation for a period inserts the row under a savepoint so a racing
    insert only undoes the savepoint, not the caller's work.
    """
    if not document_type:
        raise DocumentSequenceError("document_type is required")
    if not period:
        raise DocumentSequenceError("period is required")

    stmt = (
        update(DocumentSequence)
        .where(
            DocumentSequence.document_type == document_type,
            DocumentSequence.period == period,
        )
        .values(next_number=DocumentSequence.next_number + 1)
        .execution_options(synchronize_session=False)
    )

    def _bump() -> int | None:
        result = db.session.execute(stmt)
        if not result.rowcount:
            return None
        current = (
            db.session.query(DocumentSequence.next_number)
            .filter_by(document_type=document_type, period=period)
            .scalar()
        )
        return current - 1

    allocated = _bump()
    if allocated is not None:
        return allocated

    try:
        with db.session.begin_nested():
            db.session.add(DocumentSequence(document_type=document_type, period=period, next_number=2))
        return 1
    except IntegrityError:
        allocated = _bump()
        if allocated is None:
            raise DocumentSequenceError(f"Could not allocate {document_type} number for {period}")
        return allocated


def next_sale_number(local_day: datetime) -> str:
    """
    SL-<YYYYMMDD>-<4 char base36>, e.g. SL-20261019-000A.

    The date is the store-local checkout date; the suffix is the day's
    sequence number, so numbers are unique without a lookup.
    """
    period = local_day.strftime("%Y%m%d")
    number = allocate_number(document_type=SALE_DOCUMENT_TYPE, period=period)
    return f"{SALE_PREFIX}-{period}-{to_base36(number)}"
