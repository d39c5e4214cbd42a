from __future__ import annotations

from ..extensions import db
from siliconpos.time_utils import to_utc_z, utcnow


class DocumentSequence(db.Model):
    """
    Atomic document counters.

    WHY: Sale numbers must be unique without a read-then-check loop.
    One row per (document_type, period), e.g. ("SALE", "20261019").
    """
    __tablename__ = "document_sequences"
    __table_args__ = (
        db.UniqueConstraint("document_type", "period", name="uq_doc_sequences_type_period"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    document_type = db.Column(db.String(32), nullable=False, index=True)
    period = db.Column(db.String(16), nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "document_type": self.document_type,
            "period": self.period,
            "next_number": self.next_number,
            "updated_at": to_utc_z(self.updated_at),
        }
