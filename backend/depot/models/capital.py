from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow

CAPITAL_IN = "in"
CAPITAL_OUT = "out"
CAPITAL_KINDS = {CAPITAL_IN, CAPITAL_OUT}


class CapitalEntry(db.Model):
    """
    Append-only working-capital movement for an outlet.

    The outlet balance is never stored: it is SUM(in) - SUM(out) over these
    rows, so it can be reproduced by full replay at any time.
    """
    __tablename__ = "capital_entries"
    __table_args__ = (
        db.CheckConstraint("amount > 0", name="ck_capital_entries_amount"),
        db.Index("ix_capital_entries_outlet_created", "outlet_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    outlet_id = db.Column(db.Integer, db.ForeignKey("outlets.id"), nullable=False, index=True)
    kind = db.Column(db.String(8), nullable=False)
    amount = db.Column(db.Integer, nullable=False)
    note = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "outlet_id": self.outlet_id,
            "kind": self.kind,
            "amount": self.amount,
            "note": self.note,
            "created_at": to_utc_z(self.created_at),
        }
