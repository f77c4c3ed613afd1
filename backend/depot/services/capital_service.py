# Overview: Outlet working-capital ledger; append-only entries and a derived balance.

from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy import case, func

from ..errors import InsufficientCapital, NotFoundError
from ..extensions import db
from ..models import CapitalEntry, Outlet
from ..models.capital import CAPITAL_IN, CAPITAL_KINDS, CAPITAL_OUT
from ..validation import choice, optional_text, positive_int
from .concurrency import lock_for_update, run_in_transaction
"""
Depot Capital Invariants (authoritative)

- CapitalEntry rows are append-only: never edited, never deleted.
- Balance = SUM(in) - SUM(out) over the outlet's entries; never stored.
- amount > 0 for every entry; zero/negative input is rejected, not ignored.
- An 'out' entry larger than the current balance is rejected before any row
  is written. The balance read and the insert share one unit of work with the
  outlet row locked, so two concurrent withdrawals cannot both pass the check.
"""


def _lock_outlet(outlet_id: int) -> Outlet:
    outlet = lock_for_update(db.session.query(Outlet).filter_by(id=outlet_id)).first()
    if outlet is None:
        raise NotFoundError(f"outlet {outlet_id} not found", details={"outlet_id": outlet_id})
    return outlet


def get_capital_summary(outlet_id: int, before: datetime | None = None) -> dict:
    """Totals over the outlet's entries; with before, only entries created earlier (an opening balance)."""
    q = db.session.query(
        func.coalesce(func.sum(case((CapitalEntry.kind == CAPITAL_IN, CapitalEntry.amount), else_=0)), 0).label("total_in"),
        func.coalesce(func.sum(case((CapitalEntry.kind == CAPITAL_OUT, CapitalEntry.amount), else_=0)), 0).label("total_out"),
    ).filter(CapitalEntry.outlet_id == outlet_id)
    if before is not None:
        q = q.filter(CapitalEntry.created_at < before)
    row = q.one()

    total_in = int(row.total_in or 0)
    total_out = int(row.total_out or 0)
    return {
        "outlet_id": outlet_id,
        "total_in": total_in,
        "total_out": total_out,
        "balance": total_in - total_out,
    }


def get_balance(outlet_id: int) -> int:
    return get_capital_summary(outlet_id)["balance"]


def list_capital_balances(outlet_ids) -> list[dict]:
    """Per-outlet capital summaries, sorted by outlet name."""
    ids = list(outlet_ids)
    if not ids:
        return []

    outlets = db.session.query(Outlet).filter(Outlet.id.in_(ids)).all()
    grouped = db.session.query(
        CapitalEntry.outlet_id,
        func.coalesce(func.sum(case((CapitalEntry.kind == CAPITAL_IN, CapitalEntry.amount), else_=0)), 0),
        func.coalesce(func.sum(case((CapitalEntry.kind == CAPITAL_OUT, CapitalEntry.amount), else_=0)), 0),
    ).filter(CapitalEntry.outlet_id.in_(ids)).group_by(CapitalEntry.outlet_id).all()
    totals = {outlet_id: (int(t_in or 0), int(t_out or 0)) for outlet_id, t_in, t_out in grouped}

    result = []
    for outlet in sorted(outlets, key=lambda o: o.name.lower()):
        total_in, total_out = totals.get(outlet.id, (0, 0))
        result.append({
            "outlet_id": outlet.id,
            "outlet_name": outlet.name,
            "total_in": total_in,
            "total_out": total_out,
            "balance": total_in - total_out,
        })
    return result


def list_capital_entries(outlet_id: int, limit: int = 200) -> list[CapitalEntry]:
    return (
        db.session.query(CapitalEntry)
        .filter_by(outlet_id=outlet_id)
        .order_by(CapitalEntry.created_at.desc(), CapitalEntry.id.desc())
        .limit(limit)
        .all()
    )


def ensure_sufficient_capital(outlet_id: int, amount: int) -> int:
    """Raise InsufficientCapital when amount exceeds the balance; returns the balance."""
    balance = get_balance(outlet_id)
    if amount > balance:
        raise InsufficientCapital(balance=balance, requested=amount)
    return balance


def _record_entry_inner(*, outlet_id: int, kind: str, amount: int, note: str | None = None) -> CapitalEntry:
    """Core entry logic without commit. Caller owns the unit of work."""
    _lock_outlet(outlet_id)

    if kind == CAPITAL_OUT:
        ensure_sufficient_capital(outlet_id, amount)

    entry = CapitalEntry(outlet_id=outlet_id, kind=kind, amount=amount, note=note)
    db.session.add(entry)
    db.session.flush()
    return entry


def record_entry(outlet_id: int, kind, amount, note=None) -> CapitalEntry:
    """
    Append a capital entry.

    Raises ValidationError for an unknown kind or a non-positive amount and
    InsufficientCapital when an 'out' entry exceeds the current balance.
    """
    kind = choice(kind, "kind", CAPITAL_KINDS)
    amount = positive_int(amount, "amount")
    note = optional_text(note, "note")

    def _op():
        return _record_entry_inner(outlet_id=outlet_id, kind=kind, amount=amount, note=note)

    try:
        entry = run_in_transaction(_op)
    except InsufficientCapital as exc:
        current_app.logger.info(
            "Capital out rejected for outlet %s: requested=%s balance=%s",
            outlet_id, exc.requested, exc.balance,
        )
        raise
    return entry
